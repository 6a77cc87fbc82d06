"""Interactive terminal chat.

Replies are rendered with Rich: prose as markdown, each draft block as a
numbered panel that ``/create N``, ``/save N`` and ``/prd N`` refer to.
Pressing Ctrl-C twice within the double-tap window while a reply is being
generated cancels it.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from product_helper.chat.handler import DraftHandler
from product_helper.chat.session import ChatSession, DoubleTap, TurnStatus
from product_helper.config import Settings
from product_helper.context.cache import get_cache_status, load_cache
from product_helper.drafts.markers import DraftKind, ParsedReply, Segment, draft_filename
from product_helper.errors import ProductHelperError, UserInputError
from product_helper.integrations.github import GitHubClient
from product_helper.integrations.shortcut import ShortcutClient, parse_epic_id
from product_helper.llm.completion import CompletionInvoker
from product_helper.prompts import prd_request_prompt

logger = logging.getLogger(__name__)

PROMPT = "[bold cyan]›[/bold cyan] "

HELP = """\
Commands:
  /objective <id|url>    load an objective as active context
  /epic <id|url>         make an epic the active epic
  /clear objective|epic|story
  /repo <owner/repo|url> attach a GitHub repository
  /transcript <file>     summarize a meeting transcript into context
  /create <n>            create draft n from the last reply in Shortcut
  /prd <n>               ask for a PRD from objective draft n
  /save <n> [dir]        write draft n to a markdown file
  /context               show the active context
  /new                   start a new conversation
  /model <name>          switch chat model
  /quit                  exit
"""


class TerminalChat:
    def __init__(self, session: ChatSession, console: Console | None = None):
        self.session = session
        self.console = console or Console()
        self.double_tap = DoubleTap()
        self.drafts: list[Segment] = []

    # --- Rendering ---

    def render_reply(self, reply: ParsedReply) -> None:
        self.drafts = reply.drafts
        number = 0
        for segment in reply.segments:
            if not segment.is_draft:
                if segment.text.strip():
                    self.console.print(Markdown(segment.text))
                continue
            number += 1
            self.console.print(
                Panel(
                    Markdown(segment.body),
                    title=f"[bold]{segment.kind.label} Draft[/bold] · {escape(segment.title)}",
                    subtitle=f"#{number}",
                    border_style="cyan",
                )
            )

    def render_context(self) -> None:
        ctx = self.session.context
        table = Table(show_header=False, box=None)
        objective = ctx.objective
        table.add_row("Objective", f"{objective.name} ({objective.id})" if objective else "-")
        table.add_row("Epic", f"{ctx.epic.name} ({ctx.epic.id})" if ctx.epic else "-")
        table.add_row("Story", f"{ctx.story.name} ({ctx.story.id})" if ctx.story else "-")
        table.add_row("Repos", ", ".join(r.full_name for r in self.session.repos) or "-")
        table.add_row("Meetings", ", ".join(t.name for t in self.session.transcripts) or "-")
        table.add_row("Model", self.session.model or "default")
        self.console.print(table)

    # --- Input ---

    def on_sigint(self) -> None:
        if not self.session.busy:
            self.console.print("[dim](use /quit or Ctrl-D to exit)[/dim]")
            return
        if self.double_tap.press():
            self.session.interrupt()
        else:
            self.console.print("[dim]Press Ctrl-C again to cancel[/dim]")

    def _draft(self, arg: str) -> Segment:
        try:
            return self.drafts[int(arg) - 1]
        except (ValueError, IndexError):
            raise UserInputError(f"No draft #{arg} in the last reply", field="draft") from None

    async def handle_command(self, line: str) -> bool:
        """Run a slash command. Returns False when the loop should exit."""
        command, _, arg = line[1:].partition(" ")
        arg = arg.strip()
        handler = self.session.handler

        if command in ("quit", "exit"):
            return False
        if command == "help":
            self.console.print(HELP)
        elif command == "objective":
            objective = await handler.load_objective(arg)
            self.console.print(f"Active objective: [bold]{objective.name}[/bold]")
        elif command == "epic":
            epic = await handler.activate_epic(parse_epic_id(arg))
            self.console.print(f"Active epic: [bold]{epic.name}[/bold]")
        elif command == "clear":
            clear = {
                "objective": handler.context.clear_objective,
                "epic": handler.context.clear_epic,
                "story": handler.context.clear_story,
            }.get(arg)
            if clear is None:
                raise UserInputError("Usage: /clear objective|epic|story")
            clear()
        elif command == "repo":
            repo = await self.session.add_repo(arg)
            self.console.print(
                f"Attached [bold]{repo.full_name}[/bold] "
                f"({len(repo.open_prs)} PRs, {len(repo.open_issues)} issues)"
            )
        elif command == "transcript":
            path = Path(arg).expanduser()
            if not path.is_file():
                raise UserInputError(f"No such file: {arg}", field="transcript")
            with self.console.status("Summarizing transcript..."):
                raw = path.read_text(encoding="utf-8")
                entry = await self.session.add_transcript(path.name, raw)
            self.console.print(Panel(Markdown(entry.summary or ""), title=f"Meeting: {entry.name}"))
        elif command == "create":
            draft = self._draft(arg)
            created = await handler.create(draft)
            self.console.print(
                f"[green]Created {draft.kind.label.lower()}:[/green] "
                f"{escape(created.get('name') or draft.title)} {created.get('app_url') or ''}"
            )
        elif command == "prd":
            draft = self._draft(arg)
            if draft.kind is not DraftKind.OBJECTIVE:
                raise UserInputError("PRDs are generated from objective drafts", field="draft")
            await self.send(prd_request_prompt(draft.body))
        elif command == "save":
            number, _, directory = arg.partition(" ")
            draft = self._draft(number)
            target = Path(directory.strip() or ".").expanduser() / draft_filename(draft.title)
            target.write_text(draft.body, encoding="utf-8")
            self.console.print(f"Saved {target}")
        elif command == "context":
            self.render_context()
        elif command == "new":
            self.session.reset()
            self.drafts = []
            self.console.print("[dim]New conversation[/dim]")
        elif command == "model":
            self.session.model = arg or None
        else:
            self.console.print(f"Unknown command /{command}. Type /help.")
        return True

    async def send(self, text: str) -> None:
        with self.console.status("Thinking... (Ctrl-C twice to cancel)"):
            result = await self.session.send(text)
        if result.status is TurnStatus.OK:
            self.render_reply(result.reply)
            if result.activated_epic:
                self.console.print(f"[dim]Active epic → {result.activated_epic.name}[/dim]")
            if result.error:
                self.console.print(f"[yellow]{result.error}[/yellow]")
        elif result.status is TurnStatus.INTERRUPTED:
            self.console.print(f"[dim]{result.error}[/dim]")
        else:
            self.console.print(f"[red]Error:[/red] {result.error}")

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, self.on_sigint)
        self.console.print("[bold]Product Helper[/bold] · type /help for commands")
        try:
            while True:
                try:
                    line = await asyncio.to_thread(self.console.input, PROMPT)
                except EOFError:
                    break
                line = line.strip()
                if not line:
                    continue
                try:
                    if line.startswith("/"):
                        if not await self.handle_command(line):
                            break
                    else:
                        await self.send(line)
                except ProductHelperError as e:
                    self.console.print(f"[red]{e}[/red]")
        finally:
            loop.remove_signal_handler(signal.SIGINT)


async def run_terminal_chat(settings: Settings, model: str | None = None) -> None:
    """Open the tracker/GitHub clients and run the REPL until the user quits."""
    status = get_cache_status(settings.cache_path, max_age_days=settings.cache_max_age_days)
    console = Console()
    if not status.exists:
        console.print("[yellow]No context cache. Run `product-helper refresh` first.[/yellow]")
    elif status.is_stale:
        console.print("[yellow]Context cache is more than a week old; consider a refresh.[/yellow]")

    cache = load_cache(settings.cache_path)
    async with (
        ShortcutClient.from_settings(settings) as tracker,
        GitHubClient.from_settings(settings) as github,
    ):
        handler = DraftHandler(
            tracker,
            default_workflow_state_id=cache.default_workflow_state_id if cache else None,
        )
        session = ChatSession(
            CompletionInvoker(settings),
            handler,
            cache_loader=lambda: load_cache(settings.cache_path),
            github=github,
            model=model,
        )
        await TerminalChat(session, console).run()
