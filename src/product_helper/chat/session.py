# Chat session — one planning conversation on the client side.
#
# Holds the message history plus the per-turn context (meeting transcripts,
# repositories, the WorkingContext owned by the DraftHandler). One completion
# may be in flight at a time. The user message is appended optimistically and
# rolled back if the turn errors or is interrupted, so the history never ends
# with an unanswered message.
#
# Transcript summaries run through the same invoker but on their own path and
# may overlap a chat turn; each writes only its own Transcript entry.

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from product_helper.chat.handler import DraftHandler
from product_helper.context.assembler import SECTION_SEPARATOR
from product_helper.context.models import ActiveEpic, ActiveRepo, ContextCache
from product_helper.drafts.markers import ParsedReply, parse_reply
from product_helper.errors import ProductHelperError, UserInputError
from product_helper.integrations.github import GitHubClient, parse_repo_input
from product_helper.llm.completion import CompletionInvoker

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Interrupted. (Press Ctrl-C twice while generating to cancel.)"
SUMMARY_PENDING = "(summarizing…)"


class TurnStatus(str, Enum):
    OK = "ok"
    INTERRUPTED = "interrupted"
    ERROR = "error"


@dataclass
class TurnResult:
    status: TurnStatus
    reply: ParsedReply | None = None
    error: str | None = None
    activated_epic: ActiveEpic | None = None


@dataclass
class Transcript:
    id: str
    name: str
    summary: str | None = None


class DoubleTap:
    """Fires when triggered twice within ``window`` seconds."""

    def __init__(self, window: float = 0.6, clock: Callable[[], float] = time.monotonic):
        self.window = window
        self._clock = clock
        self._last: float | None = None

    def press(self) -> bool:
        now = self._clock()
        fired = self._last is not None and now - self._last < self.window
        self._last = None if fired else now
        return fired


class ChatSession:
    def __init__(
        self,
        invoker: CompletionInvoker,
        handler: DraftHandler,
        cache_loader: Callable[[], ContextCache | None],
        github: GitHubClient | None = None,
        model: str | None = None,
    ):
        self.invoker = invoker
        self.handler = handler
        self.github = github
        self.model = model
        self._load_cache = cache_loader
        self.messages: list[dict[str, str]] = []
        self.transcripts: list[Transcript] = []
        self.repos: list[ActiveRepo] = []
        self._inflight: asyncio.Future[str] | None = None
        self._interrupt_requested = False

    @property
    def context(self):
        return self.handler.context

    @property
    def busy(self) -> bool:
        return self._inflight is not None

    @property
    def transcript_summary(self) -> str | None:
        if not self.transcripts:
            return None
        return SECTION_SEPARATOR.join(
            f"**Meeting {i}: {t.name}**\n\n{SUMMARY_PENDING if t.summary is None else t.summary}"
            for i, t in enumerate(self.transcripts, start=1)
        )

    # --- Conversation ---

    async def send(self, text: str) -> TurnResult:
        """Send one user message and wait for the reply.

        Raises:
            UserInputError: If the message is empty or a reply is already in flight.
        """
        user_message = text.strip()
        if not user_message:
            raise UserInputError("Message is empty", field="message")
        if self.busy:
            raise UserInputError("Wait for the current reply to finish", field="message")

        try:
            cache = self._load_cache()
        except ProductHelperError as e:
            logger.error("Could not load context cache: %s", e)
            return TurnResult(TurnStatus.ERROR, error=str(e))

        previous = list(self.messages)
        self.messages.append({"role": "user", "content": user_message})
        self._interrupt_requested = False

        self._inflight = asyncio.ensure_future(
            self.invoker.chat(
                list(self.messages),
                cache=cache,
                active_objective=self.context.objective,
                transcript_summary=self.transcript_summary,
                active_repos=self.repos,
                active_epic=self.context.epic,
                model=self.model,
            )
        )
        try:
            reply_text = await self._inflight
        except asyncio.CancelledError:
            self.messages = previous
            if self._interrupt_requested:
                logger.info("Chat turn interrupted")
                return TurnResult(TurnStatus.INTERRUPTED, error=INTERRUPTED_MESSAGE)
            raise
        except ProductHelperError as e:
            self.messages = previous
            logger.error("Chat error: %s", e)
            return TurnResult(TurnStatus.ERROR, error=str(e))
        except Exception as e:
            self.messages = previous
            logger.exception("Unexpected chat error")
            return TurnResult(TurnStatus.ERROR, error=f"Unexpected error: {e}")
        finally:
            self._inflight = None

        parsed = parse_reply(reply_text)
        self.messages.append({"role": "assistant", "content": parsed.display_text})

        result = TurnResult(TurnStatus.OK, reply=parsed)
        try:
            result.activated_epic = await self.handler.apply_reply(parsed)
        except ProductHelperError as e:
            logger.warning("Failed to load epic context: %s", e)
            result.error = f"Could not activate epic {parsed.activate_epic_id}: {e}"
        return result

    def interrupt(self) -> bool:
        """Cancel the in-flight completion. Returns False if nothing was running."""
        if self._inflight is None or self._inflight.done():
            return False
        self._interrupt_requested = True
        self._inflight.cancel()
        return True

    def reset(self) -> None:
        """Start a new conversation, keeping the loaded context."""
        if self.busy:
            raise UserInputError("Wait for the current reply to finish", field="message")
        self.messages = []

    # --- Meeting transcripts ---

    async def add_transcript(self, name: str, raw: str) -> Transcript:
        """Summarize a transcript and attach it to the session context."""
        if not raw.strip():
            raise UserInputError("`transcript` is required", field="transcript")
        entry = Transcript(id=uuid.uuid4().hex[:12], name=name)
        self.transcripts.append(entry)
        try:
            entry.summary = await self.invoker.summarize_transcript(raw)
        except ProductHelperError:
            self.transcripts.remove(entry)
            raise
        return entry

    def remove_transcript(self, transcript_id: str) -> None:
        self.transcripts = [t for t in self.transcripts if t.id != transcript_id]

    # --- Repositories ---

    async def add_repo(self, ref: str) -> ActiveRepo:
        owner, repo = parse_repo_input(ref)
        if any(r.owner == owner and r.repo == repo for r in self.repos):
            raise UserInputError("Already loaded", field="repo")
        if self.github is None:
            raise UserInputError("GitHub integration is not configured", field="repo")
        snapshot = await self.github.get_repo_context(owner, repo)
        self.repos.append(snapshot)
        return snapshot

    def remove_repo(self, full_name: str) -> None:
        self.repos = [r for r in self.repos if r.full_name != full_name]
