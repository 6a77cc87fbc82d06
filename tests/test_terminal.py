# Tests for the terminal chat front end (rendering and slash commands).

from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from product_helper.chat.handler import DraftHandler
from product_helper.chat.session import ChatSession
from product_helper.chat.terminal import TerminalChat
from product_helper.drafts.markers import parse_reply
from product_helper.errors import UserInputError

REPLY = (
    "Here are two drafts.\n\n"
    "<!-- draft:objective -->\n## Grow revenue\nOutcome...\n\n"
    "<!-- draft:story -->\n## [API] - Invoices\nAs a user..."
)


@pytest.fixture
def tracker():
    mock = MagicMock()
    mock.create_story = AsyncMock(return_value={"id": 5, "name": "[API] - Invoices"})
    mock.get_epic = AsyncMock(return_value={"id": 42, "name": "Billing"})
    return mock


@pytest.fixture
def invoker():
    mock = MagicMock()
    mock.chat = AsyncMock(return_value=REPLY)
    return mock


@pytest.fixture
def terminal(invoker, tracker, sample_cache):
    session = ChatSession(invoker, DraftHandler(tracker), cache_loader=lambda: sample_cache)
    return TerminalChat(session, Console(record=True, width=100))


class TestRendering:
    def test_drafts_numbered(self, terminal):
        terminal.render_reply(parse_reply(REPLY))
        output = terminal.console.export_text()

        assert "Objective Draft · Grow revenue" in output
        assert "Story Draft · [API] - Invoices" in output
        assert "#2" in output
        assert [d.title for d in terminal.drafts] == ["Grow revenue", "[API] - Invoices"]


class TestCommands:
    async def test_send_then_create(self, terminal, tracker):
        await terminal.handle_command("/epic 42")
        await terminal.send("Draft it")
        assert await terminal.handle_command("/create 2") is True

        tracker.create_story.assert_awaited_once()
        assert terminal.session.context.story.id == 5

    async def test_unknown_draft_number(self, terminal):
        with pytest.raises(UserInputError):
            await terminal.handle_command("/create 3")

    async def test_prd_requires_objective_draft(self, terminal, invoker):
        await terminal.send("Draft it")
        with pytest.raises(UserInputError):
            await terminal.handle_command("/prd 2")

        await terminal.handle_command("/prd 1")
        last_user = invoker.chat.await_args.args[0][-1]["content"]
        assert "## Grow revenue" in last_user

    async def test_save(self, terminal, tmp_path):
        await terminal.send("Draft it")
        await terminal.handle_command(f"/save 1 {tmp_path}")
        assert (tmp_path / "grow-revenue.md").read_text().startswith("## Grow revenue")

    async def test_epic_and_clear(self, terminal, tracker):
        await terminal.handle_command("/epic 42")
        assert terminal.session.context.epic.id == 42
        await terminal.handle_command("/clear epic")
        assert terminal.session.context.epic is None

    async def test_quit(self, terminal):
        assert await terminal.handle_command("/quit") is False

    def test_sigint_double_tap_interrupts(self, terminal):
        terminal.session._inflight = MagicMock()
        terminal.session._inflight.done.return_value = False
        clock = iter([1.0, 1.2])
        terminal.double_tap._clock = lambda: next(clock)

        terminal.on_sigint()
        terminal.session._inflight.cancel.assert_not_called()
        terminal.on_sigint()
        terminal.session._inflight.cancel.assert_called_once()
