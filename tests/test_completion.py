# Tests for the completion invoker (Anthropic client mocked).

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from anthropic import APIConnectionError, APIStatusError

from product_helper.config import DEFAULT_CHAT_MODEL, SUMMARY_MODEL
from product_helper.context.models import ActiveEpic
from product_helper.errors import ConfigurationError, UpstreamServiceError
from product_helper.llm.completion import CompletionInvoker, build_system_blocks


def _response(text: str):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(
            input_tokens=10,
            output_tokens=5,
            cache_read_input_tokens=9000,
            cache_creation_input_tokens=0,
        ),
    )


@pytest.fixture
def client():
    mock = MagicMock()
    mock.messages.create = AsyncMock(return_value=_response("Hello there"))
    return mock


@pytest.fixture
def invoker(settings, client):
    return CompletionInvoker(settings, client=client)


class TestSystemBlocks:
    def test_static_block_is_cache_eligible(self):
        blocks = build_system_blocks("STATIC", "DYNAMIC")
        assert blocks == [
            {"type": "text", "text": "STATIC", "cache_control": {"type": "ephemeral"}},
            {"type": "text", "text": "DYNAMIC"},
        ]

    def test_dynamic_block_omitted_when_empty(self):
        assert len(build_system_blocks("STATIC", "")) == 1
        assert len(build_system_blocks("STATIC", None)) == 1


class TestInvoke:
    async def test_passes_history_and_model(self, invoker, client):
        history = [{"role": "user", "content": "hi"}]
        reply = await invoker.invoke(history, "STATIC", None, model="claude-sonnet-4-6")

        assert reply == "Hello there"
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-6"
        assert kwargs["messages"] == history
        assert kwargs["max_tokens"] == 8192
        assert len(kwargs["system"]) == 1

    async def test_unknown_model_uses_default(self, invoker, client):
        await invoker.invoke([{"role": "user", "content": "hi"}], "STATIC", model="gpt-4o")
        assert client.messages.create.await_args.kwargs["model"] == DEFAULT_CHAT_MODEL

    async def test_joins_text_blocks_only(self, invoker, client):
        client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="a"),
                SimpleNamespace(type="thinking", thinking="..."),
                SimpleNamespace(type="text", text="b"),
            ],
            usage=None,
        )
        assert await invoker.invoke([], "STATIC") == "ab"

    async def test_status_error_becomes_upstream_error(self, invoker, client):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(529, request=request, json={"error": "overloaded"})
        client.messages.create.side_effect = APIStatusError(
            "Overloaded", response=response, body=None
        )

        with pytest.raises(UpstreamServiceError) as exc_info:
            await invoker.invoke([], "STATIC")
        assert exc_info.value.status == 529
        assert exc_info.value.service == "Anthropic"

    async def test_connection_error_becomes_upstream_error(self, invoker, client):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.messages.create.side_effect = APIConnectionError(request=request)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await invoker.invoke([], "STATIC")
        assert exc_info.value.status is None
        assert "Connection error" in str(exc_info.value)

    async def test_missing_key(self, settings):
        settings.anthropic_api_key = None
        with pytest.raises(ConfigurationError):
            await CompletionInvoker(settings).invoke([], "STATIC")


class TestChat:
    async def test_requires_cache(self, invoker, client):
        with pytest.raises(ConfigurationError):
            await invoker.chat([{"role": "user", "content": "hi"}], cache=None)
        client.messages.create.assert_not_awaited()

    async def test_assembles_both_blocks(self, invoker, client, sample_cache):
        await invoker.chat(
            [{"role": "user", "content": "hi"}],
            cache=sample_cache,
            active_epic=ActiveEpic(id=777, name="Billing"),
        )
        system = client.messages.create.await_args.kwargs["system"]
        assert len(system) == 2
        assert "Investor onboarding" in system[0]["text"]
        assert "epic_id:777" in system[1]["text"]

    async def test_static_block_stable_across_turns(self, invoker, client, sample_cache):
        await invoker.chat([{"role": "user", "content": "one"}], cache=sample_cache)
        await invoker.chat(
            [{"role": "user", "content": "one"}, {"role": "assistant", "content": "two"},
             {"role": "user", "content": "three"}],
            cache=sample_cache,
            transcript_summary="**Meeting 1: Kickoff**",
        )
        first, second = (c.kwargs["system"] for c in client.messages.create.await_args_list)
        assert first[0] == second[0]
        assert len(first) == 1
        assert len(second) == 2


class TestSummarize:
    async def test_uses_summary_model(self, invoker, client):
        summary = await invoker.summarize_transcript("Alice: let's ship SSO first")

        assert summary == "Hello there"
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["model"] == SUMMARY_MODEL
        assert kwargs["max_tokens"] == 1024
        assert "Alice: let's ship SSO first" in kwargs["messages"][0]["content"]
