"""Completion invoker — the only place that talks to the Anthropic API.

Two independent paths share the client but no mutable state:

* ``chat`` / ``invoke`` — the planning conversation. The static prompt block
  is sent with ``cache_control`` so unchanged content is billed at the cache
  rate within the provider's rolling window; the dynamic block follows
  uncached. Whether the hint is honored changes cost only, never the reply.
* ``summarize_transcript`` — single-shot extraction on a cheaper model.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic

from product_helper.config import Settings, resolve_model
from product_helper.context.assembler import build_dynamic_context, build_static_prompt
from product_helper.context.models import ActiveEpic, ActiveObjective, ActiveRepo, ContextCache
from product_helper.errors import ConfigurationError, UpstreamServiceError
from product_helper.prompts import TRANSCRIPT_SYSTEM_PROMPT, transcript_extraction_prompt

logger = logging.getLogger(__name__)

Message = dict[str, str]


def build_system_blocks(static_block: str, dynamic_block: str | None) -> list[dict]:
    """System segments: static block flagged cache-eligible, dynamic block (if any) uncached."""
    blocks: list[dict] = [
        {"type": "text", "text": static_block, "cache_control": {"type": "ephemeral"}},
    ]
    if dynamic_block:
        blocks.append({"type": "text", "text": dynamic_block})
    return blocks


def _response_text(response) -> str:
    return "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    )


class CompletionInvoker:
    """Wraps ``AsyncAnthropic`` for chat turns and transcript summaries."""

    def __init__(self, settings: Settings, client: AsyncAnthropic | None = None):
        self.settings = settings
        self._client = client

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            if not self.settings.anthropic_api_key:
                raise ConfigurationError("ANTHROPIC_API_KEY is not set")
            self._client = AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        return self._client

    async def invoke(
        self,
        history: Sequence[Message],
        static_block: str,
        dynamic_block: str | None = None,
        model: str | None = None,
    ) -> str:
        """Send the full history with both system segments; return the reply text.

        History is passed through untouched: trimming or summarizing it is the
        caller's job.
        """
        selected = resolve_model(model or self.settings.chat_model)
        try:
            response = await self._get_client().messages.create(
                model=selected,
                max_tokens=self.settings.chat_max_tokens,
                system=build_system_blocks(static_block, dynamic_block),
                messages=list(history),
            )
        except APIStatusError as e:
            raise UpstreamServiceError("Anthropic", e.status_code, e.message) from e
        except APIConnectionError as e:
            raise UpstreamServiceError("Anthropic", None, e.message) from e

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                "Chat usage (%s): in=%s cache_read=%s cache_write=%s out=%s",
                selected,
                usage.input_tokens,
                getattr(usage, "cache_read_input_tokens", None),
                getattr(usage, "cache_creation_input_tokens", None),
                usage.output_tokens,
            )
        return _response_text(response)

    async def chat(
        self,
        history: Sequence[Message],
        *,
        cache: ContextCache | None,
        active_objective: ActiveObjective | None = None,
        transcript_summary: str | None = None,
        active_repos: Sequence[ActiveRepo] | None = None,
        active_epic: ActiveEpic | None = None,
        model: str | None = None,
    ) -> str:
        """Assemble both prompt blocks from the cache and the active context, then invoke.

        Raises:
            ConfigurationError: If there is no context cache.
        """
        if cache is None:
            raise ConfigurationError(
                "Context cache is empty. Run `product-helper refresh` first to fetch your "
                "team context."
            )
        static_block = build_static_prompt(cache)
        dynamic_block = build_dynamic_context(
            active_objective, transcript_summary, active_repos, active_epic
        )
        return await self.invoke(history, static_block, dynamic_block or None, model)

    async def summarize_transcript(self, raw_transcript: str) -> str:
        """Reduce a raw meeting transcript to planning signal."""
        try:
            response = await self._get_client().messages.create(
                model=self.settings.summary_model,
                max_tokens=self.settings.summary_max_tokens,
                system=TRANSCRIPT_SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": transcript_extraction_prompt(raw_transcript)}
                ],
            )
        except APIStatusError as e:
            raise UpstreamServiceError("Anthropic", e.status_code, e.message) from e
        except APIConnectionError as e:
            raise UpstreamServiceError("Anthropic", None, e.message) from e
        return _response_text(response)
