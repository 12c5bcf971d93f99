"""
llm/analyzer.py
Streaming report generation using Claude with server-side web search.
Relays the model's text to the caller fragment by fragment.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterator, Optional

import anthropic

from config.settings import (
    LLM_MAX_TOKENS, THINKING_BUDGET_TOKENS, THINKING_MODEL_MARKERS,
    WEB_SEARCH_MAX_USES, WEB_SEARCH_TOOL,
)
from llm.prompts import build_prompts, select_model
from models.session import Mode, SessionState

logger = logging.getLogger(__name__)

# Substrings that mark a rejected credential when the client only gives us text.
AUTH_FAILURE_MARKERS = ("401", "API key", "api_key", "x-api-key", "authentication")


class ReportGenerationError(RuntimeError):
    """The streaming request failed; the message carries the service's text."""


class InvalidCredentialError(ReportGenerationError):
    """The service rejected the API key."""


class MissingCredentialError(EnvironmentError):
    """No API key was supplied by the user or the environment."""


def _client(api_key: str) -> anthropic.Anthropic:
    if not api_key:
        raise MissingCredentialError(
            "ANTHROPIC_API_KEY is not set. Enter a key in the sidebar or add it to your .env file."
        )
    return anthropic.Anthropic(api_key=api_key)


def supports_extended_thinking(model: str) -> bool:
    return any(marker in model for marker in THINKING_MODEL_MARKERS)


def resolve_model(state: SessionState) -> str:
    """Model for the state's mode; screening always runs on the deep model."""
    analysis = state.analysis
    if state.mode == Mode.SCREENER:
        return analysis.deep_model
    return select_model(analysis.level, analysis.fast_model, analysis.deep_model)


def is_auth_failure(exc: BaseException) -> bool:
    """
    True when ``exc`` means the API key was rejected.

    Typed errors are judged by type or HTTP status alone; the message markers
    only apply to errors that carry nothing but text.
    """
    if isinstance(exc, InvalidCredentialError):
        return True
    if isinstance(exc, ReportGenerationError):
        return False
    if isinstance(exc, anthropic.APIStatusError):
        return exc.status_code == 401
    message = str(exc)
    return any(marker in message for marker in AUTH_FAILURE_MARKERS)


def build_request(state: SessionState, now: Optional[datetime] = None) -> dict:
    """Keyword arguments for ``client.messages.stream``."""
    system, prompt = build_prompts(state, now)
    model = resolve_model(state)

    request = {
        "model":      model,
        "max_tokens": LLM_MAX_TOKENS,
        "system":     system,
        "messages":   [{"role": "user", "content": prompt}],
        "tools": [{
            "type":     WEB_SEARCH_TOOL,
            "name":     "web_search",
            "max_uses": WEB_SEARCH_MAX_USES,
        }],
    }

    # Best-effort hint: only deep single-stock analysis on a capable model.
    if (
        state.mode == Mode.ANALYSIS
        and state.analysis.level.is_deep
        and supports_extended_thinking(model)
    ):
        request["thinking"] = {"type": "enabled", "budget_tokens": THINKING_BUDGET_TOKENS}

    return request


def iter_fragments(
    state:   SessionState,
    api_key: str,
    *,
    now:     Optional[datetime] = None,
    client=None,
) -> Iterator[str]:
    """
    Yield non-empty text fragments from one streaming request, in arrival order.

    Parameters
    ----------
    state   : snapshot to build the prompts from (never mutated)
    api_key : resolved credential; ignored when ``client`` is given
    now     : pins the market date used in the prompts
    client  : pre-built client exposing ``messages.stream(**kwargs)``

    Raises InvalidCredentialError when the key is rejected and
    ReportGenerationError for any other failure.
    """
    request = build_request(state, now)
    client  = client or _client(api_key)

    logger.info(
        "Starting %s stream on %s (thinking=%s)",
        Mode(state.mode).value, request["model"], "thinking" in request,
    )

    count = 0
    try:
        with client.messages.stream(**request) as stream:
            for text in stream.text_stream:
                if not text:
                    continue
                count += 1
                yield text
    except Exception as exc:
        logger.error("Streaming request failed after %d fragments: %s", count, exc)
        if is_auth_failure(exc):
            raise InvalidCredentialError(str(exc)) from exc
        raise ReportGenerationError(str(exc)) from exc

    logger.info("Stream finished: %d fragments", count)


def stream_report(
    state:       SessionState,
    on_fragment: Callable[[str], None],
    api_key:     str,
    *,
    now:         Optional[datetime] = None,
    client=None,
) -> None:
    """Run one request and hand each fragment to ``on_fragment`` before pulling the next."""
    for fragment in iter_fragments(state, api_key, now=now, client=client):
        on_fragment(fragment)
