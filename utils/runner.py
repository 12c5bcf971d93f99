"""
utils/runner.py
Start-cycle entry point shared by the start button and the auto-refresh loop:
validates the request, streams the report into the session and classifies
failures into user-facing messages.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from config import settings
from llm.analyzer import (
    MissingCredentialError, ReportGenerationError, is_auth_failure, stream_report,
)
from models.session import Mode, SessionState
from utils.credentials import resolve_api_key

logger = logging.getLogger(__name__)

MISSING_TARGET_MESSAGE     = "Please enter a stock code before starting the analysis."
MISSING_CREDENTIAL_MESSAGE = "Configure your Anthropic API key in the sidebar before starting."
AUTH_FAILURE_MESSAGE       = (
    "Authentication failed: the API key is invalid or missing. "
    "Check the key in the sidebar settings."
)
GENERIC_FAILURE_MESSAGE    = "Analysis failed. Please try again later."


class MissingTargetError(ValueError):
    """ANALYSIS mode was started without a stock code."""


def validate_request(state: SessionState, env_api_key: Optional[str]) -> str:
    """Check presence requirements and return the effective API key."""
    if state.mode == Mode.ANALYSIS and not state.stock.code.strip():
        raise MissingTargetError(MISSING_TARGET_MESSAGE)

    api_key = resolve_api_key(state.api_key, env_api_key)
    if not api_key:
        raise MissingCredentialError(MISSING_CREDENTIAL_MESSAGE)
    return api_key


def _failure_message(exc: Exception) -> str:
    if is_auth_failure(exc):
        return AUTH_FAILURE_MESSAGE
    detail = str(exc).strip()
    return f"Analysis failed: {detail}" if detail else GENERIC_FAILURE_MESSAGE


def start_cycle(
    state:       SessionState,
    *,
    stream:      Callable = stream_report,
    env_api_key: Optional[str] = None,
    now:         Optional[datetime] = None,
) -> bool:
    """
    Run one full request/response cycle against ``state``.

    Never raises. Returns True when the report streamed to completion.
    ``busy`` is always cleared on the way out.
    """
    if state.busy:
        logger.warning("A cycle is already running; ignoring start request")
        return False

    if env_api_key is None:
        env_api_key = settings.ANTHROPIC_API_KEY

    try:
        api_key = validate_request(state, env_api_key)
    except (MissingTargetError, MissingCredentialError) as exc:
        logger.warning("Not starting cycle: %s", exc)
        state.set_error(str(exc))
        return False

    snapshot = state.snapshot()
    if not state.begin_cycle():
        # Another thread claimed the session since the busy check above.
        logger.warning("A cycle is already running; ignoring start request")
        return False
    try:
        stream(snapshot, state.append_fragment, api_key, now=now)
    except ReportGenerationError as exc:
        state.set_error(_failure_message(exc))
        return False
    except Exception as exc:
        logger.exception("Unexpected failure while streaming the report")
        state.set_error(_failure_message(exc))
        return False
    finally:
        state.set_busy(False)
    return True
