"""
utils/credentials.py
Durable key/value store for the API key, plus helpers to resolve the effective
credential and keep the session's key persisted.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Callable, Optional

from config.settings import CREDENTIAL_KEY, CREDENTIAL_STORE_PATH
from models.session import SessionState

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Small JSON-file key/value store. Writes are synchronous and overwrite the
    previous value (last write wins).
    """

    def __init__(self, path: str = CREDENTIAL_STORE_PATH):
        self.path = path

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable credential store %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str):
        data = self._read()
        data[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


def resolve_api_key(user_key: Optional[str], env_key: Optional[str]) -> str:
    """User-entered key wins; otherwise the environment fallback; else ''."""
    if user_key and user_key.strip():
        return user_key.strip()
    return (env_key or "").strip()


def bind_credential(
    state: SessionState,
    store: CredentialStore,
    key:   str = CREDENTIAL_KEY,
) -> Callable[[], None]:
    """
    Load the stored key into ``state`` and persist every later change.
    Returns the unsubscribe callable.
    """
    saved = store.get(key)
    if saved:
        state.set_credential(saved)

    def _persist(s: SessionState, change: str):
        if change == "credential":
            store.set(key, s.api_key)

    return state.subscribe(_persist)
