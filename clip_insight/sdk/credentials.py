"""
Credential stores for the remote API key.

Any backend (keychain, secret service, environment) plugs in behind
get_key / set_key / clear.
"""

import os
from typing import List, Optional, Protocol

MIN_KEY_LENGTH = 16

ENV_API_KEY = "CLIP_INSIGHT_API_KEY"
ENV_FALLBACK_API_KEY = "OPENROUTER_API_KEY"


class CredentialStore(Protocol):
    def get_key(self) -> Optional[str]: ...

    def set_key(self, key: str) -> None: ...

    def clear(self) -> None: ...


def is_plausible_key(key: Optional[str]) -> bool:
    """Syntactic check only: non-empty, no inner whitespace, long enough."""
    if not key:
        return False
    key = key.strip()
    return len(key) >= MIN_KEY_LENGTH and not any(ch.isspace() for ch in key)


def is_configured(store: CredentialStore) -> bool:
    """True iff the store holds a plausible key. No network validation."""
    return is_plausible_key(store.get_key())


class InMemoryCredentialStore:
    """Keeps the key in process memory."""

    def __init__(self, key: Optional[str] = None):
        self._key = key

    def get_key(self) -> Optional[str]:
        return self._key

    def set_key(self, key: str) -> None:
        if not key or not key.strip():
            raise ValueError("key cannot be empty")
        self._key = key.strip()

    def clear(self) -> None:
        self._key = None


class EnvironmentCredentialStore:
    """Reads the key from environment variables, first match wins.

    set_key and clear only affect this process's environment.
    """

    def __init__(self, variables: Optional[List[str]] = None):
        self.variables = variables or [ENV_API_KEY, ENV_FALLBACK_API_KEY]

    def get_key(self) -> Optional[str]:
        for name in self.variables:
            value = os.environ.get(name)
            if value and value.strip():
                return value.strip()
        return None

    def set_key(self, key: str) -> None:
        if not key or not key.strip():
            raise ValueError("key cannot be empty")
        os.environ[self.variables[0]] = key.strip()

    def clear(self) -> None:
        for name in self.variables:
            os.environ.pop(name, None)
