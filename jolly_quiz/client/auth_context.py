"""Admin credential handling for API clients.

The credential blob lives in an injected :class:`CredentialStorage` instead of
module state. It is loaded lazily on first use and cleared on logout or when
the server answers 401.
"""

from __future__ import annotations

import base64
from threading import Lock
from typing import Protocol

CREDENTIALS_KEY = "admin_credentials"


class CredentialStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryCredentialStorage:
    """Session-scoped storage that lives as long as the process."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class AdminAuthContext:
    """Holds the admin's basic-auth credentials for one client session."""

    def __init__(self, storage: CredentialStorage | None = None) -> None:
        self._storage = storage or InMemoryCredentialStorage()
        self._credentials: str | None = None
        self._loaded = False
        self._lock = Lock()

    def set_credentials(self, username: str, password: str) -> None:
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        with self._lock:
            self._credentials = token
            self._loaded = True
            self._storage.set(CREDENTIALS_KEY, token)

    def clear(self) -> None:
        with self._lock:
            self._credentials = None
            self._loaded = True
            self._storage.remove(CREDENTIALS_KEY)

    def has_credentials(self) -> bool:
        return self._load() is not None

    def authorization_header(self) -> dict[str, str]:
        credentials = self._load()
        if credentials is None:
            return {}
        return {"Authorization": f"Basic {credentials}"}

    def _load(self) -> str | None:
        with self._lock:
            if not self._loaded:
                self._credentials = self._storage.get(CREDENTIALS_KEY)
                self._loaded = True
            return self._credentials
