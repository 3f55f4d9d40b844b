"""Keyed storage for per-user Zimbra settings, credentials and tokens."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Dict, Optional, Protocol

from .file_utils import ensure_directory

DEFAULT_STORE_PATH = os.path.join(os.path.expanduser("~"), ".config", "zimbra-client", "store.json")

ADMIN_URL_KEY = "admin_instance_url"
URL_KEY = "url"
USER_NAME_KEY = "user_name"
TOKEN_KEY = "token"
LOGIN_KEY = "login"
PASSWORD_KEY = "password"


class CredentialStore(Protocol):
    def get_app_value(self, key: str, default: str = "") -> str: ...

    def get_user_value(self, user: str, key: str, default: str = "") -> str: ...

    def set_user_value(self, user: str, key: str, value: str) -> None: ...

    def delete_user_value(self, user: str, key: str) -> None: ...


class InMemoryCredentialStore:
    """Dictionary-backed store, useful for embedding and tests."""

    def __init__(self, app_values: Optional[Dict[str, str]] = None) -> None:
        self._app: Dict[str, str] = dict(app_values or {})
        self._users: Dict[str, Dict[str, str]] = {}

    def get_app_value(self, key: str, default: str = "") -> str:
        return self._app.get(key, default)

    def set_app_value(self, key: str, value: str) -> None:
        self._app[key] = value

    def get_user_value(self, user: str, key: str, default: str = "") -> str:
        return self._users.get(user, {}).get(key, default)

    def set_user_value(self, user: str, key: str, value: str) -> None:
        self._users.setdefault(user, {})[key] = value

    def delete_user_value(self, user: str, key: str) -> None:
        self._users.get(user, {}).pop(key, None)


class JsonCredentialStore(InMemoryCredentialStore):
    """Persists every mutation to a JSON file."""

    def __init__(self, path: str = DEFAULT_STORE_PATH) -> None:
        super().__init__()
        self.path = path
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:  # pragma: no cover - corrupt store
            logging.warning("Failed to read credential store %s: %s", self.path, exc)
            return
        self._app = dict(payload.get("app") or {})
        self._users = {user: dict(values) for user, values in (payload.get("users") or {}).items()}

    def save(self) -> None:
        """Replaces the store file atomically; the file is readable by its owner only."""

        directory = ensure_directory(os.path.dirname(os.path.abspath(self.path)))
        handle = tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=directory, prefix=".store-", suffix=".tmp", delete=False
        )
        try:
            with handle:
                json.dump({"app": self._app, "users": self._users}, handle, ensure_ascii=False, indent=2)
            os.chmod(handle.name, 0o600)
            os.replace(handle.name, self.path)
        except BaseException:
            if os.path.exists(handle.name):
                os.remove(handle.name)
            raise
        logging.debug("Saved credential store to %s", self.path)

    def set_app_value(self, key: str, value: str) -> None:
        super().set_app_value(key, value)
        self.save()

    def set_user_value(self, user: str, key: str, value: str) -> None:
        super().set_user_value(user, key, value)
        self.save()

    def delete_user_value(self, user: str, key: str) -> None:
        super().delete_user_value(user, key)
        self.save()
