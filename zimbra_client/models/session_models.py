"""Per-user Zimbra session as persisted in the credential store."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class UserSession(BaseModel):
    """Resolved connection settings for one local user."""

    base_url: str = ""
    login: str = ""
    password: str = ""
    user_name: str = ""
    token: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return bool(self.base_url and self.user_name and self.token and self.login and self.password)
