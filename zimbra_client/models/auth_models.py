"""Models related to authentication and login responses."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginResult(BaseModel):
    """Outcome of an AuthRequest: either a token or an error message."""

    token: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class AuthTokenEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(alias="_content")


class AuthResponsePayload(BaseModel):
    authToken: List[AuthTokenEntry] = Field(min_length=1)


class AuthResponseBody(BaseModel):
    AuthResponse: AuthResponsePayload


class AuthResponseEnvelope(BaseModel):
    """The subset of a SOAP AuthResponse needed to extract the token."""

    Body: AuthResponseBody

    @property
    def token(self) -> str:
        return self.Body.AuthResponse.authToken[0].content
