"""Data models for sessions, authentication and HTTP responses."""

from .auth_models import AuthResponseEnvelope, LoginResult
from .http_models import HttpResponse
from .session_models import UserSession

__all__ = [
    "AuthResponseEnvelope",
    "HttpResponse",
    "LoginResult",
    "UserSession",
]
