"""Shared HTTP transport for the Zimbra REST and SOAP endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from ..models import HttpResponse

DEFAULT_USER_AGENT = "zimbra-client"
DEFAULT_HEADERS: Dict[str, str] = {
    "accept": "*/*",
}


class TransportError(Exception):
    """Raised when an HTTP call fails; ``status_code`` is None for network errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[HttpResponse] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class ClientError(TransportError):
    """Raised for 4xx responses."""


class ServerError(TransportError):
    """Raised for 5xx responses."""


def _redact_url(url: str) -> str:
    # the query string carries the auth token
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class HttpClient:
    """Sends requests through a pooled session and maps error statuses to exceptions."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, timeout: int = 10, raise_for_status: bool = True) -> None:
        self.timeout = timeout
        self.raise_for_status = raise_for_status
        self._session = requests.Session()
        self._headers = DEFAULT_HEADERS.copy()
        self._headers["user-agent"] = user_agent
        self._session.headers.update(self._headers)

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
        body: Optional[str | bytes] = None,
    ) -> HttpResponse:
        """Perform one HTTP call and return its response.

        Raises :class:`ClientError` / :class:`ServerError` for error statuses
        unless the client was built with ``raise_for_status=False``, and
        :class:`TransportError` when no response could be obtained.
        """

        safe_url = _redact_url(url)
        try:
            resp = self._session.request(
                method,
                url,
                headers=headers,
                json=json,
                data=body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            # requests embeds the full URL, token included, in its messages
            logging.debug("HTTP %s to %s failed: %s", method, safe_url, exc.__class__.__name__)
            raise TransportError(f"{method} {safe_url} failed: {exc.__class__.__name__}") from exc

        response = HttpResponse(
            status_code=resp.status_code,
            body=resp.content or b"",
            headers=dict(resp.headers),
        )
        if self.raise_for_status and resp.status_code >= 400:
            kind = "Client" if resp.status_code < 500 else "Server"
            status = f"{resp.status_code} {resp.reason or ''}".strip()
            message = f"{kind} error: `{method} {safe_url}` resulted in a `{status}` response"
            error_cls = ClientError if resp.status_code < 500 else ServerError
            raise error_cls(message, status_code=resp.status_code, response=response)
        return response

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
