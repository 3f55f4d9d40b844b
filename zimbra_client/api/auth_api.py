"""Authentication helpers for the Zimbra AuthRequest login flow."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from ..models import AuthResponseEnvelope, LoginResult
from ..utils.http_client import HttpClient, TransportError
from .envelope import build_envelope, build_login_header, build_request_body

SOAP_PATH = "service/soap"
ACCOUNT_NS = "urn:zimbraAccount"
JSON_HEADERS = {"Content-Type": "application/json"}

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_RESPONSE = "Invalid response"


def decode_auth_response(body: bytes | str) -> LoginResult:
    """Extracts ``Body.AuthResponse.authToken[0]._content`` from a login response.

    Every malformed shape, including a body that is not JSON at all, maps to
    the same ``Invalid response`` result.
    """

    try:
        envelope = AuthResponseEnvelope.model_validate(json.loads(body))
    except (ValueError, ValidationError) as exc:
        logging.warning("Zimbra login error: %s (%s)", INVALID_RESPONSE, exc.__class__.__name__)
        return LoginResult(error=INVALID_RESPONSE)
    return LoginResult(token=envelope.token)


class AuthAPI:
    """Encapsulates the AuthRequest call that exchanges a password for a token."""

    def __init__(self, http_client: HttpClient, agent_name: str, agent_version: str) -> None:
        self._client = http_client
        self._agent_name = agent_name
        self._agent_version = agent_version

    def login(self, base_url: str, login: str, password: str) -> LoginResult:
        envelope = build_envelope(
            build_login_header(self._agent_name, self._agent_version),
            build_request_body(
                "AuthRequest",
                ACCOUNT_NS,
                {
                    "account": {"_content": login, "by": "name"},
                    "password": password,
                },
            ),
        )
        url = f"{base_url}/{SOAP_PATH}"
        try:
            response = self._client.send("POST", url, headers=dict(JSON_HEADERS), body=json.dumps(envelope))
        except TransportError as exc:
            logging.warning("Zimbra login error: %s", exc)
            return LoginResult(error=str(exc))

        if response.status_code >= 400:
            return LoginResult(error=INVALID_CREDENTIALS)

        result = decode_auth_response(response.body)
        if result.token:
            logging.info("Logged in to %s as %s", base_url, login)
        return result
