"""Authenticated REST and SOAP calls against a Zimbra server.

Both protocols share one recovery policy: when the server signals an
expired or invalid token, the stored login/password are exchanged for a new
token and the call is replayed once. REST reports this with a 401 client
error, SOAP with a 500 server error.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence
from urllib.parse import quote_plus, urlencode

from .. import __version__
from ..models import HttpResponse, UserSession
from ..utils.credential_store import (
    ADMIN_URL_KEY,
    LOGIN_KEY,
    PASSWORD_KEY,
    TOKEN_KEY,
    URL_KEY,
    USER_NAME_KEY,
    CredentialStore,
)
from ..utils.http_client import ClientError, HttpClient, TransportError
from .auth_api import INVALID_RESPONSE, JSON_HEADERS, SOAP_PATH, AuthAPI
from .envelope import build_envelope, build_request_body, build_request_header

AGENT_NAME = "zimbra-client"
SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")
REST_AUTH_FAILURE_STATUS = 401
SOAP_AUTH_FAILURE_STATUS = 500
MAX_AUTH_RETRIES = 1

BAD_CREDENTIALS = "Bad credentials"
BAD_METHOD = "Bad HTTP method"

ApiResult = Dict[str, Any]


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    return value


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def build_query_string(params: Mapping[str, Any], auth_params: Mapping[str, Any]) -> str:
    """Encodes GET parameters; sequence values become repeated ``key[]=value`` pairs placed first.

    ``None`` values are left out, both as scalars and as sequence items.
    """

    array_parts = []
    scalars: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if _is_sequence(value):
            for item in value:
                if item is not None:
                    array_parts.append(f"{quote_plus(str(key))}[]={quote_plus(str(_query_value(item)))}")
        else:
            scalars[key] = _query_value(value)
    scalars.update(auth_params)
    return "&".join(array_parts + [urlencode(scalars)])


class ZimbraAPIService:
    """Sends authenticated requests on behalf of local users.

    Holds no per-user state: base URL, token and credentials are read from
    the injected store on every call.
    """

    def __init__(
        self,
        http_client: HttpClient,
        store: CredentialStore,
        agent_name: str = AGENT_NAME,
        agent_version: str = __version__,
    ) -> None:
        self._client = http_client
        self._store = store
        self._agent_name = agent_name
        self._agent_version = agent_version
        self._auth_api = AuthAPI(http_client, agent_name, agent_version)

    def get_base_url(self, user: str) -> str:
        admin_url = self._store.get_app_value(ADMIN_URL_KEY)
        return self._store.get_user_value(user, URL_KEY, admin_url) or admin_url

    def get_user_name(self, user: str) -> str:
        return self._store.get_user_value(user, USER_NAME_KEY)

    def get_session(self, user: str) -> UserSession:
        return UserSession(
            base_url=self.get_base_url(user),
            login=self._store.get_user_value(user, LOGIN_KEY),
            password=self._store.get_user_value(user, PASSWORD_KEY),
            user_name=self.get_user_name(user),
            token=self._store.get_user_value(user, TOKEN_KEY) or None,
        )

    def is_user_connected(self, user: str) -> bool:
        return self.get_session(user).is_connected

    def connect(self, user: str, login: str, password: str, url: Optional[str] = None) -> ApiResult:
        """Logs in and persists a complete session for ``user``.

        Nothing is written to the store unless the login succeeds, so a
        failed attempt against a new ``url`` keeps the previous server.
        """

        base_url = url.rstrip("/") if url else self.get_base_url(user)
        result = self._auth_api.login(base_url, login, password).as_dict()
        if "token" in result:
            if url:
                self._store.set_user_value(user, URL_KEY, base_url)
            self._store.set_user_value(user, TOKEN_KEY, result["token"])
            self._store.set_user_value(user, LOGIN_KEY, login)
            self._store.set_user_value(user, PASSWORD_KEY, password)
            self._store.set_user_value(user, USER_NAME_KEY, login)
        return result

    def disconnect(self, user: str) -> None:
        for key in (TOKEN_KEY, LOGIN_KEY, PASSWORD_KEY, USER_NAME_KEY):
            self._store.delete_user_value(user, key)
        logging.info("Cleared Zimbra session of %s", user)

    def login(self, user: str, login: str, password: str) -> ApiResult:
        """Exchanges credentials for a token: ``{"token": ...}`` or ``{"error": ...}``."""

        return self._auth_api.login(self.get_base_url(user), login, password).as_dict()

    def rest_request(
        self,
        user: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        method: str = "GET",
        json_response: bool = True,
    ) -> ApiResult:
        params = dict(params or {})
        if method not in SUPPORTED_METHODS:
            return {"error": BAD_METHOD}

        def send() -> ApiResult:
            return self._rest_once(user, path, params, method, json_response)

        return self._call_with_reauth(user, send, REST_AUTH_FAILURE_STATUS, self._rest_fault)

    def soap_request(
        self,
        user: str,
        function: str,
        namespace: str,
        params: Optional[Mapping[str, Any]] = None,
        json_response: bool = True,
    ) -> ApiResult:
        params = dict(params or {})

        def send() -> ApiResult:
            return self._soap_once(user, function, namespace, params, json_response)

        return self._call_with_reauth(user, send, SOAP_AUTH_FAILURE_STATUS, self._soap_fault)

    def _rest_once(self, user: str, path: str, params: Dict[str, Any], method: str, json_response: bool) -> ApiResult:
        token = self._store.get_user_value(user, TOKEN_KEY)
        url = f"{self.get_base_url(user)}/{path}"
        auth_params: Dict[str, Any] = {"auth": "qp", "zauthtoken": token}
        if json_response:
            auth_params["fmt"] = "json"

        payload = None
        if method == "GET":
            url = f"{url}?{build_query_string(params, auth_params)}"
        else:
            if params:
                payload = params
            url = f"{url}?{urlencode(auth_params)}"

        response = self._client.send(method, url, json=payload)
        return self._decode(response, json_response)

    def _soap_once(
        self, user: str, function: str, namespace: str, params: Dict[str, Any], json_response: bool
    ) -> ApiResult:
        token = self._store.get_user_value(user, TOKEN_KEY)
        envelope = build_envelope(
            build_request_header(self.get_user_name(user), token, self._agent_name, self._agent_version),
            build_request_body(function, namespace, params),
        )
        url = f"{self.get_base_url(user)}/{SOAP_PATH}"
        response = self._client.send("POST", url, headers=dict(JSON_HEADERS), body=json.dumps(envelope))
        return self._decode(response, json_response)

    @staticmethod
    def _decode(response: HttpResponse, json_response: bool) -> ApiResult:
        if response.status_code >= 400:
            return {"error": BAD_CREDENTIALS}
        if not json_response:
            return {"body": response.body, "headers": response.headers}
        try:
            data = response.decode_json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logging.warning("Zimbra API error: undecodable JSON response")
            return {"error": INVALID_RESPONSE}
        return data

    @staticmethod
    def _rest_fault(exc: TransportError) -> ApiResult:
        if isinstance(exc, ClientError):
            return {"error": BAD_CREDENTIALS}
        logging.debug("Zimbra API error: %s", exc)
        return {"error": str(exc)}

    @staticmethod
    def _soap_fault(exc: TransportError) -> ApiResult:
        logging.debug("Zimbra API error: %s", exc)
        return {"error": str(exc)}

    def _call_with_reauth(
        self,
        user: str,
        send: Callable[[], ApiResult],
        auth_failure_status: int,
        on_fault: Callable[[TransportError], ApiResult],
    ) -> ApiResult:
        retries_left = MAX_AUTH_RETRIES
        while True:
            try:
                return send()
            except TransportError as exc:
                if exc.status_code != auth_failure_status:
                    return on_fault(exc)
                if retries_left <= 0 or not self._reauthenticate(user):
                    logging.debug("Zimbra API error: %s", exc)
                    return {"error": str(exc)}
                retries_left -= 1

    def _reauthenticate(self, user: str) -> bool:
        """Refreshes the stored token; forgets login/password when the server rejects them."""

        login = self._store.get_user_value(user, LOGIN_KEY)
        password = self._store.get_user_value(user, PASSWORD_KEY)
        if not login or not password:
            return False

        result = self.login(user, login, password)
        if "token" in result:
            self._store.set_user_value(user, TOKEN_KEY, result["token"])
            logging.info("Refreshed Zimbra token for %s", user)
            return True

        self._store.delete_user_value(user, LOGIN_KEY)
        self._store.delete_user_value(user, PASSWORD_KEY)
        logging.warning("Zimbra re-login failed for %s, stored credentials removed", user)
        return False
