"""Builders for the SOAP-over-JSON envelope understood by ``/service/soap``."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

ZIMBRA_NS = "urn:zimbra"
NS_KEY = "_jsns"


def _context(agent_name: str, agent_version: str) -> Dict[str, Any]:
    return {
        NS_KEY: ZIMBRA_NS,
        "userAgent": {
            "name": agent_name,
            "version": agent_version,
        },
    }


def build_request_header(user_name: str, token: str, agent_name: str, agent_version: str) -> Dict[str, Any]:
    """Header for authenticated calls; the server voids expired tokens instead of accepting them."""

    context = _context(agent_name, agent_version)
    context["authTokenControl"] = {"voidOnExpired": True}
    context["account"] = {"_content": user_name, "by": "name"}
    context["authToken"] = token
    return {"context": context}


def build_login_header(agent_name: str, agent_version: str) -> Dict[str, Any]:
    return {"context": _context(agent_name, agent_version)}


def build_request_body(function: str, namespace: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return {function: {NS_KEY: namespace, **(params or {})}}


def build_envelope(header: Dict[str, Any], body: Dict[str, Any]) -> Dict[str, Any]:
    return {"Header": header, "Body": body}
