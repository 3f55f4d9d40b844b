"""API client for the address book REST resources."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from .zimbra_api import ApiResult, ZimbraAPIService

AVATAR_PATH = "service/home/~/"
AVATAR_SIZE = 240


class ContactsAPI:
    """Lists, searches and fetches pictures of the user's contacts."""

    def __init__(self, service: ZimbraAPIService) -> None:
        self._service = service

    def _contacts_path(self, user: str) -> str:
        return f"home/{self._service.get_user_name(user)}/contacts"

    def get_contacts(self, user: str) -> ApiResult:
        return self._service.rest_request(user, self._contacts_path(user))

    def search_contacts(self, user: str, query: str) -> List[Dict[str, Any]]:
        result = self._service.rest_request(user, self._contacts_path(user), {"query": query})
        if "error" in result:
            logging.warning("Contact search failed for %s: %s", user, result["error"])
        contacts = result.get("cn")
        if isinstance(contacts, list):
            return contacts
        return []

    def get_contact_avatar(self, user: str, resource_id: int) -> ApiResult:
        """Returns ``{"body", "headers"}`` of the contact picture, or an error."""

        params = {
            "id": resource_id,
            "part": 1,
            "max_width": AVATAR_SIZE,
            "max_height": AVATAR_SIZE,
        }
        return self._service.rest_request(user, AVATAR_PATH, params, "GET", json_response=False)
