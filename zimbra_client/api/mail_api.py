"""API client for inbox searches."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from .zimbra_api import ZimbraAPIService

UNREAD_QUERY = "is:unread"


def sort_emails(emails: List[Any]) -> List[Dict[str, Any]]:
    """Most recent first; messages sharing a date keep their server order. Non-object entries are dropped."""

    messages = [email for email in emails if isinstance(email, dict)]
    return sorted(messages, key=lambda email: email.get("d") or 0, reverse=True)


class MailAPI:
    def __init__(self, service: ZimbraAPIService) -> None:
        self._service = service

    def _inbox_messages(self, user: str, query: str) -> List[Dict[str, Any]]:
        path = f"home/{self._service.get_user_name(user)}/inbox"
        result = self._service.rest_request(user, path, {"query": query})
        if "error" in result:
            logging.warning("Inbox search failed for %s: %s", user, result["error"])
            return []
        return [message for message in result.get("m") or [] if isinstance(message, dict)]

    def search_emails(self, user: str, query: str, offset: int = 0, limit: int = 10) -> List[Dict[str, Any]]:
        return sort_emails(self._inbox_messages(user, query))[offset:offset + limit]

    def get_unread_emails(self, user: str, offset: int = 0, limit: int = 10) -> List[Dict[str, Any]]:
        return self.search_emails(user, UNREAD_QUERY, offset, limit)

    def get_unread_email_count(self, user: str) -> int:
        return len(self._inbox_messages(user, UNREAD_QUERY))
