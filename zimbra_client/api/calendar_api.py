"""API client for upcoming calendar appointments."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from .zimbra_api import ZimbraAPIService

MAIL_NS = "urn:zimbraMail"
EVENT_WINDOW_MS = 60 * 60 * 24 * 30 * 1000
SEARCH_LIMIT = 100


def calendar_folder_ids(folders: Iterable[Any]) -> List[str]:
    """Ids of every top folder, each followed by its direct subfolders; entries without an id are skipped."""

    ids = []
    for folder in folders:
        if not isinstance(folder, dict):
            continue
        if folder.get("id") is not None:
            ids.append(str(folder["id"]))
        for sub_folder in folder.get("folder") or []:
            if isinstance(sub_folder, dict) and sub_folder.get("id") is not None:
                ids.append(str(sub_folder["id"]))
    return ids


def build_folder_query(folders: Iterable[Any]) -> str:
    """OR-combines ``inid:"<id>"`` for every calendar folder."""

    return "(" + " OR ".join(f'inid:"{folder_id}"' for folder_id in calendar_folder_ids(folders)) + ")"


def _event_start(event: Dict[str, Any]) -> float:
    instances = event.get("inst") or []
    if instances and isinstance(instances[0], dict) and "s" in instances[0]:
        return instances[0]["s"]
    # events without an instance go last
    return float("inf")


def sort_events(events: List[Any]) -> List[Dict[str, Any]]:
    """Ascending by first instance start; equal starts keep their server order."""

    return sorted((event for event in events if isinstance(event, dict)), key=_event_start)


class CalendarAPI:
    """Searches appointments across every calendar folder of the account."""

    def __init__(self, service: ZimbraAPIService) -> None:
        self._service = service

    def get_calendar_folders(self, user: str) -> List[Dict[str, Any]]:
        result = self._service.soap_request(user, "GetFolderRequest", MAIL_NS, {"view": "appointment"})
        if "error" in result:
            logging.warning("Failed to list calendars for %s: %s", user, result["error"])
            return []
        return ((result.get("Body") or {}).get("GetFolderResponse") or {}).get("folder") or []

    def get_upcoming_events(self, user: str, since_ts: Optional[int] = None) -> List[Dict[str, Any]]:
        folders = self.get_calendar_folders(user)
        if not calendar_folder_ids(folders):
            logging.info("No calendar folders found for %s", user)
            return []

        if since_ts is None:
            since_ts = int(time.time())
        since_ms = since_ts * 1000
        params = {
            "query": {"_content": build_folder_query(folders)},
            "sortBy": "dateAsc",
            "fetch": "all",
            "offset": 0,
            "limit": SEARCH_LIMIT,
            "types": "appointment",
            "calExpandInstStart": since_ms,
            "calExpandInstEnd": since_ms + EVENT_WINDOW_MS,
        }
        result = self._service.soap_request(user, "SearchRequest", MAIL_NS, params)
        if "error" in result:
            logging.warning("Event search failed for %s: %s", user, result["error"])
            return []
        events = ((result.get("Body") or {}).get("SearchResponse") or {}).get("appt") or []
        return sort_events(events)
