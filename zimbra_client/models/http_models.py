"""Models describing raw HTTP exchanges with the Zimbra server."""

from __future__ import annotations

import json
from typing import Any, Dict

from pydantic import BaseModel, Field


class HttpResponse(BaseModel):
    """Status, body and headers of a completed HTTP call."""

    status_code: int
    body: bytes = b""
    headers: Dict[str, str] = Field(default_factory=dict)

    def decode_json(self) -> Any:
        return json.loads(self.body)
