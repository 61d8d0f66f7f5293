"""HFP v2 message body parsing."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from congestion_recorder.exceptions import PayloadParseError


class DeparturePayload(BaseModel):
    """Departure-related fields of an HFP event. Absent fields stay None."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    direction: str | int | None = Field(default=None, alias="dir")
    seen_at: str | None = Field(default=None, alias="tst")
    departure_date: str | None = Field(default=None, alias="oday")
    departure_time: str | None = Field(default=None, alias="start")
    doors_open: Any = Field(default=None, alias="drst")

    @property
    def has_doors_open(self) -> bool:
        return bool(self.doors_open)


def parse_payload(message: bytes | str, event_type: str | None) -> DeparturePayload:
    """Decode the JSON body and select the object keyed by the upper-cased event type.

    A body without that key yields an empty payload rather than an error.

    Raises:
        PayloadParseError: Body is not valid JSON, is not an object, or the
            event type is unknown.
    """
    if not event_type:
        msg = "Topic has no event type"
        raise PayloadParseError(msg)

    try:
        text = message.decode("utf-8") if isinstance(message, bytes) else message
        document = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"Payload is not valid JSON: {exc}"
        raise PayloadParseError(msg) from exc

    if not isinstance(document, dict):
        msg = f"Payload is a JSON {type(document).__name__}, expected an object"
        raise PayloadParseError(msg)

    event = document.get(event_type.upper()) or {}
    if not isinstance(event, dict):
        msg = f"Payload {event_type.upper()} entry is not an object"
        raise PayloadParseError(msg)

    try:
        return DeparturePayload.model_validate(event)
    except ValidationError as exc:
        msg = f"Payload {event_type.upper()} entry has invalid fields: {exc}"
        raise PayloadParseError(msg) from exc
