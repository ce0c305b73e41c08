"""Google Calendar: find the owner's calendar, list busy events, insert bookings."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from typing import Any

from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .credentials import CredentialProvider
from .errors import UpstreamUnavailableError

DEFAULT_CALENDAR_ID = "primary"
CALENDAR_NAME_CANDIDATES = ["Work", "Main", "Primary", "Default"]
PAGE_SIZE = 2500


def _rfc3339(instant: datetime) -> str:
    return instant.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class GoogleCalendarClient:
    """Calendar v3 client for the owner's calendar. Errors surface as UpstreamUnavailableError."""

    def __init__(
        self,
        credential_provider: CredentialProvider,
        calendar_id: str | None = None,
        calendar_name: str | None = None,
    ):
        self.credential_provider = credential_provider
        self.calendar_id = calendar_id
        self.calendar_name = calendar_name
        self._service: Any = None

    def _ensure_service(self) -> Any:
        if self._service is None:
            creds = self.credential_provider.get_credentials()
            self._service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        return self._service

    def _execute(self, request: Any, action: str) -> dict[str, Any]:
        try:
            return request.execute()
        except HttpError as exc:
            print(f"[calendar_client] {action} failed: {exc!r}", file=sys.stderr)
            raise UpstreamUnavailableError(f"Calendar {action} failed: {exc.reason}") from exc
        except GoogleAuthError as exc:
            print(f"[calendar_client] {action} auth failed: {exc!r}", file=sys.stderr)
            raise UpstreamUnavailableError(f"Calendar {action} failed: {exc}") from exc

    def find_calendar_id(self) -> str:
        """Explicit calendar id, else the first calendar whose name matches a candidate, else 'primary'."""
        if self.calendar_id:
            return self.calendar_id
        service = self._ensure_service()
        try:
            calendars = self._execute(service.calendarList().list(), "calendar discovery").get("items", [])
        except UpstreamUnavailableError as exc:
            print(f"[calendar_client] Falling back to '{DEFAULT_CALENDAR_ID}': {exc}", file=sys.stderr)
            return DEFAULT_CALENDAR_ID

        names = CALENDAR_NAME_CANDIDATES + ([self.calendar_name] if self.calendar_name else [])
        for name in names:
            for cal in calendars:
                summary = cal.get("summary") or ""
                if summary == name or name.lower() in summary.lower():
                    print(f"[calendar_client] Using calendar: {summary} ({cal['id']})", file=sys.stderr)
                    self.calendar_id = cal["id"]
                    return self.calendar_id
        self.calendar_id = DEFAULT_CALENDAR_ID
        return self.calendar_id

    def list_events(
        self,
        time_min: datetime,
        time_max: datetime,
        time_zone: str | None = None,
    ) -> list[dict[str, Any]]:
        """All event instances overlapping [time_min, time_max), recurring events expanded."""
        service = self._ensure_service()
        calendar_id = self.find_calendar_id()
        params: dict[str, Any] = {
            "calendarId": calendar_id,
            "timeMin": _rfc3339(time_min),
            "timeMax": _rfc3339(time_max),
            "singleEvents": True,
            "orderBy": "startTime",
            "maxResults": PAGE_SIZE,
        }
        if time_zone:
            params["timeZone"] = time_zone

        items: list[dict[str, Any]] = []
        page_token = None
        while True:
            if page_token:
                params["pageToken"] = page_token
            resp = self._execute(service.events().list(**params), "event listing")
            items.extend(resp.get("items", []))
            page_token = resp.get("nextPageToken")
            if not page_token:
                return items

    def insert_event(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create the event and let the provider email every attendee."""
        service = self._ensure_service()
        calendar_id = self.find_calendar_id()
        event = self._execute(
            service.events().insert(calendarId=calendar_id, body=body, sendUpdates="all"),
            "event insert",
        )
        print(f"[calendar_client] Created event: {event.get('htmlLink')}", file=sys.stderr)
        return event


def get_calendar_client() -> GoogleCalendarClient:
    return GoogleCalendarClient(
        CredentialProvider(),
        calendar_id=(os.environ.get("CALENDAR_ID") or "").strip() or None,
        calendar_name=(os.environ.get("CALENDAR_NAME") or "").strip() or None,
    )
