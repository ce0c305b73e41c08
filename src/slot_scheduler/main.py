"""FastAPI app: adjacent-slot availability and booking against the owner's Google Calendar."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load .env when running locally (repo root .env / .env.local)
_repo_root = Path(__file__).resolve().parent.parent.parent
load_dotenv(_repo_root / ".env")
load_dotenv(_repo_root / ".env.local")

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from . import calendar_client, credentials, scheduler
from .business_window import parse_calendar_date, resolve_zone
from .errors import InvalidConfigError, InvalidDateError, UpstreamUnavailableError
from .schemas import BookingRequest, BookingResponse

app = FastAPI(title="Adjacent Slot Scheduler", version="0.1.0")


@app.exception_handler(InvalidDateError)
@app.exception_handler(InvalidConfigError)
async def _client_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": "Missing required parameters"})


@app.exception_handler(UpstreamUnavailableError)
async def _upstream_error(request: Request, exc: UpstreamUnavailableError) -> JSONResponse:
    print(f"[main] Upstream failure on {request.url.path}: {exc}", file=sys.stderr)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


def _missing(*names: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": f"Missing required parameter(s): {', '.join(names)}"})


def _requester_zone(time_zone: str | None, config: scheduler.SchedulerConfig) -> str:
    """Requester's display zone, validated; slots are always computed in the business zone."""
    if not time_zone:
        return config.timezone
    resolve_zone(time_zone)
    return time_zone


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise InvalidDateError(f"{name} must be an integer, got {value!r}") from exc


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/auth/status")
def auth_status() -> dict[str, bool]:
    return {"authenticated": credentials.CredentialProvider().is_authenticated()}


@app.get("/auth/admin")
def auth_admin() -> RedirectResponse:
    """Send the calendar owner to Google's consent screen."""
    return RedirectResponse(credentials.CredentialProvider().authorization_url())


@app.get("/auth/google/callback")
def auth_callback(code: str | None = None) -> Any:
    if not code:
        return _missing("code")
    credentials.CredentialProvider().complete_authorization(code)
    return PlainTextResponse("Authentication successful! You can close this window.")


@app.get("/availability/day")
def availability_day(date: str | None = None, timezone: str | None = None) -> Any:
    """Bookable slots for one date: [{start, end}, ...] as UTC instants."""
    if not date:
        return _missing("date")
    config = scheduler.SchedulerConfig.from_env()
    day = parse_calendar_date(date)
    zone = _requester_zone(timezone, config)
    print(f"[main] Finding available slots for {day.isoformat()}, timezone: {zone}", file=sys.stderr)
    slots = scheduler.available_slots(day, config, calendar_client.get_calendar_client(), zone)
    return [s.to_dict() for s in slots]


@app.get("/availability/month")
def availability_month(year: str | None = None, month: str | None = None, timezone: str | None = None) -> Any:
    """{YYYY-MM-DD: bool} for each day of the month; weekends are false."""
    if not year or not month:
        return _missing(*[n for n, v in (("year", year), ("month", month)) if not v])
    config = scheduler.SchedulerConfig.from_env()
    zone = _requester_zone(timezone, config)
    return scheduler.month_availability(
        _parse_int(year, "year"),
        _parse_int(month, "month"),
        config,
        calendar_client.get_calendar_client(),
        zone,
    )


@app.get("/availability/range")
def availability_range(start: str | None = None, end: str | None = None) -> Any:
    """{YYYY-MM-DD: {adjacent, all, isWeekend}} for each date in [start, end]."""
    if not start or not end:
        return _missing(*[n for n, v in (("start", start), ("end", end)) if not v])
    config = scheduler.SchedulerConfig.from_env()
    return scheduler.range_availability(
        parse_calendar_date(start),
        parse_calendar_date(end),
        config,
        calendar_client.get_calendar_client(),
    )


@app.post("/book")
def book(req: BookingRequest) -> Any:
    """Validate the requested interval against the business window, then create the event."""
    config = scheduler.SchedulerConfig.from_env()
    zone = _requester_zone(req.timezone, config)
    start = scheduler.parse_instant(req.startTime)
    end = scheduler.parse_instant(req.endTime)

    reason = scheduler.booking_rejection(start, end, config)
    if reason:
        print(f"[main] Rejected booking {req.startTime} -> {req.endTime}: {reason}", file=sys.stderr)
        return JSONResponse(status_code=400, content={"booked": False, "reason": reason})

    print(f"[main] Booking for {req.name} ({req.email}) from {start.isoformat()} to {end.isoformat()}, tz: {zone}", file=sys.stderr)
    body = scheduler.build_event_body(
        start,
        end,
        req.name,
        req.email,
        zone,
        owner_email=(os.environ.get("OWNER_EMAIL") or "").strip() or None,
        meeting_link=(os.environ.get("MEETING_LINK") or "").strip() or None,
    )
    event = calendar_client.get_calendar_client().insert_event(body)
    return BookingResponse(eventId=event.get("id"), htmlLink=event.get("htmlLink")).model_dump()
