"""
Events Client.

Async client for the external calendar backend's /events API. Event
storage lives there; this service only reads events to time reminders and
relays form submissions.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from calendar_reminders.models.event import CreateEventRequest, EventRecord

logger = logging.getLogger(__name__)

EDIT_SCOPES = ("instance", "series")

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
}


class EventsClientError(Exception):
    """Raised when the calendar backend cannot satisfy a request."""
    def __init__(self, code: str, message: str, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


def _check_scope(scope: str) -> None:
    if scope not in EDIT_SCOPES:
        raise ValueError(f"scope must be one of {', '.join(EDIT_SCOPES)}, got: {scope}")


class EventsClient:
    """Client for the calendar backend's event endpoints."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            base_url: Backend API root, e.g. http://localhost:8080/api
            token: Bearer token forwarded as-is
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "EventsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Calendar backend unreachable for {method} {path}: {e}")
            raise EventsClientError(
                code="UNAVAILABLE",
                message="Calendar backend is unreachable",
                details={"error": str(e)},
            ) from e

        if response.is_error:
            code = _STATUS_CODES.get(response.status_code, "BACKEND_ERROR")
            logger.warning(f"Calendar backend returned {response.status_code} for {method} {path}")
            raise EventsClientError(
                code=code,
                message=response.text or response.reason_phrase,
                status_code=response.status_code,
            )

        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise EventsClientError(
                code="INVALID_RESPONSE",
                message="Calendar backend returned a body that is not JSON",
                status_code=response.status_code,
            ) from e

    def _records(self, response: httpx.Response) -> List[EventRecord]:
        data = self._json(response)
        if not isinstance(data, list):
            return []
        return [EventRecord.model_validate(item) for item in data]

    async def get_events(self) -> List[EventRecord]:
        """Fetch every event of the authenticated user."""
        return self._records(await self._request("GET", "/events"))

    async def get_events_in_range(self, start: datetime, end: datetime,
                                  tag_id: Optional[int] = None) -> List[EventRecord]:
        """Fetch events between start and end, optionally for one tag."""
        params: Dict[str, Any] = {"start": start.isoformat(), "end": end.isoformat()}
        if tag_id is not None:
            params["tagId"] = tag_id
        return self._records(await self._request("GET", "/events", params=params))

    async def create_event(self, request: CreateEventRequest) -> EventRecord:
        response = await self._request("POST", "/events", json=request.to_wire())
        return EventRecord.model_validate(self._json(response))

    async def update_event(self, event_id: int, request: CreateEventRequest,
                           scope: str = "instance") -> EventRecord:
        """Update one occurrence ("instance") or the whole series."""
        _check_scope(scope)
        response = await self._request(
            "PUT", f"/events/{event_id}", json=request.to_wire(), params={"scope": scope}
        )
        return EventRecord.model_validate(self._json(response))

    async def delete_event(self, event_id: int, scope: str = "instance") -> None:
        _check_scope(scope)
        await self._request("DELETE", f"/events/{event_id}", params={"scope": scope})
