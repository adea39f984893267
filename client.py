"""
Async client for the LifeTrack REST API.

Every call returns the parsed JSON payload or raises ApiError carrying the
server's ``error``/``message`` text (or a generic fallback). list_tasks
raises too, so an empty list always means the user has no tasks.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from details import CategoryDetails, encode
from validation import MIN_PASSWORD_LENGTH, is_valid_email, is_valid_password, missing_fields

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5001/api"


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        for key in ("error", "message"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return fallback


class LifeTrackClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            transport=transport,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "LifeTrackClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, fallback: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(fallback) from exc
        if response.is_error:
            raise ApiError(_error_message(response, fallback), response.status_code)
        return response.json()

    # -- auth --

    async def register(self, name: str, email: str, password: str, emergency_contact: str) -> Dict[str, Any]:
        payload = {"name": name, "email": email, "password": password, "emergencyContact": emergency_contact}
        if missing_fields(payload, payload.keys()):
            raise ApiError("All fields are required")
        if not is_valid_email(email):
            raise ApiError("Invalid email format")
        if not is_valid_password(password):
            raise ApiError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if not is_valid_email(emergency_contact):
            raise ApiError("Invalid emergency contact email")
        return await self._request("POST", "register", "Registration failed", json=payload)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        if not email or not password:
            raise ApiError("Email and password are required")
        return await self._request("POST", "login", "Login failed", json={"email": email, "password": password})

    # -- tasks --

    async def list_tasks(self, user_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"tasks/{user_id}", "Failed to fetch tasks")

    async def create_task(
        self,
        user_id: str,
        title: Optional[str] = None,
        category: Optional[str] = None,
        *,
        time: Optional[str] = None,
        notes: Optional[str] = None,
        is_completed: bool = False,
        details: Optional[CategoryDetails] = None,
    ) -> Dict[str, Any]:
        """
        Create a task. When ``details`` is given its category, time and notes
        (and, for meals, hydration and check-ins, its title) fill the payload.
        """
        payload: Dict[str, Any] = {"userId": user_id, "title": title, "category": category,
                                   "time": time, "notes": notes, "isCompleted": is_completed}
        if details is not None:
            wire = encode(details)
            if title:
                wire.pop("title", None)
            payload.update(wire)
        payload = {k: v for k, v in payload.items() if v is not None}
        return await self._request("POST", "tasks", "Failed to create task", json=payload)

    async def complete_task(self, task_id: str) -> Dict[str, Any]:
        return await self._request("PUT", f"tasks/{task_id}", "Failed to update task", json={"isCompleted": True})

    async def delete_task(self, task_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"tasks/{task_id}", "Failed to delete task")
