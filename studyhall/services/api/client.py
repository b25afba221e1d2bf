"""Facility API client - async HTTP access to branches, seats, shifts and students."""

import asyncio
from typing import Any, Dict, List, Optional, Type, TypeVar

import aiohttp
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ...core.config.settings import StudyHallSettings
from ...core.exceptions import FetchError, NetworkError, SubmitError
from ...core.infra.retry import get_fetch_retry
from ...models.schemas import Branch, Locker, RenewalPayload, Seat, ShiftDefinition, Student

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_RENEW_ERROR = "Failed to renew membership"
DEFAULT_DELETE_ERROR = "Failed to delete student"


class StudyHallApiClient:
    """
    Async client for the facility API.

    Read operations raise FetchError, write operations raise SubmitError.
    Transport failures on reads are retried before they surface.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 30):
        """
        Initialize facility API client.

        Args:
            base_url: API root, e.g. https://desk.example.com/api
            token: Optional bearer token
            timeout: Total request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._http_session: Optional[aiohttp.ClientSession] = None

        logger.info(f"StudyHallApiClient initialized for {self.base_url}")

    @classmethod
    def from_settings(cls, settings: StudyHallSettings) -> "StudyHallApiClient":
        """Build a client from application settings."""
        token = settings.api_token.get_secret_value() if settings.api_token else None
        return cls(base_url=settings.api_base_url, token=token, timeout=settings.request_timeout)

    async def __aenter__(self):
        """Async context manager entry."""
        await self._init_http_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _init_http_session(self) -> None:
        """Initialize HTTP session with connection pooling."""
        if self._http_session is None:
            headers = {"Accept": "application/json, text/plain, */*"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"

            connector = aiohttp.TCPConnector(
                limit=20,
                limit_per_host=10,
                ttl_dns_cache=120,
                keepalive_timeout=30,
            )
            timeout = aiohttp.ClientTimeout(total=self.timeout, connect=10)

            self._http_session = aiohttp.ClientSession(
                connector=connector,
                headers=headers,
                timeout=timeout,
            )
            logger.debug("HTTP session initialized")

    async def close(self) -> None:
        """Close HTTP session."""
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    @property
    def _session(self) -> aiohttp.ClientSession:
        """Get HTTP session, raising error if not initialized."""
        if self._http_session is None:
            raise RuntimeError("HTTP session not initialized. Call _init_http_session() first.")
        return self._http_session

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @get_fetch_retry()
    async def _get_json(
        self, path: str, resource: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        GET a JSON document.

        Raises:
            NetworkError: Transport failure (retried)
            FetchError: Non-200 answer or a body that is not JSON
        """
        await self._init_http_session()
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}

        try:
            async with self._session.get(self._url(path), params=query) as response:
                if response.status != 200:
                    logger.error(f"Fetching {resource} failed with status {response.status}")
                    raise FetchError(
                        f"Failed to fetch {resource} (status {response.status})",
                        resource=resource,
                        status=response.status,
                    )

                try:
                    return await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    error_text = await response.text()
                    logger.error(
                        f"Unexpected non-JSON response for {resource}: {error_text[:200]}..."
                    )
                    raise FetchError(
                        f"Non-JSON response while fetching {resource}", resource=resource
                    )
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            logger.warning(f"Network error while fetching {resource}: {e}")
            raise NetworkError(f"Network error while fetching {resource}: {e}") from e

    async def _fetch(
        self, resource: str, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        try:
            return await self._get_json(path, resource, params)
        except NetworkError as e:
            raise FetchError(f"Failed to fetch {resource}: {e.message}", resource=resource) from e

    @staticmethod
    def _parse_list(resource: str, items: Any, model: Type[ModelT]) -> List[ModelT]:
        if not isinstance(items, list):
            raise FetchError(f"Malformed {resource} response", resource=resource)
        try:
            return [model.model_validate(item) for item in items]
        except PydanticValidationError as e:
            logger.error(f"Malformed {resource} entry: {e}")
            raise FetchError(f"Malformed {resource} response", resource=resource) from e

    @staticmethod
    def _unwrap(resource: str, data: Any, key: str) -> Any:
        if not isinstance(data, dict):
            raise FetchError(f"Malformed {resource} response", resource=resource)
        return data.get(key, [])

    async def get_schedules(self) -> List[ShiftDefinition]:
        """
        Get every shift definition.

        Returns:
            List of shifts with their nominal fee
        """
        data = await self._fetch("schedules", "/schedules")
        shifts = self._parse_list(
            "schedules", self._unwrap("schedules", data, "schedules"), ShiftDefinition
        )
        logger.info(f"Retrieved {len(shifts)} shift definitions")
        return shifts

    async def get_branches(self) -> List[Branch]:
        """
        Get every branch.

        Returns:
            List of branches
        """
        data = await self._fetch("branches", "/branches")
        branches = self._parse_list("branches", data, Branch)
        logger.info(f"Retrieved {len(branches)} branches")
        return branches

    async def get_expired_memberships(self, branch_id: Optional[int] = None) -> List[Student]:
        """
        Get students whose membership has expired.

        Args:
            branch_id: Restrict the list to one branch, or None for all branches

        Returns:
            List of students
        """
        data = await self._fetch(
            "expired memberships", "/students/expired-memberships", {"branchId": branch_id}
        )
        return self._parse_list(
            "expired memberships", self._unwrap("expired memberships", data, "students"), Student
        )

    async def get_student(self, student_id: int) -> Student:
        """
        Get full student detail including current assignments.

        Args:
            student_id: Student ID

        Returns:
            Student record
        """
        data = await self._fetch("student", f"/students/{student_id}")
        try:
            return Student.model_validate(data)
        except PydanticValidationError as e:
            raise FetchError("Malformed student response", resource="student") from e

    async def get_seats(self, branch_id: int) -> List[Seat]:
        """
        Get all seats of a branch.

        Args:
            branch_id: Branch ID

        Returns:
            List of seats with their occupant, if any
        """
        data = await self._fetch("seats", "/seats", {"branchId": branch_id})
        return self._parse_list("seats", self._unwrap("seats", data, "seats"), Seat)

    async def get_lockers(self, branch_id: int) -> List[Locker]:
        """
        Get all lockers of a branch.

        Args:
            branch_id: Branch ID

        Returns:
            List of lockers with their occupant, if any
        """
        data = await self._fetch("lockers", "/lockers", {"branchId": branch_id})
        return self._parse_list("lockers", self._unwrap("lockers", data, "lockers"), Locker)

    async def get_available_shifts(self, seat_id: int) -> List[ShiftDefinition]:
        """
        Get the shifts that are free for a seat.

        Args:
            seat_id: Seat ID

        Returns:
            List of free shifts
        """
        data = await self._fetch("available shifts", f"/seats/{seat_id}/available-shifts")
        return self._parse_list(
            "available shifts",
            self._unwrap("available shifts", data, "availableShifts"),
            ShiftDefinition,
        )

    async def _write(
        self, method: str, path: str, default_error: str, payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Issue a write request; the server's message is surfaced verbatim on rejection."""
        await self._init_http_session()

        try:
            async with self._session.request(method, self._url(path), json=payload) as response:
                try:
                    data = await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    data = None

                if 200 <= response.status < 300:
                    return data

                message = default_error
                if isinstance(data, dict) and data.get("message"):
                    message = str(data["message"])
                logger.error(f"{method} {path} rejected ({response.status}): {message}")
                raise SubmitError(message, status=response.status)
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            logger.error(f"Network error on {method} {path}: {e}")
            raise SubmitError(default_error) from e

    async def renew_student(self, student_id: int, payload: RenewalPayload) -> None:
        """
        Renew a student's membership.

        Args:
            student_id: Student ID
            payload: Complete renewal snapshot

        Raises:
            SubmitError: If the server rejects the renewal
        """
        await self._write(
            "POST", f"/students/{student_id}/renew", DEFAULT_RENEW_ERROR, payload.to_wire()
        )
        logger.info(f"Membership renewed for student {student_id}")

    async def delete_student(self, student_id: int) -> None:
        """
        Delete a student.

        Args:
            student_id: Student ID

        Raises:
            SubmitError: If the server refuses the deletion
        """
        await self._write("DELETE", f"/students/{student_id}", DEFAULT_DELETE_ERROR)
        logger.info(f"Student {student_id} deleted")
