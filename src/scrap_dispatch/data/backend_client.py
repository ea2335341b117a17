"""HTTP client for the scrap operations backend."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as SchemaValidationError

from ..config import settings
from ..models.domain import Collector, Crew, ScrapYard
from ..schemas.backend import BackendEnvelope, CrewRecord, EmployeeRecord, ScrapYardRecord
from ..services.dispatch.errors import CommitFailure

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_ERROR = "Failed to assign order"
STALE_ORDER_ERROR = "Order was modified by another operator. Reload the order and try again."

RecordT = TypeVar("RecordT", bound=BaseModel)


def _extract_rows(data: Any, key: str) -> list[Any]:
    """Return the list of rows from ``data`` which is either a list or ``{key: [...]}``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        rows = data.get(key)
        if isinstance(rows, list):
            return rows
    return []


def _parse_rows(rows: Iterable[Any], model: Type[RecordT], label: str) -> list[RecordT]:
    parsed: list[RecordT] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except SchemaValidationError as e:
            # Skip invalid rows but continue processing
            logger.warning(f"Skipping invalid {label} row: {e.error_count()} validation error(s)")
    return parsed


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return DEFAULT_COMMIT_ERROR
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return DEFAULT_COMMIT_ERROR


class BackendClient:
    """Reads dispatch candidates from and writes assignments to the operations backend."""

    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        page_limit: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.backend_base_url
        if not self.base_url:
            raise ValueError("Backend base URL is not configured.")
        self.api_token = api_token if api_token is not None else settings.backend_api_token
        self.timeout = timeout if timeout is not None else settings.backend_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.backend_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.backend_backoff_seconds
        self.page_limit = page_limit if page_limit is not None else settings.backend_page_limit
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    def _get_data(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``path`` and return the envelope's ``data``, retrying transient failures."""
        with self._get_client() as client:
            attempt = 0
            while True:
                try:
                    response = client.get(path, params=params)
                    response.raise_for_status()
                    return BackendEnvelope.model_validate(response.json()).data
                except httpx.HTTPStatusError as e:
                    if e.response.status_code < 500:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except (httpx.TimeoutException, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Backend request {path} failed after {self.max_retries} retries: {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Backend request {path} failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)

    def list_active_scrap_yards(self) -> tuple[ScrapYard, ...]:
        data = self._get_data("/scrap-yards", params={"page": 1, "limit": self.page_limit})
        records = _parse_rows(_extract_rows(data, "scrapYards"), ScrapYardRecord, "scrap yard")
        return tuple(record.to_domain() for record in records if record.is_active)

    def list_active_collectors(self, role_filter: Optional[str] = None) -> tuple[Collector, ...]:
        params: dict[str, Any] = {"isActive": "true", "page": 1, "limit": self.page_limit}
        if role_filter:
            params["role"] = role_filter
        data = self._get_data("/employees", params=params)
        records = _parse_rows(_extract_rows(data, "employees"), EmployeeRecord, "employee")
        return tuple(
            record.to_domain()
            for record in records
            if record.is_active and (not role_filter or record.role in (None, role_filter))
        )

    def list_active_crews(self) -> tuple[Crew, ...]:
        data = self._get_data("/crews")
        records = _parse_rows(_extract_rows(data, "crews"), CrewRecord, "crew")
        return tuple(record.to_domain() for record in records if record.is_active)

    def commit_assignment(
        self,
        order_id: str,
        payload: dict[str, Any],
        *,
        version: str | None = None,
        idempotency_key: str | None = None,
    ) -> None:
        """Persist an assignment on the order. Raises CommitFailure; never retries."""
        collector_ids = payload.get("collectorIds") or []
        body = {
            **payload,
            "orderStatus": "ASSIGNED",
            # legacy single-collector field still read by the order screens
            "assignedCollectorId": collector_ids[0] if collector_ids else None,
        }
        headers: dict[str, str] = {}
        if version:
            headers["If-Match"] = version
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            with self._get_client() as client:
                response = client.put(f"/orders/{order_id}", json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Assignment commit for order {order_id} failed to reach backend: {e}")
            raise CommitFailure(f"Could not reach the order service: {e}") from e

        if response.status_code in (httpx.codes.CONFLICT, httpx.codes.PRECONDITION_FAILED):
            raise CommitFailure(STALE_ORDER_ERROR)
        if response.is_error:
            message = _error_message(response)
            logger.warning(f"Backend rejected assignment for order {order_id} ({response.status_code}): {message}")
            raise CommitFailure(message)

    def check_health(self) -> bool:
        try:
            with self._get_client() as client:
                response = client.get("/health", timeout=5.0)
            return response.is_success
        except httpx.HTTPError:
            return False
