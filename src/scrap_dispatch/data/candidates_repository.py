"""Point-in-time snapshot of the dispatch candidate pools."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

import httpx

from ..config import settings
from ..models.domain import Collector, Crew, Order, ScrapYard
from ..services.dispatch.errors import CandidateLoadError
from ..services.geospatial import distance_between

logger = logging.getLogger(__name__)


class CandidateRepository(Protocol):
    def list_active_scrap_yards(self) -> Sequence[ScrapYard]: ...

    def list_active_collectors(self, role_filter: Optional[str] = None) -> Sequence[Collector]: ...

    def list_active_crews(self) -> Sequence[Crew]: ...


@dataclass(frozen=True, slots=True)
class CandidateSnapshot:
    yards: tuple[ScrapYard, ...] = ()
    collectors: tuple[Collector, ...] = ()
    crews: tuple[Crew, ...] = ()
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)

    def find_yard(self, yard_id: Optional[str]) -> Optional[ScrapYard]:
        return next((yard for yard in self.yards if yard.yard_id == yard_id), None)

    def find_collector(self, collector_id: str) -> Optional[Collector]:
        return next((c for c in self.collectors if c.collector_id == collector_id), None)

    def find_crew(self, crew_id: Optional[str]) -> Optional[Crew]:
        return next((crew for crew in self.crews if crew.crew_id == crew_id), None)


def load_candidate_snapshot(
    repository: CandidateRepository,
    role_filter: Optional[str] = None,
) -> CandidateSnapshot:
    """Fetch yards, collectors and crews concurrently and wait for all three.

    A failing pool is recorded in ``errors`` and left empty so the session stays
    usable. CandidateLoadError is raised only when every pool failed.
    """
    role = role_filter if role_filter is not None else settings.collector_role
    fetchers: dict[str, Callable[[], Sequence]] = {
        "yards": repository.list_active_scrap_yards,
        "collectors": lambda: repository.list_active_collectors(role),
        "crews": repository.list_active_crews,
    }

    results: dict[str, tuple] = {}
    errors: dict[str, str] = {}
    with ThreadPoolExecutor(max_workers=len(fetchers)) as executor:
        futures = {name: executor.submit(fetch) for name, fetch in fetchers.items()}
        for name, future in futures.items():
            try:
                results[name] = tuple(future.result())
            except (httpx.HTTPError, ValueError, ConnectionError) as e:
                logger.warning(f"Failed to load {name} for dispatch: {e}")
                errors[name] = str(e) or type(e).__name__
                results[name] = ()

    if len(errors) == len(fetchers):
        raise CandidateLoadError("Failed to load dispatch candidates", errors)

    return CandidateSnapshot(
        yards=results["yards"],
        collectors=results["collectors"],
        crews=results["crews"],
        errors=errors,
    )


def rank_yards(order: Order, yards: Sequence[ScrapYard]) -> list[tuple[ScrapYard, Optional[float]]]:
    """Order yards nearest first; yards with unknown distance keep their order at the end."""

    measured = [(yard, distance_between(order.coordinates, yard.coordinates)) for yard in yards]
    known = sorted((item for item in measured if item[1] is not None), key=lambda item: item[1])
    unknown = [item for item in measured if item[1] is None]
    return known + unknown
