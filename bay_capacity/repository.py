"""Repositories and read-only planning snapshots used by the service layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Generic,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
)

from .domain import ManufacturingBay, ManufacturingSchedule, Project

T = TypeVar("T")


class RepositoryError(RuntimeError):
    """Base exception for repository errors."""


class DuplicateRecordError(RepositoryError):
    """Raised when attempting to insert a record that already exists."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record is missing."""


class InMemoryRepository(Generic[T]):
    """Generic repository backed by a simple dictionary."""

    def __init__(self) -> None:
        self._items: MutableMapping[str, T] = {}

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item_id: str, item: T) -> None:
        if item_id in self._items:
            raise DuplicateRecordError(f"Record with id {item_id!r} already exists")
        self._items[item_id] = item

    def upsert(self, item_id: str, item: T) -> None:
        self._items[item_id] = item

    def get(self, item_id: str) -> T:
        try:
            return self._items[item_id]
        except KeyError as exc:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found") from exc

    def remove(self, item_id: str) -> None:
        if item_id not in self._items:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")
        del self._items[item_id]

    def list(self) -> List[T]:
        return list(self._items.values())

    def list_by(self, field_name: str, value: Any) -> List[T]:
        return [item for item in self._items.values() if getattr(item, field_name) == value]

    def __iter__(self) -> Iterator[T]:
        return iter(self._items.values())


@dataclass(frozen=True)
class PlanningSnapshot:
    """Immutable view of projects, bays and schedules at one point in time.

    Calculators take a snapshot as a parameter and never mutate it.
    """

    version: int
    projects: Tuple[Project, ...] = ()
    bays: Tuple[ManufacturingBay, ...] = ()
    schedules: Tuple[ManufacturingSchedule, ...] = ()

    @classmethod
    def of(
        cls,
        projects: Iterable[Project] = (),
        bays: Iterable[ManufacturingBay] = (),
        schedules: Iterable[ManufacturingSchedule] = (),
        *,
        version: int = 0,
    ) -> "PlanningSnapshot":
        return cls(
            version=version,
            projects=tuple(projects),
            bays=tuple(bays),
            schedules=tuple(schedules),
        )

    def projects_by_id(self) -> Mapping[str, Project]:
        return {project.id: project for project in self.projects}

    def bay(self, bay_id: str) -> Optional[ManufacturingBay]:
        for bay in self.bays:
            if bay.id == bay_id:
                return bay
        return None

    def schedules_for_bay(self, bay_id: str) -> List[ManufacturingSchedule]:
        return [schedule for schedule in self.schedules if schedule.bay_id == bay_id]


class SnapshotSource(Protocol):
    """Read-only data access collaborator handing out planning snapshots."""

    def snapshot(self) -> PlanningSnapshot:
        ...


__all__ = [
    "InMemoryRepository",
    "PlanningSnapshot",
    "SnapshotSource",
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
]
