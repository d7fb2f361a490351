"""Data classes for the recitation domain model."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class WorkItem:
    """A previously learned unit that is due for recall."""
    id: int
    due_date: str
    content: str
    label: str = ""


@dataclass
class Segment:
    """A contiguous page range planned to be learned on one day."""
    id: int
    program_id: int
    planned_date: str
    range_start: int
    range_end: int
    completed_at: Optional[str] = None
    day_index: int = 0

    @property
    def pending(self) -> bool:
        return self.completed_at is None

    @property
    def pages_label(self) -> str:
        if self.range_start == self.range_end:
            return f"Page {self.range_start}"
        return f"Pages {self.range_start}-{self.range_end}"


@dataclass(frozen=True)
class ReviewEvent:
    occurred_at: str


@dataclass
class Program:
    id: int
    title: str
    created_at: Optional[str] = None


@dataclass(frozen=True)
class ContentLine:
    """One recitable line of material, located by page and position."""
    id: int
    page: int
    number: int
    text: str


@dataclass(frozen=True)
class Chapter:
    id: int
    name: str
    native_name: str = ""
    units: Optional[int] = None
