"""Data models for story sequencing."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Address:
    """Place attached to a story. Opaque to the sequencer."""
    name: str
    address: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    coordinate_system: Optional[str] = None


@dataclass(frozen=True)
class Story:
    """A single life event as stored in its own record."""
    name: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    description: Optional[str] = None
    address: Optional[Address] = None
    story_id: Optional[str] = None


@dataclass(frozen=True)
class StoryInfo:
    """Story with the fields derived for one sequencing pass."""
    story: Story
    original_index: int
    date: Optional[str]
    time_minutes: Optional[int]

    @property
    def has_date(self) -> bool:
        return self.date is not None

    @property
    def has_time(self) -> bool:
        return self.time_minutes is not None


@dataclass(frozen=True)
class SequencedStory:
    """Story placed in the final order, annotated for rendering."""
    story: Story
    date: Optional[str]
    time_minutes: Optional[int]
    group_date: Optional[str]
    distance_from_previous: int = 0

    @property
    def has_date(self) -> bool:
        return self.date is not None

    @property
    def has_time(self) -> bool:
        return self.time_minutes is not None

    @property
    def name(self) -> str:
        return self.story.name

    @property
    def story_id(self) -> Optional[str]:
        return self.story.story_id


@dataclass
class SameDayStates:
    """Per-position same-day flags and ranks for a sequenced list."""
    is_same_day: list[bool] = field(default_factory=list)
    positions: list[int] = field(default_factory=list)


@dataclass
class ValidationResult:
    """Outcome of checking a start/end time pair."""
    valid: bool
    error: Optional[str] = None


@dataclass
class SyncResult:
    """Result of sync operation."""
    added: int
    updated: int
    deleted: int
    errors: list[str]
