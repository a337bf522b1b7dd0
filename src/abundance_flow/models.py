"""Data classes for the journey and daily progress domain model."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

TOTAL_STAGES = 3
TOTAL_PATHS = 8


class JourneyMode(str, Enum):
    SELECTING = "selecting"
    ACTIVE = "active"
    COMPLETE = "complete"


class SlotState(str, Enum):
    LOCKED = "locked"
    AVAILABLE = "available"
    ACTIVE = "active"
    MASTERED = "mastered"


class Mood(str, Enum):
    ELEVATED = "elevated"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    LOW = "low"
    STRUGGLING = "struggling"


class ActivityKind(str, Enum):
    MEDITATION = "meditation"
    JOURNAL = "journal"
    QUICK_SHIFT = "quick_shift"
    EXERCISE = "exercise"
    MOOD = "mood"


class StreakKind(str, Enum):
    MEDITATION = "meditation"
    JOURNAL = "journal"
    OVERALL = "overall"


@dataclass(frozen=True)
class Path:
    id: str
    name: str
    theme: str
    meaning: str
    stages: tuple[str, ...]


@dataclass
class JourneyState:
    mode: JourneyMode = JourneyMode.SELECTING
    selected_path_id: Optional[str] = None
    stages_completed: int = 0
    mastered_path_ids: list[str] = field(default_factory=list)
    updated_at: int = 0  # epoch millis


@dataclass(frozen=True)
class CurrentTask:
    path_id: str
    stage: int  # 1-indexed
    text: str


@dataclass
class MoodEntry:
    timestamp: str
    mood: Mood
    note: Optional[str] = None


@dataclass
class DailyActivity:
    date: str
    meditations: int = 0
    journal_entries: int = 0
    quick_shifts: int = 0
    exercises: list[str] = field(default_factory=list)
    mood_entries: list[MoodEntry] = field(default_factory=list)

    @property
    def latest_mood(self) -> Optional[Mood]:
        return self.mood_entries[-1].mood if self.mood_entries else None


@dataclass
class Streak:
    kind: StreakKind
    current: int = 0
    longest: int = 0
    last_credited: Optional[str] = None


@dataclass(frozen=True)
class WeeklyStats:
    average_score: int
    total_practices: int
