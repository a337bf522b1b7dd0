"""Persisted blob schemas.

Stored JSON is untrusted: it may come from an older build, a partial write or
hand editing. These models are the only way state crosses the storage
boundary, and any validation error means the blob is discarded.
"""
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, StrictInt, StrictStr, ValidationInfo, field_validator, model_validator

from abundance_flow.models import (
    TOTAL_STAGES, DailyActivity, JourneyMode, JourneyState, Mood, MoodEntry, Streak, StreakKind,
)


def _check_day_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if len(value) != 10 or date.fromisoformat(value).isoformat() != value:
        raise ValueError(f"not a YYYY-MM-DD day key: {value!r}")
    return value


def _check_unique(values: list[str]) -> list[str]:
    if len(set(values)) != len(values):
        raise ValueError("duplicate identifiers")
    return values


class JourneyBlob(BaseModel):
    mode: JourneyMode
    selected_path_id: Optional[StrictStr] = None
    stages_completed: StrictInt = Field(ge=0, le=TOTAL_STAGES)
    mastered_path_ids: list[StrictStr]
    updated_at: StrictInt = Field(ge=0)

    @field_validator("mastered_path_ids")
    @classmethod
    def mastered_unique(cls, value):
        return _check_unique(value)

    @model_validator(mode="after")
    def check_mode_invariants(self, info: ValidationInfo):
        known = (info.context or {}).get("path_ids")
        if known is not None:
            referenced = set(self.mastered_path_ids)
            if self.selected_path_id is not None:
                referenced.add(self.selected_path_id)
            unknown = referenced - set(known)
            if unknown:
                raise ValueError(f"unknown path ids {sorted(unknown)}")

        selected = self.selected_path_id
        if self.mode is JourneyMode.SELECTING:
            if selected is not None or self.stages_completed != 0:
                raise ValueError("selecting mode must have no selection and zero stages")
        elif self.mode is JourneyMode.ACTIVE:
            if selected is None or self.stages_completed >= TOTAL_STAGES:
                raise ValueError("active mode needs a selection with stages remaining")
            if selected in self.mastered_path_ids:
                raise ValueError("active path is already mastered")
        else:
            if selected is None or self.stages_completed != TOTAL_STAGES:
                raise ValueError("complete mode needs a selection with all stages done")
            if selected not in self.mastered_path_ids:
                raise ValueError("completed path missing from mastered ids")
        return self

    @classmethod
    def from_state(cls, state: JourneyState) -> "JourneyBlob":
        return cls(
            mode=state.mode,
            selected_path_id=state.selected_path_id,
            stages_completed=state.stages_completed,
            mastered_path_ids=list(state.mastered_path_ids),
            updated_at=state.updated_at,
        )

    def to_state(self) -> JourneyState:
        return JourneyState(
            mode=self.mode,
            selected_path_id=self.selected_path_id,
            stages_completed=self.stages_completed,
            mastered_path_ids=list(self.mastered_path_ids),
            updated_at=self.updated_at,
        )


class MoodEntryBlob(BaseModel):
    timestamp: StrictStr
    mood: Mood
    note: Optional[StrictStr] = None


class DayBlob(BaseModel):
    date: StrictStr
    meditations: StrictInt = Field(default=0, ge=0)
    journal_entries: StrictInt = Field(default=0, ge=0)
    quick_shifts: StrictInt = Field(default=0, ge=0)
    exercises: list[StrictStr] = Field(default_factory=list)
    mood_entries: list[MoodEntryBlob] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def date_is_day_key(cls, value):
        return _check_day_key(value)

    @field_validator("exercises")
    @classmethod
    def exercises_unique(cls, value):
        return _check_unique(value)

    @classmethod
    def from_record(cls, record: DailyActivity) -> "DayBlob":
        return cls(
            date=record.date,
            meditations=record.meditations,
            journal_entries=record.journal_entries,
            quick_shifts=record.quick_shifts,
            exercises=list(record.exercises),
            mood_entries=[
                MoodEntryBlob(timestamp=m.timestamp, mood=m.mood, note=m.note) for m in record.mood_entries
            ],
        )

    def to_record(self) -> DailyActivity:
        return DailyActivity(
            date=self.date,
            meditations=self.meditations,
            journal_entries=self.journal_entries,
            quick_shifts=self.quick_shifts,
            exercises=list(self.exercises),
            mood_entries=[MoodEntry(timestamp=m.timestamp, mood=m.mood, note=m.note) for m in self.mood_entries],
        )


class StreakBlob(BaseModel):
    current: StrictInt = Field(default=0, ge=0)
    longest: StrictInt = Field(default=0, ge=0)
    last_credited: Optional[StrictStr] = None

    @field_validator("last_credited")
    @classmethod
    def last_credited_is_day_key(cls, value):
        return _check_day_key(value)

    @model_validator(mode="after")
    def longest_covers_current(self):
        if self.longest < self.current:
            raise ValueError("longest streak below current streak")
        return self


class ProgressBlob(BaseModel):
    daily: dict[str, DayBlob] = Field(default_factory=dict)
    streaks: dict[StreakKind, StreakBlob]
    total_meditations: StrictInt = Field(default=0, ge=0)
    total_journal_entries: StrictInt = Field(default=0, ge=0)
    total_practice_minutes: StrictInt = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_keys(self):
        for key, day in self.daily.items():
            if key != day.date:
                raise ValueError(f"day stored under {key!r} is dated {day.date!r}")
        missing = set(StreakKind) - set(self.streaks)
        if missing:
            raise ValueError(f"missing streaks {sorted(k.value for k in missing)}")
        return self

    def streak_records(self) -> dict[StreakKind, Streak]:
        return {
            kind: Streak(kind=kind, current=s.current, longest=s.longest, last_credited=s.last_credited)
            for kind, s in self.streaks.items()
        }
