"""Daily activity log, alignment score and streak tracking."""
import logging
from dataclasses import replace

from pydantic import ValidationError

from abundance_flow.clock import Clock, last_n_days, previous_day
from abundance_flow.models import (
    ActivityKind, DailyActivity, Mood, MoodEntry, Streak, StreakKind, WeeklyStats,
)
from abundance_flow.schemas import DayBlob, ProgressBlob, StreakBlob
from abundance_flow.scoring import advance_streak, alignment_score, streak_triggered
from abundance_flow.storage import KeyValueStore, load_blob, save_blob

logger = logging.getLogger(__name__)

PROGRESS_STORAGE_KEY = "abundance_progress_v1"
WEEK_DAYS = 7


def _copy_record(record: DailyActivity) -> DailyActivity:
    return replace(record, exercises=list(record.exercises), mood_entries=list(record.mood_entries))


def _default_streaks() -> dict[StreakKind, Streak]:
    return {kind: Streak(kind=kind) for kind in StreakKind}


class ProgressEngine:
    def __init__(self, store: KeyValueStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or Clock()
        self._reset_memory()
        self._load()

    def _reset_memory(self) -> None:
        self._daily: dict[str, DailyActivity] = {}
        self._streaks = _default_streaks()
        self._totals = {"total_meditations": 0, "total_journal_entries": 0, "total_practice_minutes": 0}

    # --- persistence ---

    def _load(self) -> None:
        blob = load_blob(self.store, PROGRESS_STORAGE_KEY, ProgressBlob)
        if blob is None:
            return
        self._daily = {key: day.to_record() for key, day in blob.daily.items()}
        self._streaks = blob.streak_records()
        self._totals = {
            "total_meditations": blob.total_meditations,
            "total_journal_entries": blob.total_journal_entries,
            "total_practice_minutes": blob.total_practice_minutes,
        }

    def _save(self) -> None:
        try:
            blob = ProgressBlob(
                daily={key: DayBlob.from_record(record) for key, record in self._daily.items()},
                streaks={
                    kind: StreakBlob(current=s.current, longest=s.longest, last_credited=s.last_credited)
                    for kind, s in self._streaks.items()
                },
                **self._totals,
            )
        except ValidationError as e:
            logger.error("Progress not saved; in-memory state does not serialize: %s", e)
            return
        if not save_blob(self.store, PROGRESS_STORAGE_KEY, blob):
            logger.warning("Progress not saved; keeping in-memory state")

    # --- recording ---

    def _today_record(self) -> DailyActivity:
        key = self.clock.today_key()
        if key not in self._daily:
            self._daily[key] = DailyActivity(date=key)
        return self._daily[key]

    def record_activity(self, kind, value=None, minutes: int = 0, note: str | None = None) -> bool:
        """Log one unit of activity for today.

        ``value`` carries the exercise id for EXERCISE and the mood level for
        MOOD. ``minutes`` only applies to MEDITATION, ``note`` only to MOOD.
        Returns False, without changing anything, for malformed input.
        """
        try:
            kind = ActivityKind(kind)
        except ValueError:
            logger.warning("Ignoring unknown activity kind %r", kind)
            return False

        if kind is ActivityKind.EXERCISE and (not isinstance(value, str) or not value):
            logger.warning("Ignoring exercise without an id: %r", value)
            return False
        if kind is ActivityKind.MOOD:
            try:
                value = Mood(value)
            except ValueError:
                logger.warning("Ignoring unknown mood %r", value)
                return False
            if note is not None and not isinstance(note, str):
                logger.warning("Ignoring mood entry with non-text note %r", note)
                return False
        if kind is ActivityKind.MEDITATION and (not isinstance(minutes, int) or minutes < 0):
            logger.warning("Ignoring meditation with invalid duration %r", minutes)
            return False

        record = self._today_record()
        if kind is ActivityKind.MEDITATION:
            record.meditations += 1
            self._totals["total_meditations"] += 1
            self._totals["total_practice_minutes"] += minutes
        elif kind is ActivityKind.JOURNAL:
            record.journal_entries += 1
            self._totals["total_journal_entries"] += 1
        elif kind is ActivityKind.QUICK_SHIFT:
            record.quick_shifts += 1
        elif kind is ActivityKind.EXERCISE:
            if value in record.exercises:
                return True
            record.exercises.append(value)
        else:
            record.mood_entries.append(MoodEntry(timestamp=self.clock.now().isoformat(), mood=value, note=note))

        self._update_streaks(record)
        self._save()
        return True

    def complete_meditation(self, minutes: int = 0) -> bool:
        return self.record_activity(ActivityKind.MEDITATION, minutes=minutes)

    def add_journal_entry(self) -> bool:
        return self.record_activity(ActivityKind.JOURNAL)

    def complete_quick_shift(self) -> bool:
        return self.record_activity(ActivityKind.QUICK_SHIFT)

    def complete_exercise(self, exercise_id: str) -> bool:
        return self.record_activity(ActivityKind.EXERCISE, exercise_id)

    def add_mood_entry(self, mood, note: str | None = None) -> bool:
        return self.record_activity(ActivityKind.MOOD, mood, note=note)

    def _update_streaks(self, record: DailyActivity) -> None:
        today = record.date
        yesterday = previous_day(today)
        for kind, streak in self._streaks.items():
            self._streaks[kind] = advance_streak(streak, today, yesterday, streak_triggered(kind, record))

    def reset(self) -> None:
        """Forget all logged activity, streaks and totals."""
        self._reset_memory()
        if not self.store.delete(PROGRESS_STORAGE_KEY):
            logger.warning("Stored progress not cleared; it will reload on next start")

    # --- queries ---

    def today(self) -> DailyActivity:
        key = self.clock.today_key()
        record = self._daily.get(key)
        return _copy_record(record) if record else DailyActivity(date=key)

    def today_score(self) -> int:
        return alignment_score(self.today())

    def streak(self, kind) -> Streak | None:
        """Copy of one streak, or None for an unknown kind."""
        try:
            kind = StreakKind(kind)
        except ValueError:
            logger.warning("Unknown streak kind %r", kind)
            return None
        return replace(self._streaks[kind])

    def streaks(self) -> dict[StreakKind, Streak]:
        return {kind: replace(s) for kind, s in self._streaks.items()}

    def totals(self) -> dict:
        return dict(self._totals)

    def history(self, days: int) -> list[DailyActivity]:
        """The last ``days`` calendar days, oldest first, with empty days filled in."""
        if days <= 0:
            return []
        return [
            _copy_record(self._daily[key]) if key in self._daily else DailyActivity(date=key)
            for key in last_n_days(self.clock.today(), days)
        ]

    def weekly_stats(self) -> WeeklyStats:
        week = self.history(WEEK_DAYS)
        total_score = sum(alignment_score(day) for day in week)
        total_practices = sum(
            day.meditations + day.journal_entries + day.quick_shifts + len(day.exercises) for day in week
        )
        return WeeklyStats(average_score=round(total_score / WEEK_DAYS), total_practices=total_practices)
