"""Alignment score and streak continuity rules."""
from dataclasses import replace

from abundance_flow.models import DailyActivity, Mood, Streak, StreakKind

MEDITATION_POINTS, MEDITATION_CAP = 10, 30
JOURNAL_POINTS = 20
QUICK_SHIFT_POINTS, QUICK_SHIFT_CAP = 5, 15
EXERCISE_POINTS, EXERCISE_CAP = 5, 20
MOOD_POINTS = {
    Mood.ELEVATED: 15,
    Mood.POSITIVE: 12,
    Mood.NEUTRAL: 8,
    Mood.LOW: 5,
    Mood.STRUGGLING: 3,
}
MAX_SCORE = 100


def score_breakdown(record: DailyActivity) -> dict:
    """Points earned by each component of a day's activity."""
    mood = record.latest_mood
    return {
        "meditation": min(record.meditations * MEDITATION_POINTS, MEDITATION_CAP),
        "journal": JOURNAL_POINTS if record.journal_entries > 0 else 0,
        "quick_shift": min(record.quick_shifts * QUICK_SHIFT_POINTS, QUICK_SHIFT_CAP),
        "exercise": min(len(record.exercises) * EXERCISE_POINTS, EXERCISE_CAP),
        "mood": MOOD_POINTS[mood] if mood is not None else 0,
    }


def alignment_score(record: DailyActivity) -> int:
    """Composite 0-100 score for one day."""
    total = sum(score_breakdown(record).values())
    return max(0, min(total, MAX_SCORE))


def streak_triggered(kind: StreakKind, record: DailyActivity | None) -> bool:
    """Whether ``record`` holds the activity that credits a streak of ``kind``."""
    if record is None:
        return False
    if kind is StreakKind.MEDITATION:
        return record.meditations > 0
    if kind is StreakKind.JOURNAL:
        return record.journal_entries > 0
    return record.meditations > 0 or record.journal_entries > 0 or record.quick_shifts > 0


def advance_streak(streak: Streak, today: str, yesterday: str, active: bool) -> Streak:
    """Return the streak after crediting (or not) the day ``today``.

    A streak last credited yesterday grows by one; one already credited today
    stays put so repeated activity in a day counts once. Anything older, or a
    streak never credited, restarts at 1.
    """
    if not active:
        return replace(streak)

    if streak.last_credited in (yesterday, today):
        current = streak.current + 1 if streak.last_credited != today else streak.current
    else:
        current = 1
    return replace(
        streak,
        current=current,
        longest=max(streak.longest, current),
        last_credited=today,
    )
