from datetime import date, datetime, timedelta, timezone

import pytest
from dateutil import tz

from fittrack.models.domain import WorkoutSession
from fittrack.models.nutrition import NutritionDay
from fittrack.services.streak_service import compute_streak
from tests.conftest import OWNER

TODAY = date(2024, 6, 15)


def _done(day: date, exercises, owner_id: str = OWNER, hour: int = 12) -> WorkoutSession:
    stamp = datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)
    return WorkoutSession(owner_id=owner_id, title="T", exercises=exercises, created_at=stamp,
        is_completed=True, completed_at=stamp, rating=3)


def _days_back(*offsets):
    return [TODAY - timedelta(days=o) for o in offsets]


def test_no_sessions_is_zero(exercises):
    assert compute_streak(OWNER, [], TODAY) == 0


def test_run_ending_today(exercises):
    sessions = [_done(d, exercises) for d in _days_back(0, 1, 2, 3)]
    assert compute_streak(OWNER, sessions, TODAY) == 4


def test_no_training_on_as_of_counts_from_as_of(exercises):
    sessions = [_done(d, exercises) for d in _days_back(1, 2, 3)]
    assert compute_streak(OWNER, sessions, TODAY) == 0
    assert compute_streak(OWNER, sessions, TODAY - timedelta(days=1)) == 3


def test_run_ending_before_yesterday_is_broken(exercises):
    sessions = [_done(d, exercises) for d in _days_back(2, 3, 4, 5)]
    assert compute_streak(OWNER, sessions, TODAY) == 0


def test_gap_stops_the_run(exercises):
    sessions = [_done(d, exercises) for d in _days_back(0, 1, 3, 4, 5)]
    assert compute_streak(OWNER, sessions, TODAY) == 2


def test_several_sessions_on_one_day_count_once(exercises):
    sessions = [_done(TODAY, exercises, hour=h) for h in (7, 12, 20)]
    assert compute_streak(OWNER, sessions, TODAY) == 1


def test_in_progress_and_other_owners_ignored(exercises):
    open_session = WorkoutSession(owner_id=OWNER, title="T", exercises=exercises,
        created_at=datetime(2024, 6, 15, 9, tzinfo=timezone.utc))
    others = [_done(d, exercises, owner_id="other") for d in _days_back(0, 1)]
    assert compute_streak(OWNER, [open_session, *others], TODAY) == 0


def test_streak_capped(exercises):
    sessions = [_done(d, exercises) for d in _days_back(*range(400))]
    assert compute_streak(OWNER, sessions, TODAY) == 365
    assert compute_streak(OWNER, sessions, TODAY, max_days=30) == 30


def test_local_date_uses_zone(exercises):
    # 23:30 UTC on the 14th is already the 15th in Berlin.
    late = _done(date(2024, 6, 14), exercises, hour=23)
    late = late.model_copy(update={"completed_at": late.completed_at + timedelta(minutes=30)})
    berlin = tz.gettz("Europe/Berlin")

    assert compute_streak(OWNER, [late], date(2024, 6, 15), zone=timezone.utc) == 0
    assert compute_streak(OWNER, [late], date(2024, 6, 15), zone=berlin) == 1


def test_current_streak_reads_store(services, completed_on):
    as_of = date(2024, 6, 15)
    for offset in (0, 1, 2, 4):
        completed_on(as_of - timedelta(days=offset))
    completed_on(as_of, owner_id="other")

    assert services.streaks.current_streak(OWNER, as_of) == 3
    assert services.streaks.current_streak("other", as_of) == 1
    assert services.streaks.current_streak("nobody", as_of) == 0


def test_current_streak_cache_invalidated_on_completion(services, template):
    today = services.streaks.today()
    assert services.streaks.current_streak(OWNER, today) == 0

    session = services.sessions.instantiate(template)
    services.sessions.complete_session(session.id, 5)

    assert services.streaks.current_streak(OWNER, today) == 1


def test_current_streak_is_cached(services, completed_on):
    as_of = date(2024, 6, 15)
    completed_on(as_of)
    assert services.streaks.current_streak(OWNER, as_of) == 1

    completed_on(as_of - timedelta(days=1))
    assert services.streaks.current_streak(OWNER, as_of) == 1

    services.streaks.invalidate(OWNER)
    assert services.streaks.current_streak(OWNER, as_of) == 2


@pytest.mark.parametrize("streak,message", [(0, "Start Today!"), (3, "Keep Going!"), (40, "Legendary! 🏆")])
def test_tier_messages(services, streak, message):
    assert services.streaks.tier(streak).message == message


def test_owner_stats(services, mongo, completed_on, template):
    as_of = date(2024, 6, 15)
    for offset in (0, 1, 5):
        completed_on(as_of - timedelta(days=offset))
    services.sessions.instantiate(template)
    completed_on(as_of, owner_id="other")
    for offset in (0, 2):
        mongo.save_nutrition_day(NutritionDay(
            owner_id=OWNER, date=datetime(2024, 6, 15 - offset, 8, tzinfo=timezone.utc), total_calories=1800,
        ))

    stats = services.streaks.owner_stats(OWNER, as_of)

    assert stats.streak == 2
    assert stats.completed_workouts == 3
    assert stats.nutrition_days == 2
    assert stats.last_workout.completed_at.date() == as_of


def test_owner_stats_without_history(services):
    stats = services.streaks.owner_stats("nobody", date(2024, 6, 15))

    assert (stats.streak, stats.completed_workouts, stats.nutrition_days) == (0, 0, 0)
    assert stats.last_workout is None
