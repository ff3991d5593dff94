"""
Consecutive-day adherence streaks derived from completed sessions.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Set

from cachetools import TTLCache

from fittrack.models.domain import OwnerStats, WorkoutSession, ensure_utc
from fittrack.models.enums import StreakTier
from fittrack.services.mongo_service import MongoService

logger = logging.getLogger(__name__)

MAX_STREAK_DAYS = 365


def local_date(dt: datetime, zone: tzinfo) -> date:
    """Calendar date of a timestamp in the given zone."""
    return ensure_utc(dt).astimezone(zone).date()


def completed_dates(owner_id: str, sessions: Iterable[WorkoutSession], zone: tzinfo) -> Set[date]:
    """Distinct local dates on which the owner completed at least one session."""
    return {
        local_date(s.activity_date, zone)
        for s in sessions
        if s.owner_id == owner_id and getattr(s, "is_completed", False)
    }


def compute_streak(owner_id: str, sessions: Iterable[WorkoutSession], as_of: date,
        zone: tzinfo = timezone.utc, max_days: int = MAX_STREAK_DAYS) -> int:
    """Length of the run of consecutive training days counted backward from as_of.

    Without a completion on as_of or the day before the streak is broken and
    yields 0. The count always starts at as_of, so a day without training
    there also yields 0.
    """
    days = completed_dates(owner_id, sessions, zone)
    if not days:
        return 0
    if as_of not in days and as_of - timedelta(days=1) not in days:
        return 0

    streak = 0
    day = as_of
    while day in days and streak < max_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


class StreakService:
    """Computes current streaks from the session store, with a short-lived cache."""

    def __init__(self, mongo: MongoService):
        engine = mongo.settings.engine
        self.mongo = mongo
        self.zone = engine.tzinfo()
        self.max_days = min(engine.streak_max_days, MAX_STREAK_DAYS)
        self._cache: TTLCache = TTLCache(maxsize=engine.streak_cache_size, ttl=engine.streak_cache_ttl)

    def today(self) -> date:
        return datetime.now(self.zone).date()

    def current_streak(self, owner_id: str, as_of: Optional[date] = None) -> int:
        """Streak of an owner as of a date (default: today in the configured zone)."""
        as_of = as_of or self.today()
        key = (owner_id, as_of)
        if key in self._cache:
            logger.debug("CACHE HIT: streak for owner %s as of %s", owner_id, as_of)
            return self._cache[key]

        # One extra day so the "yesterday" anchor is inside the window.
        window_start = datetime.combine(as_of - timedelta(days=self.max_days + 1), time.min, tzinfo=self.zone)
        sessions = self.mongo.query_sessions(owner_id, completed_only=True, since=window_start)
        streak = compute_streak(owner_id, sessions, as_of, self.zone, self.max_days)
        self._cache[key] = streak
        logger.info("Streak for owner %s as of %s: %d days", owner_id, as_of, streak)
        return streak

    def owner_stats(self, owner_id: str, as_of: Optional[date] = None) -> OwnerStats:
        """Streak, completed workout count, last workout and days with nutrition logged."""
        return OwnerStats(
            owner_id=owner_id,
            streak=self.current_streak(owner_id, as_of),
            completed_workouts=self.mongo.count_completed_sessions(owner_id),
            nutrition_days=self.mongo.count_nutrition_days(owner_id),
            last_workout=self.mongo.last_completed_session(owner_id),
        )

    def invalidate(self, owner_id: str) -> None:
        """Drops cached streaks of an owner."""
        for key in [k for k in list(self._cache.keys()) if k[0] == owner_id]:
            self._cache.pop(key, None)

    def on_session_change(self, session: WorkoutSession) -> None:
        self.invalidate(session.owner_id)

    @staticmethod
    def tier(streak: int) -> StreakTier:
        return StreakTier.for_streak(streak)
