"""
Service layer for weekly nutrition summaries.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Protocol

from pymongo.errors import PyMongoError

from fittrack.errors import NotFound, UpstreamUnavailable
from fittrack.models.enums import Macro
from fittrack.models.nutrition import DaySummary, NutritionDay, Summary, WeekSummary
from fittrack.services.mongo_service import MongoService

logger = logging.getLogger(__name__)

WEEK_DAYS = 7


class DailyNutritionProvider(Protocol):
    """Source of daily nutrition logs. Raises NotFound for a day without a log."""

    def get_day(self, owner_id: str, day: date) -> NutritionDay:
        ...


class MongoNutritionProvider:
    """Reads daily nutrition logs from the nutrition collection."""

    def __init__(self, mongo: MongoService):
        self.mongo = mongo
        self.zone = mongo.settings.engine.tzinfo()

    def get_day(self, owner_id: str, day: date) -> NutritionDay:
        start = datetime.combine(day, time.min, tzinfo=self.zone)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.zone)
        try:
            return self.mongo.get_nutrition_day(owner_id, start, end)
        except PyMongoError as exc:
            raise UpstreamUnavailable(f"Nutrition log for {day} unavailable: {exc}") from exc


class NutritionService:
    """Aggregates seven daily nutrition logs into day and week summaries."""

    def __init__(self, provider: DailyNutritionProvider):
        self.provider = provider

    def aggregate_week(self, owner_id: str, as_of: date) -> WeekSummary:
        """Summaries of as_of and the six days before it, oldest first."""
        days: List[DaySummary] = [
            self._summarize_day(owner_id, as_of - timedelta(days=offset))
            for offset in range(WEEK_DAYS - 1, -1, -1)
        ]
        totals = Summary(
            calories=sum(d.calories for d in days),
            protein=sum(d.protein for d in days),
            carbs=sum(d.carbs for d in days),
            fat=sum(d.fat for d in days),
        )
        logger.info("Week of owner %s up to %s: %s kcal", owner_id, as_of, totals.calories)
        return WeekSummary(owner_id=owner_id, as_of=as_of, days=days, totals=totals)

    def _summarize_day(self, owner_id: str, day: date) -> DaySummary:
        """One day's totals. A missing or failing fetch becomes an all-zero day."""
        try:
            nutrition = self.provider.get_day(owner_id, day)
        except NotFound:
            logger.debug("No nutrition log for owner %s on %s", owner_id, day)
            return DaySummary(date=day)
        except Exception as e:
            logger.warning("Nutrition fetch for owner %s on %s failed, using zeros: %s",
                owner_id, day, e, exc_info=True)
            return DaySummary(date=day)

        return DaySummary(
            date=day,
            calories=nutrition.total_calories,
            protein=round(nutrition.grams(Macro.PROTEIN)),
            carbs=round(nutrition.grams(Macro.CARBS)),
            fat=round(nutrition.grams(Macro.FAT)),
        )
