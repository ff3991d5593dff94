"""Pydantic models for daily nutrition logs and their weekly summaries."""

from datetime import date
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from fittrack.models.domain import PyObjectId, UtcDatetime
from fittrack.models.enums import Macro, MealType


class FoodItem(BaseModel):
    """A single logged food."""
    name: str
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    serving_size: str = "1 serving"

    @field_validator("calories", "protein", "carbs", "fat", mode="before")
    @classmethod
    def _missing_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class NutritionDay(BaseModel):
    """One day of food logs, produced by the daily logging subsystem."""
    mongo_id: Optional[PyObjectId] = Field(None, alias="_id")
    owner_id: str
    date: UtcDatetime
    breakfast: List[FoodItem] = []
    lunch: List[FoodItem] = []
    dinner: List[FoodItem] = []
    snacks: List[FoodItem] = []
    total_calories: float = 0
    calorie_goal: float = 2000

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    def meal(self, meal_type: MealType) -> List[FoodItem]:
        return getattr(self, meal_type.value)

    def grams(self, macro: Macro) -> float:
        """Sum of one macro across all four meals."""
        return sum(getattr(item, macro.value) for meal in MealType for item in self.meal(meal))


class MacroShares(BaseModel):
    """Percent of calories contributed by each macro, each within 0..100."""
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    @classmethod
    def from_grams(cls, calories: float, protein: float, carbs: float, fat: float) -> "MacroShares":
        if calories <= 0:
            return cls()
        grams = {Macro.PROTEIN: protein, Macro.CARBS: carbs, Macro.FAT: fat}
        shares = {
            macro.value: round(min(max(g * macro.kcal_per_gram / calories * 100, 0.0), 100.0), 1)
            for macro, g in grams.items()
        }
        return cls(**shares)


class Summary(BaseModel):
    """Calories and macro grams over some period."""
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0

    @computed_field
    @property
    def shares(self) -> MacroShares:
        return MacroShares.from_grams(self.calories, self.protein, self.carbs, self.fat)


class DaySummary(Summary):
    """Summary of one calendar day."""
    date: date

    @computed_field
    @property
    def day_name(self) -> str:
        return self.date.strftime("%a")


class WeekSummary(BaseModel):
    """Seven day summaries, oldest first, and their totals."""
    owner_id: str
    as_of: date
    days: List[DaySummary] = Field(min_length=7, max_length=7)
    totals: Summary

    @computed_field
    @property
    def average_calories(self) -> int:
        return round(self.totals.calories / len(self.days))
