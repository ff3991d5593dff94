"""Contains all the Enum definitions for the application domain."""

from enum import Enum


class WorkoutKind(str, Enum):
    """Discriminator of the two workout record variants."""
    TEMPLATE = "template"
    SESSION = "session"


class SessionState(str, Enum):
    """States of the session completion state machine."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MealType(str, Enum):
    """Meal categories of a nutrition day."""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACKS = "snacks"


class Macro(str, Enum):
    """Macronutrients tracked per food item."""
    PROTEIN = ("protein", 4)
    CARBS = ("carbs", 4)
    FAT = ("fat", 9)

    def __new__(cls, value: str, kcal_per_gram: int):
        """Override __new__ to attach an energy density to each macro."""
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.kcal_per_gram = kcal_per_gram
        return obj


class StreakTier(str, Enum):
    """Adherence tiers a streak length falls into."""
    NONE = ("none", 0, "Start Today!")
    FIRST_DAY = ("first_day", 1, "Great Start!")
    BUILDING = ("building", 2, "Keep Going!")
    ON_FIRE = ("on_fire", 7, "On Fire! 🔥")
    LEGENDARY = ("legendary", 30, "Legendary! 🏆")

    def __new__(cls, value: str, min_days: int, message: str):
        """Override __new__ to attach the lower bound and message of each tier."""
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.min_days = min_days
        obj.message = message
        return obj

    @classmethod
    def for_streak(cls, days: int) -> "StreakTier":
        """Returns the highest tier whose lower bound the streak reaches."""
        tier = cls.NONE
        for candidate in cls:
            if days >= candidate.min_days:
                tier = candidate
        return tier
