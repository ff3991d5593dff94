"""
Service layer for turning sessions, streaks and weekly nutrition into reports.
"""
import io
import logging
from typing import Optional

import matplotlib.dates as mdates
import matplotlib.pyplot as plt

from fittrack.models.domain import OwnerStats, WorkoutSession, WorkoutTemplate
from fittrack.models.enums import StreakTier
from fittrack.models.nutrition import WeekSummary

logger = logging.getLogger(__name__)


class ReportingService:
    """Handles logic for generating summaries and charts."""

    def format_template_line(self, template: WorkoutTemplate) -> str:
        """One-line description of a template for listings."""
        total_sets = sum(len(e.sets) for e in template.exercises)
        return (
            f"{template.id}  {template.template_name} ({template.title}): "
            f"{len(template.exercises)} exercises, {total_sets} sets"
        )

    def format_session_line(self, session: WorkoutSession) -> str:
        """Formats a single session into a short one-line summary."""
        when = session.activity_date.strftime('%Y-%m-%d')
        status = f"✅ {session.rating}/5" if session.is_completed else "⏳ in progress"
        return f"{session.id}  {when}  {session.title}  {status}"

    def format_session_summary(self, session: WorkoutSession) -> str:
        """Formats a session with its exercises and sets into a compact summary."""
        summary = f"🏋️ *{session.title}*  {session.activity_date.strftime('%Y-%m-%d')}\n"
        if session.is_completed:
            summary += f"⭐ {session.rating}/5"
            if session.comment:
                summary += f"  “{session.comment}”"
            summary += "\n"
        summary += "\n"

        for ex_idx, exercise in enumerate(session.exercises):
            summary += f"[{ex_idx}] *{exercise.name}*\n"
            for set_idx, s in enumerate(exercise.sets):
                mark = "✅" if s.completed else "❌"
                weight = f" × {s.weight:g} kg" if s.weight else ""
                summary += f"     #{set_idx} → {s.reps} reps{weight} {mark}\n"

        progress = session.progress()
        summary += (
            f"\n{progress.completed_sets}/{progress.total_sets} sets done "
            f"({progress.percent:g}%), {progress.skipped_sets} skipped"
        )
        return summary

    def format_week_summary(self, week: WeekSummary) -> str:
        """Formats a weekly nutrition summary as a small text table."""
        lines = [f"🍽️ Week ending {week.as_of.isoformat()}", ""]
        lines.append(f"{'Day':<10}{'kcal':>8}{'P':>6}{'C':>6}{'F':>6}")
        for day in week.days:
            lines.append(
                f"{day.day_name + ' ' + day.date.strftime('%d'):<10}"
                f"{day.calories:>8.0f}{day.protein:>6.0f}{day.carbs:>6.0f}{day.fat:>6.0f}"
            )
        totals = week.totals
        lines.append("")
        lines.append(f"Total: {totals.calories:,.0f} kcal (avg {week.average_calories:,} / day)")
        lines.append(
            f"Protein {totals.protein:.0f}g ({totals.shares.protein:g}%) · "
            f"Carbs {totals.carbs:.0f}g ({totals.shares.carbs:g}%) · "
            f"Fat {totals.fat:.0f}g ({totals.shares.fat:g}%)"
        )
        return "\n".join(lines)

    def streak_message(self, streak: int) -> str:
        tier = StreakTier.for_streak(streak)
        unit = "day" if streak == 1 else "days"
        return f"🔥 {streak} {unit} streak: {tier.message}"

    def format_owner_stats(self, stats: OwnerStats) -> str:
        lines = [
            self.streak_message(stats.streak),
            f"🏋️ Workouts completed: {stats.completed_workouts}",
            f"🍽️ Days with nutrition logged: {stats.nutrition_days}",
        ]
        if stats.last_workout is not None:
            lines.append(f"Last workout: {self.format_session_line(stats.last_workout)}")
        return "\n".join(lines)

    # --- Plotting Utility ---

    def daily_calories_chart(self, week: WeekSummary) -> Optional[io.BytesIO]:
        """
        Generates a bar chart of calories per day and returns it as a BytesIO object.
        """
        if not any(day.calories for day in week.days):
            logger.info("No calories logged in week ending %s, skipping chart", week.as_of)
            return None

        dates = [day.date for day in week.days]
        values = [day.calories for day in week.days]
        try:
            plt.figure(figsize=(10, 6))
            plt.bar(dates, values, color="#4A9EFF")

            plt.gca().xaxis.set_major_formatter(mdates.DateFormatter('%a %d'))
            plt.gca().xaxis.set_major_locator(mdates.DayLocator())

            plt.title(f"Daily Calories, week ending {week.as_of.isoformat()}")
            plt.ylabel("kcal")
            plt.xlabel("Date")
            plt.grid(True, axis="y", linestyle='--', alpha=0.6)
            plt.tight_layout()

            buf = io.BytesIO()
            plt.savefig(buf, format="png")
            buf.seek(0)
            return buf
        except Exception as e:
            logger.error("Failed to generate plot: %s", e, exc_info=True)
            return None
        finally:
            plt.close()
