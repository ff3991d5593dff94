import os
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path

import mongomock
import pytest

os.environ.setdefault("MPLBACKEND", "Agg")

from fittrack.config import EngineConfig, MongoConfig, Settings
from fittrack.main import build_services
from fittrack.models.domain import ExerciseEntry, SetEntry, WorkoutSession

DEFINITIONS = Path(__file__).resolve().parents[1] / "workout_definitions.yaml"
OWNER = "owner-1"


@pytest.fixture
def settings():
    return Settings(
        mongo=MongoConfig(database="fittrack_test"),
        engine=EngineConfig(timezone="UTC", definitions_path=str(DEFINITIONS)),
    )


@pytest.fixture
def services(settings):
    """All services wired against an in-memory Mongo."""
    return build_services(settings, client=mongomock.MongoClient())


@pytest.fixture
def mongo(services):
    return services.mongo


@pytest.fixture
def exercises():
    return [
        ExerciseEntry(name="Bench Press", sets=[SetEntry(reps=10, weight=60), SetEntry(reps=8, weight=65)]),
        ExerciseEntry(name="Pull-ups", sets=[SetEntry(reps=8), SetEntry(reps=8), SetEntry(reps=6)]),
    ]


@pytest.fixture
def template(services, exercises):
    return services.templates.create_template(OWNER, "Push Day", "Upper Body", exercises)


@pytest.fixture
def completed_on(mongo, exercises):
    """Stores a session completed at noon UTC of the given day."""
    def _store(day: date, owner_id: str = OWNER) -> WorkoutSession:
        stamp = datetime.combine(day, time(12), tzinfo=timezone.utc)
        session = WorkoutSession(
            owner_id=owner_id,
            title="Upper Body",
            exercises=exercises,
            created_at=stamp - timedelta(hours=1),
            is_completed=True,
            completed_at=stamp,
            rating=4,
        )
        return mongo.insert_workout(session)
    return _store
