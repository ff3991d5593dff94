"""Pydantic models representing workout templates, sessions and their exercises."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from bson import ObjectId
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    StringConstraints,
    TypeAdapter,
    WithJsonSchema,
    computed_field,
    field_validator,
    model_validator,
)
from typing_extensions import Annotated

from fittrack.models.enums import SessionState, WorkoutKind


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware. Mongo hands back naive UTC values."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def naive_utc(dt: datetime) -> datetime:
    """UTC datetime without tzinfo, the form Mongo stores and returns."""
    return ensure_utc(dt).replace(tzinfo=None)


def validate_objectid(value: Any) -> Any:
    """Custom validator to convert str or bytes to ObjectId."""
    if value is None or isinstance(value, ObjectId):
        return value
    if isinstance(value, (str, bytes)) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"Invalid ObjectId: {value!r}")


PyObjectId = Annotated[
    ObjectId,
    BeforeValidator(validate_objectid),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
    WithJsonSchema({"type": "string", "title": "PyObjectId"}, mode="serialization"),
]

UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class SetEntry(BaseModel):
    """One prescribed set of an exercise and whether it was done."""
    reps: int = Field(default=0, ge=0)
    weight: float = Field(default=0.0, ge=0)
    completed: bool = False

    @field_validator("reps", "weight", mode="before")
    @classmethod
    def _missing_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    def reset(self) -> "SetEntry":
        return SetEntry(reps=self.reps, weight=self.weight, completed=False)


class ExerciseEntry(BaseModel):
    """An exercise with its ordered sets. Set order is the addressing order."""
    name: NonEmptyStr
    sets: List[SetEntry] = Field(min_length=1)

    def reset(self) -> "ExerciseEntry":
        """Copy of the exercise with every set marked as not completed."""
        return ExerciseEntry(name=self.name, sets=[s.reset() for s in self.sets])


def reset_exercises(exercises: List[ExerciseEntry]) -> List[ExerciseEntry]:
    """Deep-copies an exercise list, clearing completion flags."""
    return [exercise.reset() for exercise in exercises]


class SessionProgress(BaseModel):
    """Set completion figures of a session. Derived, never stored."""
    completed_sets: int
    total_sets: int

    @computed_field
    @property
    def skipped_sets(self) -> int:
        return self.total_sets - self.completed_sets

    @computed_field
    @property
    def percent(self) -> float:
        if self.total_sets == 0:
            return 0.0
        return round(self.completed_sets / self.total_sets * 100, 1)


class WorkoutBase(BaseModel):
    """Fields shared by templates and sessions."""
    mongo_id: Optional[PyObjectId] = Field(None, alias="_id")
    owner_id: NonEmptyStr
    title: NonEmptyStr
    exercises: List[ExerciseEntry] = Field(min_length=1)
    created_at: UtcDatetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    @property
    def id(self) -> Optional[str]:
        return str(self.mongo_id) if self.mongo_id is not None else None

    @computed_field
    @property
    def is_template(self) -> bool:
        return self.kind == WorkoutKind.TEMPLATE

    def to_document(self) -> Dict[str, Any]:
        """Dict ready to be written to Mongo."""
        doc = self.model_dump(by_alias=True, exclude_none=True)
        return {k: naive_utc(v) if isinstance(v, datetime) else v for k, v in doc.items()}


class WorkoutTemplate(WorkoutBase):
    """A named, reusable workout definition. Has no completion state."""
    kind: Literal["template"] = "template"
    template_name: NonEmptyStr
    description: str = ""


class WorkoutSession(WorkoutBase):
    """An owner-specific workout, in progress or completed."""
    kind: Literal["session"] = "session"
    template_id: Optional[PyObjectId] = None
    is_completed: bool = False
    completed_at: Optional[UtcDatetime] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: str = ""

    @field_validator("comment", mode="before")
    @classmethod
    def _comment_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _completion_is_stamped(self) -> "WorkoutSession":
        if self.is_completed and (self.completed_at is None or self.rating is None):
            raise ValueError("a completed session requires completed_at and rating")
        return self

    @property
    def state(self) -> SessionState:
        return SessionState.COMPLETED if self.is_completed else SessionState.IN_PROGRESS

    @property
    def activity_date(self) -> datetime:
        """Timestamp that places the session on the calendar."""
        return self.completed_at or self.created_at

    def progress(self) -> SessionProgress:
        total = sum(len(exercise.sets) for exercise in self.exercises)
        done = sum(1 for exercise in self.exercises for s in exercise.sets if s.completed)
        return SessionProgress(completed_sets=done, total_sets=total)


class OwnerStats(BaseModel):
    """Adherence figures of one owner."""
    owner_id: str
    streak: int = 0
    completed_workouts: int = 0
    nutrition_days: int = 0
    last_workout: Optional[WorkoutSession] = None


class WorkoutDefinition(BaseModel):
    """A static workout definition from the predefined catalog."""
    title: NonEmptyStr
    template_name: Optional[str] = None
    description: str = ""
    exercises: List[ExerciseEntry] = Field(min_length=1)


WorkoutRecord = Annotated[
    Union[WorkoutTemplate, WorkoutSession],
    Field(discriminator="kind"),
]

_record_adapter: TypeAdapter = TypeAdapter(WorkoutRecord)


def parse_record(doc: Dict[str, Any]) -> Union[WorkoutTemplate, WorkoutSession]:
    """Builds the right workout variant from a stored document.

    Workout records imported from the mobile app's collection have no
    ``kind`` and carry an ``isTemplate`` flag instead.
    """
    if "kind" not in doc:
        doc = dict(doc)
        flag = doc.get("isTemplate", doc.get("is_template", False))
        doc["kind"] = WorkoutKind.TEMPLATE.value if flag else WorkoutKind.SESSION.value
    return _record_adapter.validate_python(doc)
