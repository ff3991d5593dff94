"""
Service layer for workout sessions: instantiation, set tracking and completion.

Writes to one session are not serialized. Two concurrent set_completion or
complete_session calls on the same session race and the last write wins.
"""
import logging
from typing import Callable, Iterable, List, Optional, Union

from pydantic import ValidationError

from fittrack.errors import InvalidArgument, NotFound
from fittrack.models.domain import (
    ExerciseEntry,
    WorkoutDefinition,
    WorkoutSession,
    WorkoutTemplate,
    reset_exercises,
    utcnow,
)
from fittrack.models.enums import SessionState, WorkoutKind
from fittrack.services.definition_service import DefinitionService
from fittrack.services.mongo_service import MongoService, to_object_id
from fittrack.services.template_service import TemplateService

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class SessionService:
    """Turns templates into sessions and drives them to completion."""

    def __init__(self, mongo: MongoService, templates: TemplateService,
            definitions: Optional[DefinitionService] = None):
        self.mongo = mongo
        self.templates = templates
        self.definitions = definitions
        self._listeners: List[Callable[[WorkoutSession], None]] = []

    def on_change(self, listener: Callable[[WorkoutSession], None]) -> None:
        """Registers a callback fired after a session is completed or deleted."""
        self._listeners.append(listener)

    # ------------------------------
    # Instantiation
    # ------------------------------
    def instantiate(self, template: Union[WorkoutTemplate, WorkoutSession]) -> WorkoutSession:
        """Creates and stores a fresh session from a template."""
        if template.kind != WorkoutKind.TEMPLATE:
            raise InvalidArgument("not a template")
        session = WorkoutSession(
            owner_id=template.owner_id,
            title=template.title,
            exercises=reset_exercises(template.exercises),
            template_id=template.mongo_id,
        )
        saved = self.mongo.insert_workout(session)
        logger.info("Started session %s from template %s", saved.id, template.id)
        return saved

    def instantiate_from_template(self, template_id: str) -> WorkoutSession:
        record = self.mongo.get_workout(template_id)
        if record is None:
            raise NotFound(f"Template {template_id} not found")
        return self.instantiate(record)

    def instantiate_from_definition(self, owner_id: str,
            definition: Union[str, WorkoutDefinition, dict]) -> WorkoutSession:
        """Creates a session straight from a static definition, no stored template needed.

        ``definition`` is either a key of the predefined catalog or an ad-hoc
        definition (title and exercises).
        """
        if isinstance(definition, str):
            if self.definitions is None:
                raise NotFound(f"Unknown workout definition: {definition}")
            definition = self.definitions.get_definition(definition)
        try:
            if not isinstance(definition, WorkoutDefinition):
                definition = WorkoutDefinition.model_validate(definition)
            session = WorkoutSession(
                owner_id=owner_id,
                title=definition.title,
                exercises=reset_exercises(definition.exercises),
            )
        except ValidationError as e:
            raise InvalidArgument(f"Invalid workout definition: {e}") from e
        saved = self.mongo.insert_workout(session)
        logger.info("Started session %s from definition '%s'", saved.id, definition.title)
        return saved

    def start_adhoc(self, owner_id: str, title: str,
            exercises: Iterable[Union[ExerciseEntry, dict]]) -> WorkoutSession:
        return self.instantiate_from_definition(
            owner_id, {"title": title, "exercises": list(exercises)}
        )

    # ------------------------------
    # Lookup
    # ------------------------------
    def get_session(self, session_id: str) -> WorkoutSession:
        record = self.mongo.get_workout(session_id)
        if record is None or record.kind != WorkoutKind.SESSION:
            raise NotFound(f"Session {session_id} not found")
        return record

    def list_sessions(self, owner_id: str, limit: Optional[int] = None) -> List[WorkoutSession]:
        """Most recent sessions of an owner, completed ones first by completion time."""
        if limit is None:
            limit = self.mongo.settings.engine.history_limit
        return self.mongo.query_sessions(owner_id, limit=limit)

    # ------------------------------
    # Set tracking
    # ------------------------------
    def set_completion(self, session_id: str, exercise_index: int, set_index: int,
            completed: bool) -> WorkoutSession:
        """Flags one set as done or not done. Sets may be toggled in any order."""
        session = self._session_with_set(session_id, exercise_index, set_index)
        updated = self.mongo.set_completion_flag(
            session.mongo_id, exercise_index, set_index, bool(completed)
        )
        if updated is None:
            raise NotFound(f"Session {session_id} not found")
        logger.debug("Session %s exercise %d set %d completed=%s",
            session_id, exercise_index, set_index, completed)
        return updated

    def log_set(self, session_id: str, exercise_index: int, set_index: int,
            reps: Optional[int] = None, weight: Optional[float] = None) -> WorkoutSession:
        """Records the reps and/or weight actually done on one set.

        Arguments left as None keep their stored value.
        """
        fields = {}
        if reps is not None:
            if isinstance(reps, bool) or not isinstance(reps, int) or reps < 0:
                raise InvalidArgument(f"Reps must be a whole number of zero or more, got {reps!r}")
            fields["reps"] = reps
        if weight is not None:
            if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight < 0:
                raise InvalidArgument(f"Weight must be zero or more, got {weight!r}")
            fields["weight"] = float(weight)

        session = self._session_with_set(session_id, exercise_index, set_index)
        if not fields:
            return session
        updated = self.mongo.update_set_fields(session.mongo_id, exercise_index, set_index, fields)
        if updated is None:
            raise NotFound(f"Session {session_id} not found")
        logger.debug("Session %s exercise %d set %d logged %s",
            session_id, exercise_index, set_index, fields)
        return updated

    def _session_with_set(self, session_id: str, exercise_index: int, set_index: int) -> WorkoutSession:
        session = self.get_session(session_id)
        if not 0 <= exercise_index < len(session.exercises):
            raise NotFound(f"Exercise index {exercise_index} not found in session {session_id}")
        sets = session.exercises[exercise_index].sets
        if not 0 <= set_index < len(sets):
            raise NotFound(f"Set index {set_index} not found in exercise {exercise_index}")
        return session

    # ------------------------------
    # Completion state machine
    # ------------------------------
    def complete_session(self, session_id: str, rating: Optional[int], comment: Optional[str] = "",
            save_as_template: Optional[str] = None) -> WorkoutSession:
        """Moves a session to Completed, stamping time, rating and comment.

        There is no way back to InProgress; deleting the session is the only undo.
        With ``save_as_template`` a template is also derived from the session.
        """
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise InvalidArgument("Rating must be an integer between 1 and 5")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidArgument(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
        if save_as_template is not None and not save_as_template.strip():
            raise InvalidArgument("Template name is required")

        oid = to_object_id(session_id)
        completed = self.mongo.mark_completed(oid, rating, comment or "", utcnow())
        if completed is None:
            raise NotFound(f"Session {session_id} not found")
        logger.info("Session %s %s with rating %d", session_id, SessionState.COMPLETED.value, rating)

        self._notify(completed)
        if save_as_template is not None:
            self.templates.create_template_from(completed, save_as_template)
        return completed

    def delete_session(self, session_id: str) -> None:
        session = self.get_session(session_id)
        self.mongo.delete_workout(session.mongo_id, {"kind": WorkoutKind.SESSION.value})
        logger.info("Deleted session %s of owner %s", session_id, session.owner_id)
        self._notify(session)

    def _notify(self, session: WorkoutSession) -> None:
        for listener in self._listeners:
            listener(session)
