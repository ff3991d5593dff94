"""
Service layer for the template store: named, reusable workout definitions.
"""
import logging
from typing import Iterable, List, Optional, Union

from pydantic import ValidationError

from fittrack.errors import InvalidArgument, NotFound
from fittrack.models.domain import (
    ExerciseEntry,
    WorkoutSession,
    WorkoutTemplate,
    reset_exercises,
)
from fittrack.models.enums import WorkoutKind
from fittrack.services.definition_service import DefinitionService
from fittrack.services.mongo_service import MongoService

logger = logging.getLogger(__name__)


def _require_name(template_name: Optional[str]) -> str:
    if not template_name or not template_name.strip():
        raise InvalidArgument("Template name is required")
    return template_name.strip()


class TemplateService:
    """Creates, lists and deletes workout templates."""

    def __init__(self, mongo: MongoService, definitions: Optional[DefinitionService] = None):
        self.mongo = mongo
        self.definitions = definitions

    def list_templates(self, owner_id: str) -> List[WorkoutTemplate]:
        """Templates of an owner, newest first."""
        templates = self.mongo.query_templates(owner_id)
        logger.debug("Found %d templates for owner %s", len(templates), owner_id)
        return templates

    def get_template(self, template_id: str) -> WorkoutTemplate:
        record = self.mongo.get_workout(template_id)
        if record is None or record.kind != WorkoutKind.TEMPLATE:
            raise NotFound(f"Template {template_id} not found")
        return record

    def create_template(self, owner_id: str, template_name: str, title: str,
            exercises: Iterable[Union[ExerciseEntry, dict]], description: str = "") -> WorkoutTemplate:
        """Creates a template directly from an exercise list."""
        name = _require_name(template_name)
        try:
            entries = [ExerciseEntry.model_validate(e, from_attributes=True) for e in exercises]
            template = WorkoutTemplate(
                owner_id=owner_id,
                title=title,
                template_name=name,
                description=description,
                exercises=reset_exercises(entries),
            )
        except ValidationError as e:
            raise InvalidArgument(f"Invalid template: {e}") from e
        return self.mongo.insert_workout(template)

    def create_template_from(self, source: Union[WorkoutSession, WorkoutTemplate],
            template_name: str) -> WorkoutTemplate:
        """Copies the exercise/set structure of a workout into a new template.

        Completion flags are not copied and the source is left untouched.
        """
        name = _require_name(template_name)
        template = WorkoutTemplate(
            owner_id=source.owner_id,
            title=source.title,
            template_name=name,
            exercises=reset_exercises(source.exercises),
        )
        saved = self.mongo.insert_workout(template)
        logger.info("Created template '%s' (%s) from %s %s", name, saved.id, source.kind, source.id)
        return saved

    def delete_template(self, template_id: str, owner_id: str) -> None:
        """Deletes a template owned by owner_id.

        Sessions, unknown ids and other owners' templates all report NotFound.
        """
        deleted = self.mongo.delete_workout(
            template_id, {"kind": WorkoutKind.TEMPLATE.value, "owner_id": owner_id}
        )
        if not deleted:
            raise NotFound(f"Template {template_id} not found")
        logger.info("Deleted template %s of owner %s", template_id, owner_id)

    def seed_defaults(self, owner_id: str) -> List[WorkoutTemplate]:
        """Stores every predefined definition as a template for the owner."""
        if self.definitions is None:
            return []
        created = []
        for key, definition in self.definitions.all_definitions().items():
            created.append(self.create_template(
                owner_id,
                template_name=definition.template_name or definition.title,
                title=definition.title,
                exercises=definition.exercises,
                description=definition.description,
            ))
            logger.debug("Seeded template from definition '%s'", key)
        logger.info("Seeded %d templates for owner %s", len(created), owner_id)
        return created
