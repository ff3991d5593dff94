import logging
from typing import Dict, List

import yaml
from pydantic import ValidationError

from fittrack.errors import NotFound
from fittrack.models.domain import WorkoutDefinition

logger = logging.getLogger(__name__)


class DefinitionService:
    """Loads the predefined workout definitions and looks them up by key."""

    def __init__(self, config_path: str):
        self._definitions: Dict[str, WorkoutDefinition] = {}
        try:
            with open(config_path, "r", encoding="utf-8") as file:
                raw = (yaml.safe_load(file) or {}).get("workouts", {})
            for key, data in raw.items():
                self._definitions[key] = WorkoutDefinition(**data)
            logger.info("Loaded %d workout definitions from %s", len(self._definitions), config_path)
        except (FileNotFoundError, yaml.YAMLError, ValidationError) as e:
            logger.error("Failed to load workout definitions file: %s", e, exc_info=True)
            self._definitions = {}

    def get_definition_keys(self) -> List[str]:
        """Returns the keys of all available definitions, in file order."""
        return list(self._definitions.keys())

    def get_definition(self, key: str) -> WorkoutDefinition:
        """Gets one definition by key."""
        try:
            return self._definitions[key]
        except KeyError:
            raise NotFound(f"Unknown workout definition: {key}") from None

    def all_definitions(self) -> Dict[str, WorkoutDefinition]:
        return dict(self._definitions)
