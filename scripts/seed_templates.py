"""
Loads the predefined workout definitions YAML file and stores each one as a
template for a specific owner.

Usage:
  python scripts/seed_templates.py <owner_id> [--env local] [--file workout_definitions.yaml]
"""
import argparse
import logging
import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fittrack.config import Settings
from fittrack.errors import FittrackError
from fittrack.services.definition_service import DefinitionService
from fittrack.services.mongo_service import MongoService
from fittrack.services.template_service import TemplateService

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def seed(owner_id: str, mongo_service: MongoService, definitions_path: str) -> int:
    """Stores every definition as a template of the owner. Returns how many were stored."""
    definitions = DefinitionService(definitions_path)
    if not definitions.get_definition_keys():
        logging.error("No workout definitions found in '%s'.", definitions_path)
        return 0
    created = TemplateService(mongo_service, definitions).seed_defaults(owner_id)
    for template in created:
        logging.info("Stored template '%s' (%s)", template.template_name, template.id)
    return len(created)


def main():
    parser = argparse.ArgumentParser(
        description="Store the predefined workouts as templates for an owner."
    )
    parser.add_argument("owner_id", help="Owner the templates are created for.")
    parser.add_argument("--env", type=str, default=os.getenv("FITTRACK_ENV", "local"),
        help="Environment to target, reads config-<env>.yaml. Defaults to 'local'.")
    parser.add_argument("--file", type=str, help="Definitions YAML. Defaults to engine.definitions_path.")
    args = parser.parse_args()

    try:
        settings = Settings.load(args.env)
        logging.info("--> Targeting '%s' environment (host: %s)", args.env, settings.mongo.host)
        mongo_service = MongoService(settings)
    except FileNotFoundError:
        logging.critical("Configuration Error: config-%s.yaml not found.", args.env)
        sys.exit(1)

    try:
        count = seed(args.owner_id, mongo_service, args.file or settings.engine.definitions_path)
    except FittrackError as e:
        logging.error("Seeding failed: %s", e)
        sys.exit(1)
    finally:
        mongo_service.close()

    if count == 0:
        sys.exit(1)
    logging.info("Seeded %d templates for owner %s", count, args.owner_id)


if __name__ == "__main__":
    main()
