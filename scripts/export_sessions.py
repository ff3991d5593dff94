"""
Backs up workout sessions to JSON, one file per session named
<date>_<session id>.json, optionally limited to one owner or to completed sessions.

Usage:
  python scripts/export_sessions.py [--env local] [--owner ID] [--completed-only] [--dir PATH]
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fittrack.config import Settings
from fittrack.models.domain import WorkoutSession
from fittrack.services.mongo_service import MongoService

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def backup_filename(session: WorkoutSession) -> str:
    return f"{session.activity_date.strftime('%Y-%m-%d')}_{session.id}.json"


def run_export(mongo_service: MongoService, backup_dir: Path, owner_id: Optional[str] = None,
        completed_only: bool = False) -> List[Path]:
    """Writes the selected sessions and returns the paths written.

    Session fields are written in their JSON form (ids as strings, ISO timestamps).
    """
    sessions = mongo_service.query_all_sessions(owner_id=owner_id, completed_only=completed_only)
    backup_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for session in sessions:
        path = backup_dir / backup_filename(session)
        payload = session.model_dump(mode="json", by_alias=True, exclude_none=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        written.append(path)
    logger.info("Exported %d sessions to '%s'", len(written), backup_dir)
    return written


def main():
    parser = argparse.ArgumentParser(description="Back up workout sessions as JSON files.")
    parser.add_argument("--env", default=os.getenv("FITTRACK_ENV", "local"),
        help="Environment to target, reads config-<env>.yaml. Defaults to 'local'.")
    parser.add_argument("--owner", help="Only export this owner's sessions.")
    parser.add_argument("--completed-only", action="store_true", help="Skip sessions still in progress.")
    parser.add_argument("--dir", help="Backup directory. Defaults to backup.directory from config.")
    args = parser.parse_args()

    try:
        settings = Settings.load(args.env)
    except FileNotFoundError:
        logger.critical("Configuration Error: config-%s.yaml not found.", args.env)
        sys.exit(1)

    mongo_service = MongoService(settings)
    try:
        run_export(mongo_service, Path(args.dir or settings.backup.directory), args.owner, args.completed_only)
    except OSError:
        logger.critical("Could not write the backup.", exc_info=True)
        sys.exit(1)
    finally:
        mongo_service.close()


if __name__ == "__main__":
    main()
