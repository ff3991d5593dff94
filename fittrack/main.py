import argparse
import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from pymongo import MongoClient

from fittrack.config import Settings
from fittrack.errors import FittrackError
from fittrack.services.definition_service import DefinitionService
from fittrack.services.mongo_service import MongoService
from fittrack.services.nutrition_service import MongoNutritionProvider, NutritionService
from fittrack.services.reporting_service import ReportingService
from fittrack.services.rest_timer import RestTimer
from fittrack.services.session_service import SessionService
from fittrack.services.streak_service import StreakService
from fittrack.services.template_service import TemplateService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    mongo: MongoService
    definitions: DefinitionService
    templates: TemplateService
    sessions: SessionService
    streaks: StreakService
    nutrition: NutritionService
    reporting: ReportingService


def build_services(settings: Settings, client: Optional[MongoClient] = None) -> Services:
    """Instantiates and wires every service."""
    mongo = MongoService(settings, client)
    definitions = DefinitionService(settings.engine.definitions_path)
    templates = TemplateService(mongo, definitions)
    sessions = SessionService(mongo, templates, definitions)
    streaks = StreakService(mongo)
    sessions.on_change(streaks.on_session_change)
    nutrition = NutritionService(MongoNutritionProvider(mongo))
    return Services(settings, mongo, definitions, templates, sessions, streaks, nutrition, ReportingService())


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}'. Use YYYY-MM-DD.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fittrack",
        description="Workout sessions, streaks and weekly nutrition.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--env", default=os.getenv("FITTRACK_ENV", "local"),
        help="Configuration environment, reads config-<env>.yaml. Defaults to $FITTRACK_ENV or 'local'.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("templates", help="List an owner's templates.")
    p.add_argument("owner")
    p.add_argument("--seed", action="store_true", help="First store the predefined workouts as templates.")

    p = sub.add_parser("delete-template", help="Delete one of an owner's templates.")
    p.add_argument("owner")
    p.add_argument("template_id")

    p = sub.add_parser("definitions", help="List predefined workout definitions.")

    p = sub.add_parser("start", help="Start a session from a stored template.")
    p.add_argument("template_id")

    p = sub.add_parser("start-definition", help="Start a session from a predefined workout.")
    p.add_argument("owner")
    p.add_argument("key")

    p = sub.add_parser("set", help="Mark a set as done (or not done with --undo).")
    p.add_argument("session_id")
    p.add_argument("exercise_index", type=int)
    p.add_argument("set_index", type=int)
    p.add_argument("--undo", action="store_true")

    p = sub.add_parser("log", help="Record the reps and/or weight actually done on a set.")
    p.add_argument("session_id")
    p.add_argument("exercise_index", type=int)
    p.add_argument("set_index", type=int)
    p.add_argument("--reps", type=int)
    p.add_argument("--weight", type=float)

    p = sub.add_parser("complete", help="Complete a session with a rating from 1 to 5.")
    p.add_argument("session_id")
    p.add_argument("rating", type=int)
    p.add_argument("--comment", default="")
    p.add_argument("--save-as", dest="save_as", help="Also save the session as a template with this name.")

    p = sub.add_parser("show", help="Show a session.")
    p.add_argument("session_id")

    p = sub.add_parser("history", help="List an owner's recent sessions.")
    p.add_argument("owner")
    p.add_argument("--limit", type=int)

    p = sub.add_parser("streak", help="Show an owner's current streak.")
    p.add_argument("owner")
    p.add_argument("--as-of", dest="as_of", type=_parse_date)

    p = sub.add_parser("stats", help="Show an owner's adherence stats.")
    p.add_argument("owner")
    p.add_argument("--as-of", dest="as_of", type=_parse_date)

    p = sub.add_parser("week", help="Show an owner's weekly nutrition summary.")
    p.add_argument("owner")
    p.add_argument("--as-of", dest="as_of", type=_parse_date)
    p.add_argument("--chart", help="Write a PNG chart of daily calories to this path.")

    p = sub.add_parser("timer", help="Run a rest countdown.")
    p.add_argument("seconds", type=int)

    return parser


def run(args: argparse.Namespace, services: Services) -> int:
    """Executes one parsed command against the services."""
    reporting = services.reporting

    if args.command == "templates":
        if args.seed:
            services.templates.seed_defaults(args.owner)
        for template in services.templates.list_templates(args.owner):
            print(reporting.format_template_line(template))

    elif args.command == "delete-template":
        services.templates.delete_template(args.template_id, args.owner)
        print(f"Template {args.template_id} deleted.")

    elif args.command == "definitions":
        for key, definition in services.definitions.all_definitions().items():
            print(f"{key}: {definition.title}")

    elif args.command == "start":
        print(reporting.format_session_summary(services.sessions.instantiate_from_template(args.template_id)))

    elif args.command == "start-definition":
        print(reporting.format_session_summary(services.sessions.instantiate_from_definition(args.owner, args.key)))

    elif args.command == "set":
        session = services.sessions.set_completion(
            args.session_id, args.exercise_index, args.set_index, not args.undo
        )
        print(reporting.format_session_summary(session))

    elif args.command == "log":
        session = services.sessions.log_set(
            args.session_id, args.exercise_index, args.set_index, reps=args.reps, weight=args.weight
        )
        print(reporting.format_session_summary(session))

    elif args.command == "complete":
        session = services.sessions.complete_session(
            args.session_id, args.rating, args.comment, save_as_template=args.save_as
        )
        print(reporting.format_session_summary(session))
        print(reporting.streak_message(services.streaks.current_streak(session.owner_id)))

    elif args.command == "show":
        print(reporting.format_session_summary(services.sessions.get_session(args.session_id)))

    elif args.command == "history":
        for session in services.sessions.list_sessions(args.owner, args.limit):
            print(reporting.format_session_line(session))

    elif args.command == "streak":
        print(reporting.streak_message(services.streaks.current_streak(args.owner, args.as_of)))

    elif args.command == "stats":
        print(reporting.format_owner_stats(services.streaks.owner_stats(args.owner, args.as_of)))

    elif args.command == "week":
        as_of = args.as_of or datetime.now(services.settings.engine.tzinfo()).date()
        week = services.nutrition.aggregate_week(args.owner, as_of)
        print(reporting.format_week_summary(week))
        if args.chart:
            chart = reporting.daily_calories_chart(week)
            if chart is None:
                print("Nothing logged this week, no chart written.")
            else:
                with open(args.chart, "wb") as f:
                    f.write(chart.getvalue())
                print(f"Chart written to {args.chart}")

    return 0


def run_timer(seconds: int) -> int:
    timer = RestTimer()

    async def countdown() -> None:
        timer.start(seconds, on_tick=lambda left: print(f"⏱️ {left}s", flush=True),
            on_finish=lambda: print("Rest over, next set! 💪"))
        await timer.wait()

    try:
        asyncio.run(countdown())
    except KeyboardInterrupt:
        print("Rest cancelled.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parses arguments, builds services for the selected environment and runs the command."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)

    if args.command == "timer":
        return run_timer(args.seconds)

    logger.info("Starting fittrack in '%s' environment.", args.env)
    try:
        settings = Settings.load(args.env)
        services = build_services(settings)
    except FileNotFoundError as e:
        logger.critical("Configuration Error: %s. Ensure your config-%s.yaml file exists.", e, args.env)
        return 1
    except Exception:
        logger.critical("Failed to initialize services.", exc_info=True)
        return 1

    try:
        return run(args, services)
    except FittrackError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        services.mongo.close()


if __name__ == "__main__":
    sys.exit(main())
