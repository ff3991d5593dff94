from datetime import date, datetime, timezone

import pytest

from fittrack.main import build_parser, main, run
from tests.conftest import OWNER
from tests.test_nutrition_service import AS_OF, _day


def _run(services, *argv):
    return run(build_parser().parse_args(list(argv)), services)


def test_templates_seed_and_list(services, capsys):
    assert _run(services, "templates", OWNER, "--seed") == 0

    out = capsys.readouterr().out
    assert "Push Day A (Upper Body Strength): 5 exercises, 16 sets" in out
    assert out.count("\n") == 4


def test_session_workflow(services, template, capsys):
    _run(services, "start", template.id)
    session = services.sessions.list_sessions(OWNER)[0]

    _run(services, "set", session.id, "0", "0")
    _run(services, "set", session.id, "0", "0", "--undo")
    _run(services, "set", session.id, "1", "2")
    _run(services, "complete", session.id, "5", "--comment", "great")

    out = capsys.readouterr().out
    assert "1/5 sets done (20%)" in out
    assert "🔥 1 day streak: Great Start!" in out
    assert services.sessions.get_session(session.id).is_completed


def test_start_definition_and_show(services, capsys):
    _run(services, "start-definition", OWNER, "hiit_circuit")
    session = services.sessions.list_sessions(OWNER)[0]
    capsys.readouterr()

    _run(services, "show", session.id)
    assert "*HIIT Circuit*" in capsys.readouterr().out


def test_streak_command(services, completed_on, capsys):
    completed_on(date(2024, 6, 15))
    _run(services, "streak", OWNER, "--as-of", "2024-06-15")
    assert "1 day streak" in capsys.readouterr().out


def test_week_with_chart(services, mongo, tmp_path, capsys):
    mongo.save_nutrition_day(_day(AS_OF, 2000, 150, 200, 60))
    chart = tmp_path / "week.png"

    _run(services, "week", OWNER, "--as-of", AS_OF.isoformat(), "--chart", str(chart))

    assert "Total: 2,000 kcal" in capsys.readouterr().out
    assert chart.read_bytes()[:4] == b"\x89PNG"


def test_invalid_date_argument():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["streak", OWNER, "--as-of", "15/06/2024"])


def test_main_reports_missing_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["--env", "missing", "streak", OWNER]) == 1


def test_log_command(services, template, capsys):
    session = services.sessions.instantiate(template)

    _run(services, "log", session.id, "0", "1", "--reps", "6", "--weight", "70")

    assert "#1 → 6 reps × 70 kg ❌" in capsys.readouterr().out


def test_stats_command(services, completed_on, capsys):
    completed_on(date(2024, 6, 15))
    _run(services, "stats", OWNER, "--as-of", "2024-06-15")

    out = capsys.readouterr().out
    assert "🔥 1 day streak: Great Start!" in out
    assert "Workouts completed: 1" in out
    assert "Last workout:" in out


def test_week_defaults_to_today_in_configured_zone(services, monkeypatch, capsys):
    def unused():
        raise AssertionError("week must not ask the streak service for today")

    monkeypatch.setattr(services.streaks, "today", unused)

    _run(services, "week", OWNER)

    assert f"Week ending {datetime.now(timezone.utc).date().isoformat()}" in capsys.readouterr().out
