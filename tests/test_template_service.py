from datetime import datetime, timedelta, timezone

import pytest

from fittrack.errors import InvalidArgument, NotFound
from fittrack.models.domain import WorkoutTemplate
from tests.conftest import OWNER


def test_list_templates_newest_first(services, mongo, exercises):
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    for offset, name in enumerate(["Old", "Middle", "New"]):
        mongo.insert_workout(WorkoutTemplate(
            owner_id=OWNER, title=name, template_name=name, exercises=exercises,
            created_at=base + timedelta(days=offset),
        ))
    mongo.insert_workout(WorkoutTemplate(owner_id="someone-else", title="X", template_name="X",
        exercises=exercises))

    names = [t.template_name for t in services.templates.list_templates(OWNER)]
    assert names == ["New", "Middle", "Old"]


def test_list_templates_excludes_sessions(services, template):
    services.sessions.instantiate(template)
    listed = services.templates.list_templates(OWNER)
    assert [t.id for t in listed] == [template.id]


def test_list_templates_empty_owner(services):
    assert services.templates.list_templates("nobody") == []


@pytest.mark.parametrize("name", ["", "   ", None])
def test_create_template_requires_name(services, exercises, name):
    with pytest.raises(InvalidArgument):
        services.templates.create_template(OWNER, name, "Upper", exercises)


def test_create_template_rejects_empty_exercises(services):
    with pytest.raises(InvalidArgument):
        services.templates.create_template(OWNER, "Empty", "Upper", [])


def test_create_template_clears_completion(services, exercises):
    exercises[0].sets[1].completed = True
    created = services.templates.create_template(OWNER, "Push", "Upper", exercises)

    stored = services.templates.get_template(created.id)
    assert all(not s.completed for e in stored.exercises for s in e.sets)


def test_create_template_from_session_leaves_source_untouched(services, template):
    session = services.sessions.instantiate(template)
    session = services.sessions.set_completion(session.id, 0, 0, True)

    derived = services.templates.create_template_from(session, "  From Session ")

    assert derived.template_name == "From Session"
    assert derived.owner_id == session.owner_id
    assert all(not s.completed for e in derived.exercises for s in e.sets)
    assert services.sessions.get_session(session.id).exercises[0].sets[0].completed is True
    assert len(services.templates.list_templates(OWNER)) == 2


def test_create_template_from_requires_name(services, template):
    with pytest.raises(InvalidArgument):
        services.templates.create_template_from(template, " ")


def test_delete_template(services, template):
    services.templates.delete_template(template.id, OWNER)

    with pytest.raises(NotFound):
        services.templates.get_template(template.id)


def test_delete_template_of_other_owner_is_not_found(services, template):
    with pytest.raises(NotFound):
        services.templates.delete_template(template.id, "intruder")
    assert services.templates.get_template(template.id).id == template.id


def test_delete_template_refuses_sessions(services, template):
    session = services.sessions.instantiate(template)
    with pytest.raises(NotFound):
        services.templates.delete_template(session.id, OWNER)
    assert services.sessions.get_session(session.id).id == session.id


def test_delete_unknown_template(services):
    with pytest.raises(NotFound):
        services.templates.delete_template("0123456789abcdef01234567", OWNER)


def test_malformed_template_id(services):
    with pytest.raises(InvalidArgument):
        services.templates.get_template("not-an-id")


def test_seed_defaults_uses_definitions(services):
    created = services.templates.seed_defaults(OWNER)

    names = {t.template_name for t in created}
    assert len(created) == 4
    assert {"Push Day A", "Pull Day A", "Leg Day A", "HIIT Circuit"} == names
    assert sum(len(e.sets) for e in created[0].exercises) == 16
