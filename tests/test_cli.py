import json

import pytest

from conftest import STUDENT, at

from portal_schedule.cli import format_table, main, parse_args, run
from portal_schedule.models import MergedEvent


def _run(store, *argv):
    return run(parse_args(list(argv)), store)


def test_events_json(store):
    store.insert_enrollment(STUDENT, "101")

    out = json.loads(_run(store, "events", "--user", STUDENT, "--from", "2026-10-19", "--to", "2026-10-19"))

    assert out == [
        {
            "id": "course-101-2026-10-19",
            "title": "Calculus I",
            "start": "2026-10-19T09:00:00Z",
            "end": "2026-10-19T10:30:00Z",
            "is_course_event": True,
            "course_id": "101",
        }
    ]


def test_day_table(store):
    store.insert_enrollment(STUDENT, "202")

    out = _run(store, "day", "--user", STUDENT, "--date", "2026-10-20", "--table")

    assert out == "2026-10-20 Tue  13:00-14:00  class  Intro to Programming"


def test_enroll_and_create_event(store):
    enrolled = json.loads(_run(store, "enroll", "--user", STUDENT, "--course", "303"))
    assert enrolled["enrolled"] is True
    assert enrolled["schedule_updated"] is False

    created = json.loads(
        _run(
            store,
            "create-event",
            "--user", STUDENT,
            "--title", "Study group",
            "--start", "2026-10-20T18:00:00+00:00",
            "--end", "2026-10-20T20:00:00+00:00",
        )
    )
    assert created["title"] == "Study group"

    deleted = json.loads(_run(store, "delete-event", "--user", STUDENT, "--id", created["id"]))
    assert deleted == {"deleted": created["id"]}


def test_courses(store):
    out = json.loads(_run(store, "courses", "--user", STUDENT))
    assert out["enrolled"] == []
    assert len(out["available"]) == 3


def test_format_table_empty():
    assert format_table([]) == "No events scheduled."


def test_format_table_marks_freeform():
    event = MergedEvent(id="1", title="Gym", start=at(19, 7), end=at(19, 8), is_course_event=False)
    assert format_table([event]) == "2026-10-19 Mon  07:00-08:00  event  Gym"


def test_main_requires_store_url(monkeypatch, capsys):
    monkeypatch.setenv("STORE_URL", "")
    # Keep structlog's global configuration away from the captured stream
    monkeypatch.setattr("portal_schedule.cli.setup_logging", lambda **kwargs: None)

    assert main(["events", "--user", STUDENT]) == 1
    assert "STORE_URL" in capsys.readouterr().err


@pytest.mark.parametrize(
    "range_args", [["--from", "2026-10-01"], ["--to", "2026-10-31"]]
)
def test_events_rejects_half_range(capsys, range_args):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(["events", "--user", STUDENT, *range_args])

    assert exc_info.value.code == 2
    assert "--from and --to must be given together" in capsys.readouterr().err


def test_events_without_range_uses_default_window(store):
    store.insert_enrollment(STUDENT, "101")

    out = json.loads(_run(store, "events", "--user", STUDENT))

    assert out
    assert {ev["course_id"] for ev in out} == {"101"}
