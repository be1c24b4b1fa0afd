from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator

import pytest

from fakes import FakeGateway, FakeSource, RecordingNotifier

import batch_loader.cli.loader as loader
from batch_loader.cli.loader import Pipeline, run_batch, run_event
from batch_loader.config import Settings
from batch_loader.errors import ConnectivityError
from batch_loader.sources.objects import make_event

INBOUND = "inbound-file-drop"

STUDENTS_CSV = b"student_id,fname,lname,course\nS12345,Ann,Lee,MATHS1\nbad,,,X\n"


def _pipeline(objects: dict[tuple[str, str], bytes], gateway: FakeGateway, notifier: RecordingNotifier) -> Pipeline:
    return Pipeline(source=FakeSource(objects), gateway=gateway, notifier=notifier)


def test_run_publishes_summary_once(settings: Settings) -> None:
    gateway, notifier = FakeGateway(), RecordingNotifier()
    pipeline = _pipeline({(INBOUND, "students.csv"): STUDENTS_CSV}, gateway, notifier)

    result = run_batch(make_event(INBOUND, "students.csv"), pipeline=pipeline, settings=settings, batch_id="b-1")

    assert result.succeeded
    assert result.batch_id == "b-1"
    assert result.summary is not None
    assert result.summary.total_inserted_records == 1

    (sent,) = notifier.sent
    assert sent.batch_id == "b-1"
    payload = json.loads(sent.message)
    assert payload["totalRecordsProcessed"] == 2
    assert payload["totalInsertedRecords"] == 1
    assert payload["totalFailedRecords"] == 1
    assert payload["recordsFailedDueToValidation"] == 1
    assert [d["row"] for d in payload["errorDetails"]] == [2]


def test_generated_batch_ids_differ(settings: Settings) -> None:
    objects = {(INBOUND, "students.csv"): STUDENTS_CSV}
    a = run_batch(make_event(INBOUND, "students.csv"), pipeline=_pipeline(objects, FakeGateway(), RecordingNotifier()), settings=settings)
    b = run_batch(make_event(INBOUND, "students.csv"), pipeline=_pipeline(objects, FakeGateway(), RecordingNotifier()), settings=settings)
    assert a.batch_id and b.batch_id and a.batch_id != b.batch_id


def test_every_log_line_carries_the_batch_id(settings: Settings, caplog: pytest.LogCaptureFixture) -> None:
    pipeline = _pipeline({(INBOUND, "students.csv"): STUDENTS_CSV}, FakeGateway(), RecordingNotifier())
    with caplog.at_level(logging.INFO):
        run_batch(make_event(INBOUND, "students.csv"), pipeline=pipeline, settings=settings, batch_id="b-42")

    messages = [r.getMessage() for r in caplog.records if r.name.startswith("batch_loader")]
    assert messages
    assert all(m.startswith("b-42 >> ") for m in messages)


def test_event_for_another_bucket_fails_with_one_notification(settings: Settings) -> None:
    gateway, notifier = FakeGateway(), RecordingNotifier()
    pipeline = _pipeline({}, gateway, notifier)

    result = run_batch(make_event("elsewhere", "students.csv"), pipeline=pipeline, settings=settings)

    assert not result.succeeded
    assert result.error is not None and result.error.startswith("TriggerError: ")
    assert [n.message for n in notifier.sent] == [result.error]
    assert pipeline.source.opened == []  # type: ignore[attr-defined]


def test_missing_object_fails_with_one_notification(settings: Settings) -> None:
    notifier = RecordingNotifier()
    result = run_batch(make_event(INBOUND, "nope.csv"), pipeline=_pipeline({}, FakeGateway(), notifier), settings=settings)

    assert result.summary is None
    assert len(notifier.sent) == 1
    assert notifier.sent[0].message.startswith("SourceReadError: ")


def test_decode_failure_stores_nothing(settings: Settings) -> None:
    """A bad row late in the file aborts before any earlier row is stored."""
    gateway, notifier = FakeGateway(), RecordingNotifier()
    data = b'student_id,fname,course\nS12345,Ann,MATHS1\nS22222,"Bo"x,MATHS1\n'
    pipeline = _pipeline({(INBOUND, "students.csv"): data}, gateway, notifier)

    result = run_batch(make_event(INBOUND, "students.csv"), pipeline=pipeline, settings=settings)

    assert result.summary is None
    assert gateway.calls == []
    assert len(notifier.sent) == 1
    assert notifier.sent[0].message.startswith("DecodeError: ")


def test_store_unreachable_mid_batch(settings: Settings) -> None:
    """No summary, exactly one failure notification."""
    gateway, notifier = FakeGateway(unreachable_after=1), RecordingNotifier()
    data = b"student_id,fname,course\nS00001,Ann,MATHS1\nS00002,Bo,MATHS1\nS00003,Cy,MATHS1\n"
    pipeline = _pipeline({(INBOUND, "students.csv"): data}, gateway, notifier)

    result = run_batch(make_event(INBOUND, "students.csv"), pipeline=pipeline, settings=settings)

    assert result.summary is None
    assert result.error == "ConnectivityError: store unreachable"
    assert [n.message for n in notifier.sent] == ["ConnectivityError: store unreachable"]


def test_notification_failure_is_swallowed(settings: Settings, caplog: pytest.LogCaptureFixture) -> None:
    notifier = RecordingNotifier(fail=True)
    pipeline = _pipeline({(INBOUND, "students.csv"): STUDENTS_CSV}, FakeGateway(), notifier)

    result = run_batch(make_event(INBOUND, "students.csv"), pipeline=pipeline, settings=settings, batch_id="b-9")

    assert result.succeeded
    assert len(notifier.sent) == 1   # tried once, not retried
    assert "Unable to publish notification" in caplog.text


def test_empty_file_is_a_zero_summary(settings: Settings) -> None:
    notifier = RecordingNotifier()
    pipeline = _pipeline({(INBOUND, "empty.csv"): b""}, FakeGateway(), notifier)

    result = run_batch(make_event(INBOUND, "empty.csv"), pipeline=pipeline, settings=settings)

    assert result.summary is not None
    assert json.loads(notifier.sent[0].message) == {
        "totalRecordsProcessed": 0,
        "totalInsertedRecords": 0,
        "totalFailedRecords": 0,
        "recordsFailedDueToValidation": 0,
        "errorDetails": [],
    }


## -- run_event: opening the pipeline from settings

def test_run_event_notifies_when_store_cannot_open(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    notifier = RecordingNotifier()
    monkeypatch.setattr(loader, "build_notifier", lambda s: notifier)

    def refuse(url: str) -> object:
        raise ConnectivityError("unable to connect to Postgres: connection refused")

    monkeypatch.setattr(loader, "connect", refuse)

    result = run_event(make_event(INBOUND, "students.csv"), settings=settings, batch_id="b-7")

    assert result.summary is None
    assert result.error == "ConnectivityError: unable to connect to Postgres: connection refused"
    assert [(n.batch_id, n.message) for n in notifier.sent] == [("b-7", result.error)]


def test_run_event_runs_the_batch_through_open_pipeline(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    gateway, notifier = FakeGateway(), RecordingNotifier()

    @contextmanager
    def fake_open(s: Settings, *, notifier: RecordingNotifier) -> Iterator[Pipeline]:
        yield _pipeline({(INBOUND, "students.csv"): STUDENTS_CSV}, gateway, notifier)

    monkeypatch.setattr(loader, "build_notifier", lambda s: notifier)
    monkeypatch.setattr(loader, "open_pipeline", fake_open)

    result = run_event(make_event(INBOUND, "students.csv"), settings=settings)

    assert result.succeeded
    assert len(notifier.sent) == 1
    assert list(gateway.items) == ["S12345"]


def test_unknown_store_backend(settings: Settings) -> None:
    with pytest.raises(ValueError, match="STORE_BACKEND"):
        with loader.open_pipeline(replace(settings, store_backend="mongo"), notifier=RecordingNotifier()):
            pass
