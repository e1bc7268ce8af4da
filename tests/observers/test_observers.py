import json
import logging

from fleetboot.observers.dispatcher import EventBus
from fleetboot.observers.events import (
    BootstrapSummary,
    StepFailed,
    StepStarted,
    StepSucceeded,
    new_ctx,
)
from fleetboot.observers.jsonfile import JsonFileObserver
from fleetboot.observers.logger import LoggerObserver


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


class Broken:
    def notify(self, ev): raise ValueError("observer bug")


def test_new_ctx_reuses_given_run_id():
    ctx = new_ctx("node-1", run_id="abc")
    assert ctx["run_id"] == "abc"
    assert ctx["host"] == "node-1"
    assert ctx["ts"].endswith("Z")

    assert new_ctx("node-1")["run_id"] != new_ctx("node-1")["run_id"]


def test_event_bus_survives_a_broken_observer():
    cap = Capture()
    bus = EventBus([Broken(), cap])

    ev = StepStarted(**new_ctx("h", "r"), step="prepare-storage")
    bus.emit(ev)

    assert cap.events == [ev]


def test_json_file_observer_writes_one_line_per_event(tmp_path):
    path = tmp_path / "events" / "boot.jsonl"
    ob = JsonFileObserver(path, fsync=False)

    ob.notify(StepSucceeded(**new_ctx("h", "r"), step="persist-mount", duration_ms=12, detail="added"))
    ob.notify(BootstrapSummary(**new_ctx("h", "r"), status="OK", ok=8, failed=0, skipped=0))

    lines = [json.loads(ln) for ln in path.read_text().splitlines()]
    assert [ln["event"] for ln in lines] == ["StepSucceeded", "BootstrapSummary"]
    assert lines[0]["step"] == "persist-mount"
    assert lines[0]["run_id"] == "r"
    assert lines[1]["failed_step"] is None


def test_logger_observer_levels(caplog):
    logger = logging.getLogger("fleetboot.test-observer")
    ob = LoggerObserver(logger)

    with caplog.at_level(logging.DEBUG, logger="fleetboot.test-observer"):
        ob.notify(StepStarted(**new_ctx("h", "r"), step="start-agent"))
        ob.notify(StepFailed(**new_ctx("h", "r"), step="install-cleanup", error="x", fatal=False))
        ob.notify(StepFailed(**new_ctx("h", "r"), step="start-runtime", error="y", fatal=True))
        ob.notify(BootstrapSummary(**new_ctx("h", "r"), status="FAILED", ok=5, failed=1, skipped=0,
                                   failed_step="start-runtime"))

    levels = [r.levelno for r in caplog.records]
    assert levels == [logging.DEBUG, logging.WARNING, logging.ERROR, logging.INFO]
    assert caplog.records[2].getMessage().startswith("[EVENT] StepFailed: ")
    assert "run_id" not in caplog.records[2].getMessage()
