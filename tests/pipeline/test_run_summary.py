import json

import pytest

from markprep.contracts import InvalidInterval, UnjoinedSubject, SchemaMismatch
from markprep.pipeline.summary import RunSummary

pytestmark = pytest.mark.unit


def test_exclusion_counts_per_kind():
    summary = RunSummary("Nest", 30)
    summary.record_exclusion(InvalidInterval("bad", subject="n1"), stage="history")
    summary.record_exclusion(InvalidInterval("bad", subject="n2"), stage="history")
    summary.record_exclusion(UnjoinedSubject("none", subject="n3"), stage="join")

    assert summary.exclusion_counts() == {"InvalidInterval": 2, "UnjoinedSubject": 1}
    assert [e["stage"] for e in summary.exclusions] == ["history", "history", "join"]


def test_complete_and_write(tmp_path):
    summary = RunSummary("CJS", 4, run_id="20240101T000000Z")
    summary.set_count("histories", 12)
    summary.complete([tmp_path / "out.csv"])

    path = summary.write(tmp_path / "run_summary.json")
    data = json.loads(path.read_text())

    assert data["status"] == "completed"
    assert data["counts"] == {"histories": 12}
    assert data["excluded"] == {}
    assert data["outputs"] == [str(tmp_path / "out.csv")]
    assert data["run_id"] == "20240101T000000Z"


def test_fail_records_error():
    summary = RunSummary("CJS", 4)
    summary.fail(SchemaMismatch("missing BTS", missing=["BTS"]))

    data = summary.to_dict()
    assert data["status"] == "failed"
    assert data["error"]["kind"] == "SchemaMismatch"


def test_log_does_not_raise(caplog):
    summary = RunSummary("Known", 8)
    summary.record_exclusion(UnjoinedSubject("none", subject=7), stage="join")
    summary.complete()

    with caplog.at_level("INFO"):
        summary.log()

    assert "UnjoinedSubject" in caplog.text
