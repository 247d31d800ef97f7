import json

import pandas as pd
import pytest

from markprep.contracts import MissingOccasionCovariate, PostMortemObservation, SchemaMismatch
from markprep.pipeline.orchestrator import PipelineOrchestrator
from tests.helpers.fake_surveys import write_csv

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


def test_orchestrator_requires_ready_config(make_config):
    with pytest.raises(ValueError, match="Configuration incomplete"):
        PipelineOrchestrator(make_config(N_OCCASIONS=3))


def test_orchestrator_creates_output_dirs(snake_config, temp_dir):
    orch = PipelineOrchestrator(snake_config())

    assert set(orch.output_dirs) == {"base", "formatted", "logs"}
    assert (temp_dir / "out" / "formatted").is_dir()


def test_occupancy_run_end_to_end(snake_config, temp_dir):
    orch = PipelineOrchestrator(snake_config())

    table = orch.run()

    assert table["ch"].tolist() == ["000000", "011101", "100100"]
    assert list(table.columns) == [
        "id", "ch", "freq", "Forest", "Prey", "Temp1", "Temp2", "Temp3", "Temp4", "Temp5", "Temp6",
    ]
    # island C was not surveyed on occasion 5; carried forward from 4
    assert table.loc[2, "Temp5"] == 27.7

    out_csv = temp_dir / "out" / "formatted" / "formatted_Occupancy.csv"
    assert out_csv.exists()
    assert pd.read_csv(out_csv, dtype={"ch": str})["ch"].tolist() == ["000000", "011101", "100100"]

    summary = json.loads((temp_dir / "out" / "run_summary.json").read_text())
    assert summary["status"] == "completed"
    assert summary["counts"]["histories"] == 3


def test_run_writes_log_file(snake_config, temp_dir):
    PipelineOrchestrator(snake_config()).run()

    log = temp_dir / "out" / "logs" / "pipeline_formatted.log"
    assert log.exists()
    assert "Starting markprep run" in log.read_text()


def test_run_is_repeatable(snake_config, temp_dir):
    config = snake_config(OUTPUT_FORMATS=["csv", "inp"], COVARIATE_TYPES={"Prey": "int"})
    out = temp_dir / "out" / "formatted"

    PipelineOrchestrator(config).run()
    first = {p.name: p.read_bytes() for p in out.iterdir()}
    PipelineOrchestrator(config).run()
    second = {p.name: p.read_bytes() for p in out.iterdir()}

    assert set(first) == {"formatted_Occupancy.csv", "formatted_Occupancy.inp"}
    assert first == second


def test_failed_run_writes_summary_but_no_table(snake_config, temp_dir):
    orch = PipelineOrchestrator(snake_config(FILL_POLICY="fail"))

    with pytest.raises(MissingOccasionCovariate):
        orch.run()

    assert list((temp_dir / "out" / "formatted").iterdir()) == []
    summary = json.loads((temp_dir / "out" / "run_summary.json").read_text())
    assert summary["status"] == "failed"
    assert summary["error"]["kind"] == "MissingOccasionCovariate"


def test_schema_mismatch_aborts(snake_config):
    orch = PipelineOrchestrator(snake_config(DETECTION_COLUMN="Snakes"))

    with pytest.raises(SchemaMismatch):
        orch.run()


def test_roster_adds_unsurveyed_subject(snake_config, temp_dir):
    roster = write_csv(temp_dir / "islands.csv", ["Island"], [["A"], ["B"], ["C"], ["D"]])
    config = snake_config(ROSTER_FILE=str(roster), SUBJECT_COVARIATES=[], OCCASION_COVARIATES=[])

    table = PipelineOrchestrator(config).run()

    assert table["id"].tolist() == ["A", "B", "C", "D"]
    assert table["ch"].iloc[-1] == "000000"


def test_separate_covariate_files(make_config, temp_dir):
    events = write_csv(temp_dir / "captures.csv", ["bird", "week", "seen"],
                       [["b1", 1, 1], ["b1", 3, 1], ["b2", 2, 1]])
    birds = write_csv(temp_dir / "birds.csv", ["bird", "sex"], [["b1", "F"], ["b2", "M"]])
    effort = write_csv(temp_dir / "effort.csv", ["bird", "week", "effort"],
                       [["b1", 1, 2], ["b1", 2, ""], ["b1", 3, 4], ["b2", 1, 1], ["b2", 2, 1], ["b2", 3, 1]])
    config = make_config(
        MODEL="CJS", N_OCCASIONS=3, EVENTS_FILE=str(events), BASE_DIR=str(temp_dir / "out"),
        SUBJECT_COLUMN="bird", OCCASION_COLUMN="week", DETECTION_COLUMN="seen",
        SUBJECT_COVARIATES_FILE=str(birds), OCCASION_COVARIATES_FILE=str(effort),
        SUBJECT_COVARIATES=["sex"], OCCASION_COVARIATES=["effort"],
        COVARIATE_TYPES={"sex": "str", "effort": "int"},
        FILL_POLICY="default", FILL_VALUE=0,
    )

    table = PipelineOrchestrator(config).run()

    assert table.values.tolist() == [
        ["b1", "101", 1, "F", 2, 0, 4],
        ["b2", "010", 1, "M", 1, 1, 1],
    ]


def test_known_fate_skip_subject_recorded(make_config, temp_dir):
    events = write_csv(temp_dir / "ducks.csv", ["duck", "week", "died"],
                       [["d1", 1, 0], ["d1", 2, 1], ["d2", 1, 1], ["d2", 2, 0]])
    config = make_config(
        MODEL="known_fate", N_OCCASIONS=3, EVENTS_FILE=str(events), BASE_DIR=str(temp_dir / "out"),
        SUBJECT_COLUMN="duck", OCCASION_COLUMN="week", FATE_COLUMN="died",
        FAILURE_POLICY="skip_subject", OUTPUT_FORMATS=["inp"],
    )

    orch = PipelineOrchestrator(config)
    table = orch.run()

    assert table["ch"].tolist() == ["101100"]
    assert orch.summary.exclusion_counts() == {"PostMortemObservation": 1}
    inp = temp_dir / "out" / "formatted" / "formatted_Known.inp"
    assert inp.read_text() == "/* d1 */ 101100 1;\n"


def test_known_fate_fail_fast(make_config, temp_dir):
    events = write_csv(temp_dir / "ducks.csv", ["id", "occasion", "dead"], [["d2", 1, 1], ["d2", 2, 0]])
    config = make_config(MODEL="Known", N_OCCASIONS=2, EVENTS_FILE=str(events), BASE_DIR=str(temp_dir / "out"))

    with pytest.raises(PostMortemObservation):
        PipelineOrchestrator(config).run()


def test_summarized_nest_intervals(make_config, temp_dir):
    nests = write_csv(temp_dir / "nests.csv", ["id", "FirstFound", "LastPresent", "LastChecked", "Fate", "AgeDay1"],
                      [["n1", 1, 9, 9, 0, 3], ["n2", 5, 12, 15, 1, 7]])
    config = make_config(
        MODEL="Nest", N_OCCASIONS=20, EVENTS_FILE=str(nests), BASE_DIR=str(temp_dir / "out"),
        SUMMARIZED_INTERVALS=True, SUBJECT_COVARIATES=["AgeDay1"], COVARIATE_TYPES={"AgeDay1": "int"},
    )

    table = PipelineOrchestrator(config).run()

    assert table.values.tolist() == [
        ["n1", 1, 9, 9, 0, 1, 3],
        ["n2", 5, 12, 15, 1, 1, 7],
    ]


def test_nest_checks_collapsed_to_intervals(make_config, temp_dir):
    checks = write_csv(temp_dir / "checks.csv", ["id", "occasion", "active"],
                       [["n1", 2, 1], ["n1", 6, 1], ["n1", 10, 0], ["n2", 3, 1], ["n2", 8, 1]])
    config = make_config(
        MODEL="Nest", N_OCCASIONS=10, EVENTS_FILE=str(checks), BASE_DIR=str(temp_dir / "out"),
    )

    table = PipelineOrchestrator(config).run()

    assert table[["id", "FirstFound", "LastPresent", "LastChecked", "Fate", "Freq"]].values.tolist() == [
        ["n1", 2, 6, 10, 1, 1],
        ["n2", 3, 8, 8, 0, 1],
    ]
