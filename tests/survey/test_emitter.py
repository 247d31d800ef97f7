"""Tests for FormattedTableEmitter layout, collapse and serialization."""

import pandas as pd
import pytest

from markprep.contracts import ColumnNameTooLong, NameCollision
from markprep.survey.emitter import FormattedTableEmitter, format_inp_value
from tests.helpers.fake_surveys import make_histories, make_nest_histories

pytestmark = pytest.mark.unit


def _joined(rows, **covariates):
    df = make_histories(rows)
    for name, values in covariates.items():
        df[name] = values
    return df


class TestLayout:

    def test_columns_in_order(self, make_config):
        config = make_config(N_OCCASIONS=2, SUBJECT_COVARIATES=["forest"], OCCASION_COVARIATES=["temp"])
        joined = _joined([("a", "01")], forest=[0.3], temp=[(10.0, 12.0)])

        table = FormattedTableEmitter(config).emit(joined)

        assert list(table.columns) == ["id", "ch", "freq", "forest", "temp1", "temp2"]
        assert table.iloc[0].tolist() == ["a", "01", 1, 0.3, 10.0, 12.0]

    def test_freq_defaults_to_one(self, make_config):
        table = FormattedTableEmitter(make_config(N_OCCASIONS=2)).emit(_joined([("a", "01"), ("b", "01")]))

        assert table["freq"].tolist() == [1, 1]
        assert table["freq"].dtype == "int64"

    def test_id_can_be_left_out(self, make_config):
        config = make_config(N_OCCASIONS=2, INCLUDE_ID=False)

        table = FormattedTableEmitter(config).emit(_joined([("a", "01")]))

        assert list(table.columns) == ["ch", "freq"]

    def test_one_row_per_subject_without_collapse(self, make_config):
        joined = _joined([("a", "01"), ("b", "01"), ("c", "11")])

        table = FormattedTableEmitter(make_config(N_OCCASIONS=2)).emit(joined)

        assert len(table) == 3

    def test_nest_layout(self, make_config):
        config = make_config(MODEL="Nest", N_OCCASIONS=10, SUBJECT_COVARIATES=["AgeFound"])
        joined = make_nest_histories([("n1", 1, 4, 7, 1)])
        joined["AgeFound"] = [3.0]

        table = FormattedTableEmitter(config).emit(joined)

        assert list(table.columns) == [
            "id", "FirstFound", "LastPresent", "LastChecked", "Fate", "Freq", "AgeFound",
        ]

    def test_input_not_mutated(self, make_config):
        config = make_config(N_OCCASIONS=2, OCCASION_COVARIATES=["temp"])
        joined = _joined([("a", "01")], temp=[(1.0, 2.0)])
        before = joined.copy()

        FormattedTableEmitter(config).emit(joined)

        assert joined.equals(before)


class TestColumnNames:

    def test_long_subject_covariate(self, make_config):
        config = make_config(N_OCCASIONS=2, SUBJECT_COVARIATES=["ForestCover"])

        with pytest.raises(ColumnNameTooLong) as info:
            FormattedTableEmitter(config).emit(_joined([("a", "01")], ForestCover=[0.4]))

        assert info.value.column == "ForestCover"
        assert info.value.limit == 10

    def test_expanded_occasion_name_checked(self, make_config):
        config = make_config(N_OCCASIONS=10, OCCASION_COVARIATES=["raintotal"])

        with pytest.raises(ColumnNameTooLong, match="raintotal10"):
            FormattedTableEmitter(config).column_layout()

    def test_subject_covariate_matches_expanded_occasion_name(self, make_config):
        config = make_config(N_OCCASIONS=2, SUBJECT_COVARIATES=["x1"], OCCASION_COVARIATES=["x"])

        with pytest.raises(NameCollision, match="x1") as info:
            FormattedTableEmitter(config).emit(_joined([("a", "01")], x1=[0.5], x=[(1.0, 2.0)]))

        assert info.value.structural

    def test_two_occasion_covariates_expand_to_same_name(self, make_config):
        config = make_config(N_OCCASIONS=11, OCCASION_COVARIATES=["a", "a1"])

        with pytest.raises(NameCollision, match="a11"):
            FormattedTableEmitter(config).column_layout()

    def test_collision_reported_before_length(self, make_config):
        config = make_config(N_OCCASIONS=2, SUBJECT_COVARIATES=["x1", "canopy_cover"], OCCASION_COVARIATES=["x"])

        with pytest.raises(NameCollision):
            FormattedTableEmitter(config).column_layout()

    def test_nest_reserved_names_exempt(self, make_config):
        config = make_config(MODEL="Nest", N_OCCASIONS=5)

        assert "LastPresent" in FormattedTableEmitter(config).column_layout()


class TestCollapse:

    def test_identical_histories_summed(self, make_config):
        config = make_config(N_OCCASIONS=2, SUBJECT_COVARIATES=["sex"], COVARIATE_TYPES={"sex": "str"},
                             COLLAPSE=True)
        joined = _joined([("a", "01"), ("b", "01"), ("c", "01"), ("d", "11")], sex=["F", "F", "M", "F"])

        table = FormattedTableEmitter(config).emit(joined)

        assert list(table.columns) == ["ch", "freq", "sex"]
        assert table.values.tolist() == [["01", 2, "F"], ["01", 1, "M"], ["11", 1, "F"]]

    def test_collapse_is_opt_in(self, make_config):
        joined = _joined([("a", "01"), ("b", "01")])

        table = FormattedTableEmitter(make_config(N_OCCASIONS=2)).emit(joined)

        assert table["freq"].tolist() == [1, 1]


class TestWrite:

    def test_csv(self, make_config, temp_dir):
        config = make_config(N_OCCASIONS=2, SUBJECT_COVARIATES=["forest"])
        emitter = FormattedTableEmitter(config)
        table = emitter.emit(_joined([("a", "01")], forest=[0.5]))

        path = emitter.write(table, temp_dir / "out.csv", "csv")

        assert path.read_text() == "id,ch,freq,forest\na,01,1,0.5\n"

    def test_inp(self, make_config, temp_dir):
        config = make_config(MODEL="Known", N_OCCASIONS=2, SUBJECT_COVARIATES=["mass"])
        emitter = FormattedTableEmitter(config)
        table = emitter.emit(_joined([("d1", "1011"), ("d2", "1000")], mass=[1.25, 2.0]))

        path = emitter.write(table, temp_dir / "out.inp", "inp")

        assert path.read_text() == "/* d1 */ 1011 1 1.25;\n/* d2 */ 1000 1 2;\n"

    def test_inp_without_id(self, make_config):
        config = make_config(N_OCCASIONS=3, COLLAPSE=True)
        emitter = FormattedTableEmitter(config)
        table = emitter.emit(_joined([("a", "011"), ("b", "011")]))

        assert emitter.to_inp(table) == "011 2;\n"

    def test_write_is_deterministic(self, make_config, temp_dir):
        config = make_config(N_OCCASIONS=2, OCCASION_COVARIATES=["temp"])
        emitter = FormattedTableEmitter(config)
        joined = _joined([("a", "01"), ("b", "10")], temp=[(1.5, 2.5), (3.0, 4.0)])

        first = emitter.write(emitter.emit(joined), temp_dir / "1.csv", "csv").read_bytes()
        second = emitter.write(emitter.emit(joined), temp_dir / "2.csv", "csv").read_bytes()

        assert first == second

    def test_no_temp_file_left(self, make_config, temp_dir):
        emitter = FormattedTableEmitter(make_config(N_OCCASIONS=2))
        emitter.write(emitter.emit(_joined([("a", "01")])), temp_dir / "t.csv", "csv")

        assert [p.name for p in temp_dir.iterdir()] == ["t.csv"]

    def test_unknown_format(self, make_config, temp_dir):
        emitter = FormattedTableEmitter(make_config(N_OCCASIONS=2))

        with pytest.raises(ValueError, match="Unknown output format"):
            emitter.write(pd.DataFrame(), temp_dir / "x", "xlsx")


def test_format_inp_value():
    assert format_inp_value(True) == "1"
    assert format_inp_value(3) == "3"
    assert format_inp_value(2.0) == "2"
    assert format_inp_value(0.125) == "0.125"
    with pytest.raises(ValueError, match="numeric"):
        format_inp_value("North")
