"""Tests for CLIConfig schema and conversion to internal overrides."""

import pytest
from markprep.schemas.cli import CLIConfig


def test_cli_to_internal_overrides_with_family():
    """Test CLI config conversion with model family override."""
    cli = CLIConfig(family="known_fate")
    overrides = cli.to_internal_overrides()
    assert overrides["model"]["family"] == "Known"


def test_cli_to_internal_overrides_with_occasions():
    cli = CLIConfig(n_occasions=12)
    overrides = cli.to_internal_overrides()
    assert overrides["model"]["n_occasions"] == 12


def test_cli_to_internal_overrides_with_events_path():
    cli = CLIConfig(events_path="data/blackduck.csv")
    overrides = cli.to_internal_overrides()
    assert overrides["input"]["events_path"] == "data/blackduck.csv"


def test_cli_to_internal_overrides_with_log_level():
    """Test CLI config conversion with log_level override."""
    cli = CLIConfig(log_level="DEBUG")
    overrides = cli.to_internal_overrides()
    assert overrides["logging"]["level"] == "DEBUG"


def test_cli_to_internal_overrides_with_output_options():
    cli = CLIConfig(collapse=True, output_formats=["csv", "inp"])
    overrides = cli.to_internal_overrides()
    assert overrides["emitter"] == {"collapse": True, "formats": ["csv", "inp"]}


def test_cli_empty_has_no_overrides():
    assert CLIConfig().to_internal_overrides() == {}


def test_cli_rejects_unknown_field():
    with pytest.raises(ValueError):
        CLIConfig(site_id="A12")
