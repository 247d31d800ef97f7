import pytest

from tests.helpers.fake_surveys import write_csv


@pytest.fixture
def snake_surveys(temp_dir):
    """Occupancy events: three islands, six surveys, island C missing survey 5."""
    rows = [
        ("A", 1, 0, 0.62, 14, 24.1), ("A", 2, 0, 0.62, 14, 25.3), ("A", 3, 0, 0.62, 14, 23.8),
        ("A", 4, 0, 0.62, 14, 26.0), ("A", 5, 0, 0.62, 14, 24.7), ("A", 6, 0, 0.62, 14, 25.9),
        ("B", 1, 0, 0.81, 22, 23.5), ("B", 2, 1, 0.81, 22, 24.9), ("B", 3, 1, 0.81, 22, 26.2),
        ("B", 4, 1, 0.81, 22, 25.1), ("B", 5, 0, 0.81, 22, 23.9), ("B", 6, 1, 0.81, 22, 24.4),
        ("C", 1, 1, 0.45, 9, 27.3), ("C", 2, 0, 0.45, 9, 26.8), ("C", 3, 0, 0.45, 9, 28.1),
        ("C", 4, 1, 0.45, 9, 27.7), ("C", 6, 0, 0.45, 9, 26.5),
    ]
    return write_csv(temp_dir / "surveys.csv", ["Island", "Survey", "BTS", "Forest", "Prey", "Temp"], rows)


@pytest.fixture
def snake_config(make_config, snake_surveys, temp_dir):
    """Factory for occupancy configs pointed at snake_surveys."""
    def _make(**overrides):
        settings = {
            "MODEL": "Occupancy",
            "N_OCCASIONS": 6,
            "EVENTS_FILE": str(snake_surveys),
            "BASE_DIR": str(temp_dir / "out"),
            "SUBJECT_COLUMN": "Island",
            "OCCASION_COLUMN": "Survey",
            "DETECTION_COLUMN": "BTS",
            "SUBJECT_COVARIATES": ["Forest", "Prey"],
            "OCCASION_COVARIATES": ["Temp"],
            "COVARIATE_TYPES": {"Prey": "int"},
            "FILL_POLICY": "carry_forward",
        }
        settings.update(overrides)
        return make_config(**settings)

    return _make
