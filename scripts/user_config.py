"""markprep User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Expert defaults live in markprep.schemas.param.

Usage:
    markprep scripts/user_config.py
    markprep scripts/user_config.py --model CJS --n-occasions 6
    markprep scripts/user_config.py --collapse --format inp

The example formats brown tree snake island surveys for a closed
(single-season) occupancy model: one detection history per island, forest
cover, prey and region as site covariates, temperature per survey.
"""

CONFIG = {
    # ========================================================================
    # MODEL & STUDY DESIGN
    # ========================================================================
    "MODEL": "Occupancy",     # CJS, Occupancy, Known, Nest
    "N_OCCASIONS": 6,         # Surveys per island
    "BASE_DIR": "markprep_output",  # All outputs go here

    # ========================================================================
    # INPUT
    # ========================================================================
    "EVENTS_FILE": "scripts/data/BrownTreeSnake_IslandSurveys.csv",
    "SUBJECT_COLUMN": "Island",
    "OCCASION_COLUMN": "Survey",
    "DETECTION_COLUMN": "BTS",

    # ========================================================================
    # COVARIATES
    # ========================================================================
    "SUBJECT_COVARIATES": ["Forest", "Prey", "Region"],
    "OCCASION_COVARIATES": ["Temp"],
    "COVARIATE_TYPES": {"Prey": "int", "Region": "str"},
    "FILL_POLICY": "carry_forward",   # Island 3 was not surveyed on occasion 5

    # ========================================================================
    # OUTPUT
    # ========================================================================
    "OUTPUT_FORMATS": ["csv"],
    "INCLUDE_ID": True,
}
