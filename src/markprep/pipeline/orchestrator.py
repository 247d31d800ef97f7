"""Single-run pipeline orchestration.

Runs the four survey stages in order (load, build, join, emit) against one
validated InternalConfig. A run is one unit of work: formatted tables are
written only after every stage has succeeded, and the run summary is
written either way.
"""

import logging
from pathlib import Path

from markprep.contracts import SurveyDataError, require
from markprep.families import TokenPolicy, token_policy
from markprep.pipeline.summary import RunSummary
from markprep.schemas import InternalConfig, check_runtime_ready
from markprep.setup_directories import get_log_path, get_output_path, setup_output_directories
from markprep.survey.covariate_joiner import CovariateJoiner
from markprep.survey.emitter import FormattedTableEmitter
from markprep.survey.history_builder import EncounterHistoryBuilder
from markprep.survey.loader import (
    SurveyRecordLoader,
    declared_event_columns,
    declared_occasion_covariate_columns,
    declared_subject_covariate_columns,
)

__all__ = ['PipelineOrchestrator']

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Run the survey reshaping pipeline once.

    **Stages:**

    1. **Load**: read the events file (and optional covariate and roster
       files) against the declared schema.
    2. **Build**: one encounter history per subject, encoded for the
       configured model family.
    3. **Join**: attach subject- and occasion-level covariates.
    4. **Emit**: flatten to the engine's table and write each configured
       format under ``<base_dir>/formatted/``.

    **Logging:**

    All output goes to both console and ``<base_dir>/logs/pipeline_<name>.log``
    at ``config.logging.level``.

    Example usage::

        config = init_runtime_config(args)
        table = PipelineOrchestrator(config).run()
    """

    def __init__(self, config: InternalConfig):
        """Initialize orchestrator with a ready runtime configuration.

        Parameters
        ----------
        config : InternalConfig
            Resolved configuration. ``n_occasions``, ``input.events_path``
            and ``base_dir`` must be set.

        Raises
        ------
        ValueError
            If the configuration is not ready to run.
        """
        check_runtime_ready(config)
        self.config = config
        self.output_dirs = dict(config.output_dirs) if config.output_dirs else {
            k: str(v) for k, v in setup_output_directories(config.base_dir).items()
        }

        self.loader = SurveyRecordLoader(config)
        self.builder = EncounterHistoryBuilder(config)
        self.joiner = CovariateJoiner(config)
        self.emitter = FormattedTableEmitter(config)

        self.summary = None
        self.output_paths = []

    def _setup_logging(self):
        """Configure root logger with file and console handlers."""
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)

        log_path = get_log_path(self.output_dirs, self.config.emitter.output_name)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)

    def run(self):
        """Run all stages and write the formatted tables.

        Returns
        -------
        pd.DataFrame
            The formatted table that was written.

        Raises
        ------
        SurveyDataError
            Any data error not isolated by the failure policies. The run
            summary is still written; no formatted table is.
        """
        self._setup_logging()

        family = self.config.model.family
        self.summary = RunSummary(family, self.config.model.n_occasions, run_id=self.config.run_id)

        logger.info("=" * 60)
        logger.info("Starting markprep run: family=%s, n_occasions=%d",
                    family, self.config.model.n_occasions)
        logger.info("=" * 60)

        try:
            table = self._run_stages()
            self.output_paths = self._write_outputs(table)
        except SurveyDataError as exc:
            logger.error("Run aborted (%s): %s", exc.kind, exc)
            self.summary.fail(exc)
            self._finish()
            raise

        self.summary.complete(self.output_paths)
        self._finish()
        return table

    def _run_stages(self):
        cfg = self.config
        summary = self.summary

        # Load
        events = self._load_events()
        summary.set_count("events", len(events))
        roster = self._load_roster()

        # Build
        if token_policy(cfg.model.family) is TokenPolicy.INTERVAL and cfg.input.summarized_intervals:
            histories = self.builder.build_from_intervals(events, summary=summary)
        else:
            histories = self.builder.build(events, subjects=roster, summary=summary)
        summary.set_count("histories", len(histories))

        # Join
        subject_table, occasion_table = self._load_covariates(events)
        joined = self.joiner.join(histories, subject_table, occasion_table, summary=summary)
        summary.set_count("joined", len(joined))

        # Emit
        table = self.emitter.emit(joined)
        summary.set_count("records", len(table))
        return table

    def _load_events(self):
        cfg = self.config
        nullable = cfg.covariates.occasion if cfg.input.occasion_covariates_path is None else ()
        if cfg.input.summarized_intervals and cfg.input.occasion_covariates_path is None:
            require(
                not cfg.covariates.occasion,
                "Occasion covariates for summarized intervals need a separate occasion covariate file",
                error=ValueError,
            )
        return self.loader.load(cfg.input.events_path, declared_event_columns(cfg), nullable=nullable)

    def _load_roster(self):
        path = self.config.input.roster_path
        if path is None:
            return None
        cols = self.config.columns
        roster = self.loader.load(path, {cols.subject: cols.subject_type})
        return list(roster[cols.subject])

    def _load_covariates(self, events):
        """Subject and occasion covariate tables; the events table when no file is set."""
        cfg = self.config
        subject_table = occasion_table = None

        if cfg.covariates.subject:
            if cfg.input.subject_covariates_path is None:
                subject_table = events
            else:
                subject_table = self.loader.load(
                    cfg.input.subject_covariates_path, declared_subject_covariate_columns(cfg)
                )

        if cfg.covariates.occasion:
            if cfg.input.occasion_covariates_path is None:
                occasion_table = events
            else:
                occasion_table = self.loader.load(
                    cfg.input.occasion_covariates_path,
                    declared_occasion_covariate_columns(cfg),
                    nullable=cfg.covariates.occasion,
                )

        return subject_table, occasion_table

    def _write_outputs(self, table):
        cfg = self.config
        paths = []
        for fmt in cfg.emitter.formats:
            path = get_output_path(self.output_dirs, cfg.emitter.output_name, cfg.model.family, fmt)
            paths.append(self.emitter.write(table, path, fmt))
        return paths

    def _finish(self):
        """Log and persist the run summary."""
        summary_path = Path(self.output_dirs["base"]) / "run_summary.json"
        self.summary.write(summary_path)
        self.summary.log()
        logger.info("Run summary saved: %s", summary_path)
