"""Per-run record of what was processed, excluded, and written."""

from datetime import datetime, timezone
from pathlib import Path
import json
import logging

__all__ = ['RunSummary']

logger = logging.getLogger(__name__)


class RunSummary:
    """Collect counts and exclusions for one pipeline run.

    Stages call record_exclusion() for every subject dropped under
    ``skip_subject`` or ``unjoined_policy="drop"``. The summary is logged
    and written to ``run_summary.json`` whether the run succeeds or fails.
    """

    def __init__(self, family: str, n_occasions: int, run_id=None):
        self.family = family
        self.n_occasions = n_occasions
        self.run_id = run_id
        self.status = "running"
        self.error = None
        self.counts = {}
        self.exclusions = []
        self.outputs = []
        self.started_at = datetime.now(timezone.utc).isoformat()
        self.finished_at = None

    def set_count(self, name: str, value: int) -> None:
        """Record a row count for a stage, e.g. ``events`` or ``histories``."""
        self.counts[name] = int(value)

    def record_exclusion(self, exc, stage: str) -> None:
        """Record one excluded subject and the error that excluded it."""
        self.exclusions.append({
            "subject": exc.subject,
            "kind": exc.kind,
            "stage": stage,
            "message": str(exc),
        })

    def exclusion_counts(self) -> dict:
        """Excluded subjects per error kind."""
        counts = {}
        for entry in self.exclusions:
            counts[entry["kind"]] = counts.get(entry["kind"], 0) + 1
        return dict(sorted(counts.items()))

    def complete(self, outputs=()) -> None:
        self.status = "completed"
        self.outputs = [str(p) for p in outputs]
        self.finished_at = datetime.now(timezone.utc).isoformat()

    def fail(self, exc) -> None:
        self.status = "failed"
        self.error = {
            "kind": getattr(exc, "kind", type(exc).__name__),
            "message": str(exc),
            "subject": getattr(exc, "subject", None),
        }
        self.finished_at = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "family": self.family,
            "n_occasions": self.n_occasions,
            "status": self.status,
            "error": self.error,
            "counts": dict(self.counts),
            "excluded": self.exclusion_counts(),
            "exclusions": list(self.exclusions),
            "outputs": list(self.outputs),
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }

    def write(self, path) -> Path:
        """Write the summary as JSON; subject ids that are not JSON types become strings."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)
        return path

    def log(self) -> None:
        logger.info("=" * 60)
        logger.info("Run summary: %s (%s, %s occasions)", self.status.upper(), self.family, self.n_occasions)
        for name, value in self.counts.items():
            logger.info("  %-12s %d", name, value)
        excluded = self.exclusion_counts()
        if excluded:
            for kind, count in excluded.items():
                logger.warning("  excluded %-24s %d", kind, count)
        else:
            logger.info("  no subjects excluded")
        if self.error:
            logger.error("  %s: %s", self.error["kind"], self.error["message"])
        logger.info("=" * 60)
