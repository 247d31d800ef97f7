"""Pipeline modules.

- orchestrator: Runs load, build, join and emit for one configuration
- summary: Per-run counts and exclusions
"""

from markprep.pipeline.orchestrator import PipelineOrchestrator
from markprep.pipeline.summary import RunSummary

__all__ = [
    "PipelineOrchestrator",
    "RunSummary",
]
