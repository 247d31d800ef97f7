"""`markprep` - reshape field-survey records into MARK encounter-history tables.

Subpackages:
- survey: Record loading, encounter-history building, covariate joining, emitting
- pipeline: Orchestrator and run summary
- contracts: Stage invariants and the data-error taxonomy
- schemas: Pydantic configuration layers

The external modeling engine (Program MARK / RMark) is not part of this
package; markprep only prepares the table it consumes.
"""

__version__ = "0.1.0"
