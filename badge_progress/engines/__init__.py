"""Engine modules for badge progress.

Contains specialized computation engines:
- ledger_engine: Snapshot indexing, ingestion checks, requirement ticks
- completion_engine: Module and badge completion under their rules
- staged_family_engine: Staged family grouping and highest stage
- counter_engine: Cumulative counters, thresholds, tenure
- classification_engine: Earned / In Progress / Not Started buckets
- award_engine: Top award progress and eligibility
"""

# Use relative imports within package to avoid mypy module resolution issues
from .award_engine import AwardEngine
from .classification_engine import ClassificationEngine
from .completion_engine import CompletionEngine
from .counter_engine import CounterEngine
from .ledger_engine import CatalogIntegrityError, LedgerEngine, ProgressIntegrityError
from .staged_family_engine import StagedFamilyEngine

__all__ = [
    "AwardEngine",
    "CatalogIntegrityError",
    "ClassificationEngine",
    "CompletionEngine",
    "CounterEngine",
    "LedgerEngine",
    "ProgressIntegrityError",
    "StagedFamilyEngine",
]
