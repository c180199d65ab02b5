# File: __init__.py
"""Badge requirement progress and completion derivation.

Derives, from a snapshot of the badge catalog and a member's requirement
progress, everything the member and leader views show: per-module and
per-badge completion, staged family stages, cumulative counters, the
Earned / In Progress / Not Started buckets and top award eligibility.

Key Features:
- Pure evaluation engines (no storage, no clock unless asked).
- A single ProgressManager.recompute() entry point per member.
- Badge status cache rebuilt from requirement truth, with drift reported.
"""

from __future__ import annotations

from .engines import (
    AwardEngine,
    CatalogIntegrityError,
    ClassificationEngine,
    CompletionEngine,
    CounterEngine,
    LedgerEngine,
    ProgressIntegrityError,
    StagedFamilyEngine,
)
from .managers import ProgressManager

__all__ = [
    "AwardEngine",
    "CatalogIntegrityError",
    "ClassificationEngine",
    "CompletionEngine",
    "CounterEngine",
    "LedgerEngine",
    "ProgressIntegrityError",
    "ProgressManager",
    "StagedFamilyEngine",
]
