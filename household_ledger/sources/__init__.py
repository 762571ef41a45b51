"""
Data Sources Package

Provides the abstract persistence interfaces the caller-side flow loads
households through, plus in-memory implementations.
"""

from household_ledger.sources.interface import (
    AuditStorageInterface,
    HouseholdDataSource,
    HouseholdNotFoundError,
    SourceError,
)
from household_ledger.sources.memory import (
    HouseholdRecord,
    InMemoryAuditStorage,
    InMemoryHouseholdSource,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "HouseholdDataSource",
    # Exceptions
    "HouseholdNotFoundError",
    "SourceError",
    # In-memory implementation
    "HouseholdRecord",
    "InMemoryAuditStorage",
    "InMemoryHouseholdSource",
]
