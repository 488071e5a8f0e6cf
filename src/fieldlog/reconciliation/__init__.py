"""Enrichment of catalogued species from the taxonomy and photo sources."""

from fieldlog.reconciliation.attempt_manager import EnrichmentAttemptManager, EnrichmentState
from fieldlog.reconciliation.service import ReconciliationService

__all__ = [
    "EnrichmentAttemptManager",
    "EnrichmentState",
    "ReconciliationService",
]
