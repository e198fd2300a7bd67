"""Domain services: recalculation, impact ranking, time ledger, rewards."""

from profitdesk.services.coordinator import ConsistencyCoordinator
from profitdesk.services.impact import partition_high_impact
from profitdesk.services.profitability import apply_recalculation, compute_profitability

__all__ = [
    "ConsistencyCoordinator",
    "apply_recalculation",
    "compute_profitability",
    "partition_high_impact",
]
