"""Position discovery and result reconciliation."""

from specbridge.core.discovery import TreeBuilder
from specbridge.core.filters import derive_filters
from specbridge.core.reconciler import reconcile
from specbridge.core.runner import SpecBridge

__all__ = ["TreeBuilder", "derive_filters", "reconcile", "SpecBridge"]
