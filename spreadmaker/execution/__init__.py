"""
Execution package.

Simulated order lifecycle: the account ledger, the active order book,
order placement into free slots and fill reconciliation.
"""

from spreadmaker.execution.ledger import credit, credit_freed, debit
from spreadmaker.execution.order_book import ActiveOrderBook, EngineState
from spreadmaker.execution.order_placer import OrderPlacer
from spreadmaker.execution.reconciler import PositionReconciler, ReconcileResult, reconcile

__all__ = [
    "ActiveOrderBook",
    "EngineState",
    "OrderPlacer",
    "PositionReconciler",
    "ReconcileResult",
    "credit",
    "credit_freed",
    "debit",
    "reconcile",
]
