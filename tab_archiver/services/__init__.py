"""Service layer for the tab archiver."""

from tab_archiver.services.activity import is_effectively_active
from tab_archiver.services.context import ArchiverContext, ArchiverTuning
from tab_archiver.services.dispatcher import (
    Action,
    Arm,
    Disarm,
    DisarmAll,
    DispatchResult,
    EventDispatcher,
    EventSnapshot,
    Evict,
    Forget,
    Reconcile,
    Reorder,
    ReplaceSettings,
    ScheduleReorder,
    Touch,
    plan_actions,
)
from tab_archiver.services.eviction import EvictionExecutor, EvictionOutcome, EvictionResult
from tab_archiver.services.reconciliation import ReconciliationScan, ReconcileResult
from tab_archiver.services.reorder import ReorderEngine, ReorderResult, plan_reorder
from tab_archiver.services.runtime import ArchiverRuntime
from tab_archiver.services.scheduler import ArmOutcome, ArmResult, ExpirationScheduler

__all__ = [
    # Context
    "ArchiverContext",
    "ArchiverTuning",
    "is_effectively_active",
    # Scheduling
    "ArmOutcome",
    "ArmResult",
    "ExpirationScheduler",
    # Eviction
    "EvictionExecutor",
    "EvictionOutcome",
    "EvictionResult",
    # Sorting
    "ReorderEngine",
    "ReorderResult",
    "plan_reorder",
    # Dispatch
    "Action",
    "Arm",
    "Disarm",
    "DisarmAll",
    "DispatchResult",
    "EventDispatcher",
    "EventSnapshot",
    "Evict",
    "Forget",
    "Reconcile",
    "Reorder",
    "ReplaceSettings",
    "ScheduleReorder",
    "Touch",
    "plan_actions",
    # Reconciliation / runtime
    "ReconcileResult",
    "ReconciliationScan",
    "ArchiverRuntime",
]
