"""Bookkeeping of temporary artifacts created during a run."""

from .work_ledger import WorkLedger

__all__ = ["WorkLedger"]
