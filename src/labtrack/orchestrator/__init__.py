"""Orchestration layer - the caller-facing tracking and tender services."""

from __future__ import annotations

from labtrack.orchestrator.service import TrackingService, is_due
from labtrack.orchestrator.tenders import TenderService, merge_billed


__all__ = ["TenderService", "TrackingService", "is_due", "merge_billed"]
