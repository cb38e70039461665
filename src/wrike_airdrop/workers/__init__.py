"""
Phase workers for Wrike extraction.

Workers are looked up by phase rather than by file path: the router hands the
spawner a worker class from this registry.
"""

from typing import Type

from ..models.events import ExtractionPhase
from .base import BaseWorker, WorkerAdapter, Repository, RepoSpec, DelayRequested
from .contract import TerminalEmitter, verify_terminal_events
from .external_sync_units import ExternalSyncUnitsWorker
from .metadata import MetadataWorker
from .data import DataWorker
from .attachments import AttachmentsWorker

__all__ = [
    "BaseWorker",
    "WorkerAdapter",
    "Repository",
    "RepoSpec",
    "DelayRequested",
    "TerminalEmitter",
    "verify_terminal_events",
    "ExternalSyncUnitsWorker",
    "MetadataWorker",
    "DataWorker",
    "AttachmentsWorker",
]

# Worker registry keyed by phase value
WORKER_REGISTRY = {
    ExtractionPhase.EXTERNAL_SYNC_UNITS.value: ExternalSyncUnitsWorker,
    ExtractionPhase.METADATA.value: MetadataWorker,
    ExtractionPhase.DATA.value: DataWorker,
    ExtractionPhase.ATTACHMENTS.value: AttachmentsWorker,
}


def get_worker(phase) -> Type[BaseWorker]:
    """Get a worker class by phase."""
    key = phase.value if isinstance(phase, ExtractionPhase) else str(phase)
    if key not in WORKER_REGISTRY:
        raise ValueError(f"Unknown phase: {key}")
    return WORKER_REGISTRY[key]
