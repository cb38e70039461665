"""
Models for the Wrike Airdrop snap-in.
"""

from .events import (
    EventType, ExtractorEventType, ExtractionPhase, ValidatedEvent, RouteResult,
    ExternalSyncUnitsEvent, MetadataEvent, DataEvent, AttachmentsEvent,
)
from .state import ExternalSyncUnitsState, MetadataState, DataState, AttachmentsState
from .mapping import DomainMapping, TransformationMethod
from .metadata import ExternalDomainMetadata, FieldType
from .validation import ValidationReport, ValidationIssue

__all__ = [
    # Lifecycle events
    "EventType",
    "ExtractorEventType",
    "ExtractionPhase",
    "ValidatedEvent",
    "RouteResult",
    "ExternalSyncUnitsEvent",
    "MetadataEvent",
    "DataEvent",
    "AttachmentsEvent",

    # Worker state
    "ExternalSyncUnitsState",
    "MetadataState",
    "DataState",
    "AttachmentsState",

    # Documents
    "DomainMapping",
    "TransformationMethod",
    "ExternalDomainMetadata",
    "FieldType",
    "ValidationReport",
    "ValidationIssue",
]
