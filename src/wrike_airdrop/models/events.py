"""
Lifecycle event models exchanged with the Airdrop platform.

Inbound events arrive as untyped JSON. They are parsed once into one of the
phase-specific variants below, so that phase logic never has to re-check
optional fields.
"""

from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Inbound event types sent by the platform."""
    EXTRACTION_EXTERNAL_SYNC_UNITS_START = "EXTRACTION_EXTERNAL_SYNC_UNITS_START"
    EXTRACTION_METADATA_START = "EXTRACTION_METADATA_START"
    EXTRACTION_DATA_START = "EXTRACTION_DATA_START"
    EXTRACTION_DATA_CONTINUE = "EXTRACTION_DATA_CONTINUE"
    EXTRACTION_DATA_DELETE = "EXTRACTION_DATA_DELETE"
    EXTRACTION_ATTACHMENTS_START = "EXTRACTION_ATTACHMENTS_START"
    EXTRACTION_ATTACHMENTS_CONTINUE = "EXTRACTION_ATTACHMENTS_CONTINUE"
    EXTRACTION_ATTACHMENTS_DELETE = "EXTRACTION_ATTACHMENTS_DELETE"


class ExtractorEventType(str, Enum):
    """Outbound event types emitted by workers."""
    EXTRACTION_EXTERNAL_SYNC_UNITS_DONE = "EXTRACTION_EXTERNAL_SYNC_UNITS_DONE"
    EXTRACTION_EXTERNAL_SYNC_UNITS_ERROR = "EXTRACTION_EXTERNAL_SYNC_UNITS_ERROR"
    EXTRACTION_METADATA_DONE = "EXTRACTION_METADATA_DONE"
    EXTRACTION_METADATA_ERROR = "EXTRACTION_METADATA_ERROR"
    EXTRACTION_DATA_DONE = "EXTRACTION_DATA_DONE"
    EXTRACTION_DATA_ERROR = "EXTRACTION_DATA_ERROR"
    EXTRACTION_ATTACHMENTS_DONE = "EXTRACTION_ATTACHMENTS_DONE"
    EXTRACTION_ATTACHMENTS_ERROR = "EXTRACTION_ATTACHMENTS_ERROR"
    EXTRACTION_ATTACHMENTS_DELAY = "EXTRACTION_ATTACHMENTS_DELAY"

    @property
    def is_done(self) -> bool:
        return self.value.endswith("_DONE")

    @property
    def is_error(self) -> bool:
        return self.value.endswith("_ERROR")


class ExtractionPhase(str, Enum):
    """A distinct stage of an extraction run."""
    EXTERNAL_SYNC_UNITS = "external_sync_units"
    METADATA = "metadata"
    DATA = "data"
    ATTACHMENTS = "attachments"

    @property
    def state_key(self) -> str:
        """Key of this phase's record inside the worker initial state."""
        return _STATE_KEYS[self]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def done_event(self) -> ExtractorEventType:
        return ExtractorEventType(f"EXTRACTION_{self.value.upper()}_DONE")

    @property
    def error_event(self) -> ExtractorEventType:
        return ExtractorEventType(f"EXTRACTION_{self.value.upper()}_ERROR")

    @property
    def success_message(self) -> str:
        return f"{self.description.capitalize()} completed successfully"


_STATE_KEYS = {
    ExtractionPhase.EXTERNAL_SYNC_UNITS: "externalSyncUnits",
    ExtractionPhase.METADATA: "metadata",
    ExtractionPhase.DATA: "data",
    ExtractionPhase.ATTACHMENTS: "attachments",
}

_DESCRIPTIONS = {
    ExtractionPhase.EXTERNAL_SYNC_UNITS: "external sync units extraction",
    ExtractionPhase.METADATA: "metadata extraction",
    ExtractionPhase.DATA: "data extraction",
    ExtractionPhase.ATTACHMENTS: "attachments extraction",
}

# Inbound event types the router accepts, in reporting order.
SUPPORTED_EVENT_TYPES = [
    EventType.EXTRACTION_EXTERNAL_SYNC_UNITS_START,
    EventType.EXTRACTION_METADATA_START,
    EventType.EXTRACTION_DATA_START,
    EventType.EXTRACTION_ATTACHMENTS_START,
    EventType.EXTRACTION_ATTACHMENTS_CONTINUE,
]

EVENT_PHASES = {
    EventType.EXTRACTION_EXTERNAL_SYNC_UNITS_START: ExtractionPhase.EXTERNAL_SYNC_UNITS,
    EventType.EXTRACTION_METADATA_START: ExtractionPhase.METADATA,
    EventType.EXTRACTION_DATA_START: ExtractionPhase.DATA,
    EventType.EXTRACTION_ATTACHMENTS_START: ExtractionPhase.ATTACHMENTS,
    EventType.EXTRACTION_ATTACHMENTS_CONTINUE: ExtractionPhase.ATTACHMENTS,
}

# Phases that need source credentials / a selected external sync unit.
PHASES_REQUIRING_CONNECTION = {
    ExtractionPhase.EXTERNAL_SYNC_UNITS,
    ExtractionPhase.DATA,
    ExtractionPhase.ATTACHMENTS,
}
PHASES_REQUIRING_SYNC_UNIT = {
    ExtractionPhase.DATA,
    ExtractionPhase.ATTACHMENTS,
}


class ConnectionData(BaseModel):
    """Source credentials: the Wrike API key and space id."""
    model_config = ConfigDict(extra="allow")

    key: str
    org_id: str


class EventContext(BaseModel):
    """Per-sync-run context supplied by the platform."""
    model_config = ConfigDict(extra="allow")

    callback_url: Optional[str] = None
    worker_data_url: Optional[str] = None
    external_sync_unit_id: Optional[str] = None
    mode: Optional[str] = None
    sync_run_id: Optional[str] = None


class _ValidatedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: EventType
    service_account_token: str
    event_context: EventContext = Field(default_factory=EventContext)
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)


class ExternalSyncUnitsEvent(_ValidatedEvent):
    phase: Literal[ExtractionPhase.EXTERNAL_SYNC_UNITS] = ExtractionPhase.EXTERNAL_SYNC_UNITS
    connection_data: ConnectionData


class MetadataEvent(_ValidatedEvent):
    phase: Literal[ExtractionPhase.METADATA] = ExtractionPhase.METADATA


class DataEvent(_ValidatedEvent):
    phase: Literal[ExtractionPhase.DATA] = ExtractionPhase.DATA
    connection_data: ConnectionData
    external_sync_unit_id: str


class AttachmentsEvent(_ValidatedEvent):
    phase: Literal[ExtractionPhase.ATTACHMENTS] = ExtractionPhase.ATTACHMENTS
    connection_data: ConnectionData
    external_sync_unit_id: str


ValidatedEvent = Union[ExternalSyncUnitsEvent, MetadataEvent, DataEvent, AttachmentsEvent]


class RouteResult(BaseModel):
    """Synchronous result returned to the host platform."""
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
