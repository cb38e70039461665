"""
Initial worker state builders, one per extraction phase.

Builders are pure: they read a validated event and never touch the source
API. Their output is handed to the spawner verbatim.
"""

from typing import Any, Callable, Dict

from ..models.events import (
    AttachmentsEvent, DataEvent, ExternalSyncUnitsEvent, ExtractionPhase,
    MetadataEvent, ValidatedEvent,
)
from ..models.state import AttachmentsState, DataState, ExternalSyncUnitsState, MetadataState


def build_external_sync_units_state(event: ExternalSyncUnitsEvent) -> Dict[str, Any]:
    state = ExternalSyncUnitsState(
        space_id=event.connection_data.org_id,
        api_key=event.connection_data.key,
    )
    return {ExtractionPhase.EXTERNAL_SYNC_UNITS.state_key: state.to_state()}


def build_metadata_state(event: MetadataEvent) -> Dict[str, Any]:
    # Metadata is static per external system, so no space or credentials are carried.
    return {ExtractionPhase.METADATA.state_key: MetadataState().to_state()}


def build_data_state(event: DataEvent) -> Dict[str, Any]:
    state = DataState(
        space_id=event.connection_data.org_id,
        api_key=event.connection_data.key,
        project_id=event.external_sync_unit_id,
    )
    return {ExtractionPhase.DATA.state_key: state.to_state()}


def build_attachments_state(event: AttachmentsEvent) -> Dict[str, Any]:
    state = AttachmentsState(
        space_id=event.connection_data.org_id,
        api_key=event.connection_data.key,
        project_id=event.external_sync_unit_id,
    )
    return {ExtractionPhase.ATTACHMENTS.state_key: state.to_state()}


STATE_BUILDERS: Dict[ExtractionPhase, Callable[[Any], Dict[str, Any]]] = {
    ExtractionPhase.EXTERNAL_SYNC_UNITS: build_external_sync_units_state,
    ExtractionPhase.METADATA: build_metadata_state,
    ExtractionPhase.DATA: build_data_state,
    ExtractionPhase.ATTACHMENTS: build_attachments_state,
}


def build_initial_state(event: ValidatedEvent) -> Dict[str, Any]:
    """Build the initial state for whichever phase the event belongs to."""
    return STATE_BUILDERS[event.phase](event)
