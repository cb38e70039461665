"""
Extraction event router.

Validates an inbound lifecycle event, resolves its phase, builds the phase's
initial worker state and hands the worker to a spawner. Every outcome is
reported as a RouteResult; no exception escapes `route`.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from ..exceptions import DocumentError, DocumentValidationError, EventValidationError
from ..models.events import (
    EVENT_PHASES, PHASES_REQUIRING_CONNECTION, PHASES_REQUIRING_SYNC_UNIT, SUPPORTED_EVENT_TYPES,
    AttachmentsEvent, DataEvent, EventType, ExternalSyncUnitsEvent, ExtractionPhase,
    MetadataEvent, RouteResult, ValidatedEvent,
)
from ..services.spawner import LocalSpawner, SpawnRequest, Spawner
from ..workers import get_worker
from .documents import load_external_domain_metadata, load_initial_domain_mapping
from .state import build_initial_state

logger = logging.getLogger(__name__)

CONNECTION_FIELDS = ("key", "org_id")

EVENT_VARIANTS = {
    ExtractionPhase.EXTERNAL_SYNC_UNITS: ExternalSyncUnitsEvent,
    ExtractionPhase.METADATA: MetadataEvent,
    ExtractionPhase.DATA: DataEvent,
    ExtractionPhase.ATTACHMENTS: AttachmentsEvent,
}


def parse_event(raw: Any) -> ValidatedEvent:
    """
    Parse a raw lifecycle event into its phase-specific variant.

    Checks run in a fixed order and the first failure wins.

    Raises:
        EventValidationError: With the message and details reported to the caller
    """
    payload = raw.get("payload") if isinstance(raw, dict) else None
    if not isinstance(payload, dict) or not payload.get("event_type"):
        raise EventValidationError("Event payload or event_type is missing")

    secrets = (raw.get("context") or {}).get("secrets") or {}
    token = secrets.get("service_account_token")
    if not token:
        raise EventValidationError("Event is missing required authentication context")

    raw_event_type = payload["event_type"]
    try:
        event_type = EventType(raw_event_type)
    except ValueError:
        event_type = None
    if event_type not in SUPPORTED_EVENT_TYPES:
        raise EventValidationError("Unsupported event type", {
            "event_type": raw_event_type,
            "supported_event_types": [t.value for t in SUPPORTED_EVENT_TYPES],
        })

    phase = EVENT_PHASES[event_type]
    connection_data = payload.get("connection_data") or {}
    event_context = payload.get("event_context") or {}

    if phase in PHASES_REQUIRING_CONNECTION:
        missing = [f"connection_data.{name}" for name in CONNECTION_FIELDS if not connection_data.get(name)]
        if missing:
            raise EventValidationError("Event is missing required connection data", {"missing_fields": missing})

    if phase in PHASES_REQUIRING_SYNC_UNIT and not event_context.get("external_sync_unit_id"):
        raise EventValidationError(
            f"Event is missing required external_sync_unit_id for {phase.description}",
            {"missing_fields": ["event_context.external_sync_unit_id"]},
        )

    fields: Dict[str, Any] = {
        "event_type": event_type,
        "service_account_token": token,
        "event_context": event_context,
        "raw": raw,
    }
    if phase in PHASES_REQUIRING_CONNECTION:
        fields["connection_data"] = connection_data
    if phase in PHASES_REQUIRING_SYNC_UNIT:
        fields["external_sync_unit_id"] = event_context["external_sync_unit_id"]

    try:
        return EVENT_VARIANTS[phase](**fields)
    except ValidationError as e:
        raise EventValidationError("Event payload is malformed", {"error": str(e)})


def document_error_details(error: DocumentError) -> Dict[str, Any]:
    details: Dict[str, Any] = {"error": str(error)}
    if isinstance(error, DocumentValidationError) and error.report is not None:
        details["issues"] = [str(issue) for issue in error.report.errors]
    return details


class ExtractionRouter:
    """Routes lifecycle events to phase workers."""

    def __init__(self, spawner: Optional[Spawner] = None,
                 mapping_loader: Optional[Callable[[], Dict[str, Any]]] = None,
                 metadata_loader: Optional[Callable[[], Dict[str, Any]]] = None):
        self.spawner = spawner or LocalSpawner()
        self.mapping_loader = mapping_loader or load_initial_domain_mapping
        self.metadata_loader = metadata_loader or load_external_domain_metadata

    def route(self, events: Union[List[Dict[str, Any]], Dict[str, Any], None]) -> RouteResult:
        """Handle one invocation. Only the first event is used."""
        try:
            if isinstance(events, dict):
                events = [events]
            if not events:
                return RouteResult(success=False, message="No events provided")

            try:
                validated = parse_event(events[0])
            except EventValidationError as e:
                logger.warning(f"Rejected event: {e.message}")
                return RouteResult(success=False, message=e.message, details=e.details)

            logger.info(f"Routing event {validated.event_type.value}")
            return self._dispatch(validated)
        except Exception as e:
            logger.error(f"Error during extraction: {e}")
            return RouteResult(success=False, message=f"Error during extraction: {e}")

    def _dispatch(self, event: ValidatedEvent) -> RouteResult:
        phase = event.phase

        try:
            initial_domain_mapping = self.mapping_loader()
        except DocumentError as e:
            logger.error(f"Failed to read initial domain mapping: {e}")
            return RouteResult(
                success=False,
                message="Failed to read initial domain mapping",
                details=document_error_details(e),
            )

        external_domain_metadata = None
        if phase == ExtractionPhase.METADATA:
            try:
                external_domain_metadata = self.metadata_loader()
            except DocumentError as e:
                logger.error(f"Failed to read external domain metadata: {e}")
                return RouteResult(
                    success=False,
                    message="Failed to read external domain metadata",
                    details=document_error_details(e),
                )

        request = SpawnRequest(
            event=event.raw,
            initial_domain_mapping=initial_domain_mapping,
            external_domain_metadata=external_domain_metadata,
            initial_state=build_initial_state(event),
            phase=phase,
            worker=get_worker(phase),
            worker_path=phase.value,
        )

        try:
            self.spawner.spawn(request)
        except Exception as e:
            logger.error(f"Failed to execute {phase.description}: {e}")
            return RouteResult(
                success=False,
                message=f"Failed to execute {phase.description}: {e}",
                details={"error": str(e)},
            )

        logger.info(phase.success_message)
        return RouteResult(success=True, message=phase.success_message)
