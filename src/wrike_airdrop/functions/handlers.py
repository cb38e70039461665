"""
Host functions invoked by name. Each takes the list of inbound events and
returns a JSON-serializable result.
"""

import logging
from typing import Any, Dict, List

from ..core.config import get_request_timeout, get_wrike_base_url
from ..engine.documents import load_external_domain_metadata, load_initial_domain_mapping
from ..engine.normalizers import normalize_all, normalize_contact, normalize_project, normalize_task
from ..engine.router import ExtractionRouter
from ..exceptions import EventValidationError, WrikeAPIError
from ..integrations.wrike.client import WrikeClient

logger = logging.getLogger(__name__)


def _first_event(events: Any) -> Dict[str, Any]:
    if not isinstance(events, list):
        raise EventValidationError("Invalid input: events must be an array")
    if not events:
        raise EventValidationError("Invalid input: events array is empty")
    event = events[0]
    if not isinstance(event, dict):
        raise EventValidationError("Invalid event: event must be an object")
    return event


def _require(event: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted path in the event or raise EventValidationError."""
    value: Any = event
    for part in path.split("."):
        value = value.get(part) if isinstance(value, dict) else None
        if not value:
            raise EventValidationError(f"Invalid event: missing required field '{path}'")
    return value


def _client(api_key: str) -> WrikeClient:
    return WrikeClient(api_key=api_key, base_url=get_wrike_base_url(), timeout=get_request_timeout())


def healthcheck(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(events, list):
        raise EventValidationError("Invalid input: events must be an array")
    for event in events:
        _require(event, "context.secrets.service_account_token")
        _require(event, "payload")
    logger.info(f"Healthcheck invoked with {len(events)} event(s)")
    return {"status": "success", "message": "Healthcheck function successfully invoked"}


def check_auth(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Check the Wrike API key from connection data. Never raises."""
    if not events:
        return {"authenticated": False, "message": "No events provided"}

    event = events[0] if isinstance(events[0], dict) else {}
    connection_data = (event.get("payload") or {}).get("connection_data")
    if not connection_data:
        return {"authenticated": False, "message": "Event payload or connection_data is missing"}
    if not connection_data.get("key"):
        return {"authenticated": False, "message": "Wrike API key is missing in connection_data"}

    try:
        result = _client(connection_data["key"]).test_authentication()
    except ValueError as e:
        return {"authenticated": False, "message": f"Error checking Wrike authentication: {e}"}
    return {
        "authenticated": result["success"],
        "message": result["message"],
        "details": result.get("details"),
    }


def fetch_projects(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    event = _first_event(events)
    _require(event, "context.secrets.service_account_token")
    api_key = _require(event, "payload.connection_data.key")
    space_id = _require(event, "payload.connection_data.org_id")

    try:
        projects = normalize_all(_client(api_key).list_projects(space_id), normalize_project)
    except WrikeAPIError as e:
        logger.error(f"Failed to fetch projects: {e}")
        return {"status": "error", "message": "Failed to fetch projects from Wrike API", "error": str(e)}
    return {
        "status": "success",
        "message": f"Successfully fetched {len(projects)} projects from Wrike API",
        "projects": projects,
    }


def fetch_tasks(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    event = _first_event(events)
    _require(event, "context.secrets.service_account_token")
    api_key = _require(event, "payload.connection_data.key")
    project_id = _require(event, "payload.event_context.external_sync_unit_id")

    try:
        tasks = normalize_all(_client(api_key).list_tasks(project_id), normalize_task)
    except (WrikeAPIError, ValueError) as e:
        logger.error(f"Failed to fetch tasks for project {project_id}: {e}")
        return {"status": "error", "message": "Failed to fetch tasks from Wrike API", "error": str(e)}
    return {
        "status": "success",
        "message": f"Successfully fetched {len(tasks)} tasks from project {project_id}",
        "tasks": tasks,
    }


def fetch_contacts(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    event = _first_event(events)
    _require(event, "context.secrets.service_account_token")
    api_key = _require(event, "payload.connection_data.key")
    space_id = _require(event, "payload.connection_data.org_id")

    client = _client(api_key)
    try:
        member_ids = client.list_space_members(space_id)
        if not member_ids:
            return {"status": "success", "message": "No members found in the space", "contacts": []}
        contacts = normalize_all(client.list_contacts(member_ids), normalize_contact)
    except WrikeAPIError as e:
        logger.error(f"Failed to fetch contacts: {e}")
        return {"status": "error", "message": "Failed to fetch contacts from Wrike API", "error": str(e)}
    return {
        "status": "success",
        "message": f"Successfully fetched {len(contacts)} contacts from Wrike API",
        "contacts": contacts,
    }


def generate_initial_domain_mapping(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "status": "success",
        "message": "Successfully generated Initial Domain Mapping",
        "mapping": load_initial_domain_mapping(),
    }


def generate_external_domain_metadata(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "status": "success",
        "message": "Successfully generated External Domain Metadata",
        "metadata": load_external_domain_metadata(),
    }


def extraction(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    return ExtractionRouter().route(events).to_response()
