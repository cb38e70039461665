"""Pytest configuration for Wrike Airdrop tests."""

import copy
from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest

from wrike_airdrop.models.events import ExtractionPhase
from wrike_airdrop.services.spawner import SpawnRequest, Spawner
from wrike_airdrop.services.transport import RecordingTransport
from wrike_airdrop.workers.base import WorkerAdapter
from wrike_airdrop.workers.contract import TerminalEmitter


class RecordingSpawner(Spawner):
    """Spawner double that records requests instead of running workers."""

    def __init__(self, error: Optional[Exception] = None):
        self.requests: List[SpawnRequest] = []
        self.error = error

    def spawn(self, request: SpawnRequest):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return None


@pytest.fixture
def make_event():
    """Factory for raw lifecycle events."""

    def _make_event(event_type: str = "EXTRACTION_EXTERNAL_SYNC_UNITS_START",
                    connection_data: Optional[Dict[str, Any]] = None,
                    event_context: Optional[Dict[str, Any]] = None,
                    token: Optional[str] = "svc-token",
                    function_name: str = "extraction") -> Dict[str, Any]:
        event = {
            "context": {"secrets": {"service_account_token": token} if token else {}},
            "payload": {
                "event_type": event_type,
                "connection_data": connection_data if connection_data is not None
                else {"key": "wrike-key", "org_id": "IEAAAAAA"},
                "event_context": event_context if event_context is not None else {
                    "callback_url": "https://callback.example.com/events",
                    "worker_data_url": "https://callback.example.com/data",
                },
            },
            "execution_metadata": {"function_name": function_name},
        }
        return copy.deepcopy(event)

    return _make_event


@pytest.fixture
def spawner():
    return RecordingSpawner()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def make_adapter(transport):
    """Factory for a worker adapter bound to a recording transport."""

    def _make_adapter(phase: ExtractionPhase, state: Dict[str, Any],
                      attachments: Optional[List[Dict[str, Any]]] = None) -> WorkerAdapter:
        return WorkerAdapter(
            event={},
            state=state,
            emitter=TerminalEmitter(phase, transport),
            attachments=attachments,
        )

    return _make_adapter


@pytest.fixture
def wrike_client():
    """Mock Wrike client returned by a worker's client factory."""
    client = Mock()
    client.list_projects.return_value = []
    client.list_tasks.return_value = []
    client.get_space_contacts.return_value = []
    return client


@pytest.fixture
def client_factory(wrike_client):
    return Mock(return_value=wrike_client)
