"""Tests for the phase workers."""

from unittest.mock import Mock

import pytest

from wrike_airdrop.exceptions import TerminalEventViolation, WrikeServerError, WrikeUnauthorizedError
from wrike_airdrop.models.events import ExtractionPhase
from wrike_airdrop.services.transport import RecordingTransport
from wrike_airdrop.workers import (
    WORKER_REGISTRY, AttachmentsWorker, DataWorker, ExternalSyncUnitsWorker, MetadataWorker, get_worker,
)
from wrike_airdrop.workers.base import Repository, WorkerAdapter
from wrike_airdrop.workers.contract import TerminalEmitter, verify_terminal_events


class FailingUploadTransport(RecordingTransport):
    """Recording transport whose uploads fail for selected item types."""

    def __init__(self, failing_item_types):
        super().__init__()
        self.failing_item_types = set(failing_item_types)

    def upload(self, item_type, items):
        if item_type in self.failing_item_types:
            return {"status_code": 500, "message": f"{item_type} upload rejected"}
        return super().upload(item_type, items)


def data_state():
    return {"data": {
        "completed": False, "spaceId": "SPACE1", "apiKey": "wrike-key", "projectId": "IEAPROJ1",
        "users": {"completed": False}, "tasks": {"completed": False},
    }}


class TestExternalSyncUnitsWorker:

    @pytest.fixture
    def state(self):
        return {"externalSyncUnits": {"completed": False, "spaceId": "SPACE1", "apiKey": "wrike-key"}}

    def test_emits_sync_units(self, make_adapter, transport, client_factory, wrike_client, state):
        wrike_client.list_projects.return_value = [
            {"id": "P1", "title": "Roadmap", "description": "Plans"},
            {"id": "P2", "title": "Support"},
        ]
        wrike_client.list_tasks.side_effect = lambda project_id: [{"id": "T"}] * (3 if project_id == "P1" else 1)
        adapter = make_adapter(ExtractionPhase.EXTERNAL_SYNC_UNITS, state)

        ExternalSyncUnitsWorker(client_factory=client_factory).run(adapter)

        client_factory.assert_called_once_with("wrike-key")
        assert transport.event_types == ["EXTRACTION_EXTERNAL_SYNC_UNITS_DONE"]
        units = transport.events[0].data["external_sync_units"]
        assert units == [
            {"id": "P1", "name": "Roadmap", "description": "Plans", "item_count": 3, "item_type": "tasks"},
            {"id": "P2", "name": "Support", "description": "Wrike project: Support", "item_count": 1,
             "item_type": "tasks"},
        ]
        assert state["externalSyncUnits"]["completed"] is True

    def test_task_count_failure_defaults_to_zero(self, make_adapter, transport, client_factory, wrike_client, state):
        wrike_client.list_projects.return_value = [{"id": "P1", "title": "Roadmap"}]
        wrike_client.list_tasks.side_effect = WrikeServerError("Server error: down", 503)

        ExternalSyncUnitsWorker(client_factory=client_factory).run(
            make_adapter(ExtractionPhase.EXTERNAL_SYNC_UNITS, state))

        assert transport.events[0].data["external_sync_units"][0]["item_count"] == 0

    def test_api_failure_emits_error(self, make_adapter, transport, client_factory, wrike_client, state):
        wrike_client.list_projects.side_effect = WrikeUnauthorizedError("Authentication failed: Invalid API key", 401)

        ExternalSyncUnitsWorker(client_factory=client_factory).run(
            make_adapter(ExtractionPhase.EXTERNAL_SYNC_UNITS, state))

        assert transport.event_types == ["EXTRACTION_EXTERNAL_SYNC_UNITS_ERROR"]
        assert transport.events[0].data == {"error": {
            "message": "Failed to extract external sync units: Authentication failed: Invalid API key"
        }}
        assert state["externalSyncUnits"]["completed"] is False

    def test_missing_state_emits_error(self, make_adapter, transport, client_factory):
        ExternalSyncUnitsWorker(client_factory=client_factory).run(
            make_adapter(ExtractionPhase.EXTERNAL_SYNC_UNITS, {"externalSyncUnits": {"completed": False}}))

        assert transport.event_types == ["EXTRACTION_EXTERNAL_SYNC_UNITS_ERROR"]
        assert "Missing required state parameters" in transport.events[0].data["error"]["message"]
        client_factory.assert_not_called()

    def test_timeout_emits_error(self, make_adapter, transport, state):
        adapter = make_adapter(ExtractionPhase.EXTERNAL_SYNC_UNITS, state)

        ExternalSyncUnitsWorker().on_timeout(adapter)

        assert transport.events[0].data == {"error": {
            "message": "External sync units extraction timed out. Lambda timeout."
        }}


class TestMetadataWorker:

    METADATA = {"schema_version": "v0.2.0", "record_types": {}}

    def test_pushes_document_unnormalized(self, make_adapter, transport):
        state = {"metadata": {"completed": False}}

        MetadataWorker(metadata_loader=lambda: self.METADATA).run(make_adapter(ExtractionPhase.METADATA, state))

        assert transport.event_types == ["EXTRACTION_METADATA_DONE"]
        assert transport.events[0].data is None
        assert transport.uploads["external_domain_metadata"] == [self.METADATA]
        assert state["metadata"]["completed"] is True

    def test_uses_packaged_document_by_default(self, make_adapter, transport):
        MetadataWorker().run(make_adapter(ExtractionPhase.METADATA, {"metadata": {"completed": False}}))

        assert transport.uploads["external_domain_metadata"][0]["schema_version"] == "v0.2.0"

    def test_prefers_document_loaded_by_router(self, transport):
        loader = Mock()
        adapter = WorkerAdapter({}, {"metadata": {"completed": False}},
                                TerminalEmitter(ExtractionPhase.METADATA, transport),
                                external_domain_metadata=self.METADATA)

        MetadataWorker(metadata_loader=loader).run(adapter)

        loader.assert_not_called()
        assert transport.uploads["external_domain_metadata"] == [self.METADATA]

    def test_upload_failure_emits_error(self):
        transport = FailingUploadTransport({"external_domain_metadata"})
        adapter = WorkerAdapter({}, {"metadata": {"completed": False}},
                                TerminalEmitter(ExtractionPhase.METADATA, transport))

        MetadataWorker(metadata_loader=lambda: self.METADATA).run(adapter)

        assert transport.event_types == ["EXTRACTION_METADATA_ERROR"]
        assert transport.events[0].data["error"]["message"].startswith("Failed to upload metadata:")


class TestDataWorker:

    @pytest.fixture
    def populated_client(self, wrike_client):
        wrike_client.get_space_contacts.return_value = [
            {"id": "U1", "firstName": "Ada", "lastName": "Lovelace", "profiles": [{"email": "ada@example.com"}]},
        ]
        wrike_client.list_tasks.return_value = [
            {"id": "T1", "title": "First", "status": "Active", "createdDate": "c1", "updatedDate": "u1"},
            {"id": "T2", "title": "Second", "status": "Completed", "createdDate": "c2", "updatedDate": "u2"},
        ]
        return wrike_client

    def test_extracts_users_then_tasks(self, make_adapter, transport, client_factory, populated_client):
        state = data_state()

        DataWorker(client_factory=client_factory).run(make_adapter(ExtractionPhase.DATA, state))

        assert transport.event_types == ["EXTRACTION_DATA_DONE"]
        assert list(transport.uploads) == ["users", "tasks"]
        assert transport.uploads["users"][0]["data"]["full_name"] == "Ada Lovelace"
        assert [item["id"] for item in transport.uploads["tasks"]] == ["T1", "T2"]
        assert transport.uploads["tasks"][0]["modified_date"] == "u1"
        populated_client.list_tasks.assert_called_once_with("IEAPROJ1")
        assert state["data"]["completed"] is True
        assert state["data"]["users"]["completed"] is True
        assert state["data"]["tasks"]["completed"] is True

    def test_user_upload_failure_is_not_fatal(self, client_factory, populated_client):
        transport = FailingUploadTransport({"users"})
        state = data_state()
        adapter = WorkerAdapter({}, state, TerminalEmitter(ExtractionPhase.DATA, transport))

        DataWorker(client_factory=client_factory).run(adapter)

        assert transport.event_types == ["EXTRACTION_DATA_DONE"]
        assert state["data"]["users"]["completed"] is False
        assert state["data"]["tasks"]["completed"] is True

    def test_task_upload_failure_is_fatal(self, client_factory, populated_client):
        transport = FailingUploadTransport({"tasks"})
        state = data_state()
        adapter = WorkerAdapter({}, state, TerminalEmitter(ExtractionPhase.DATA, transport))

        DataWorker(client_factory=client_factory).run(adapter)

        assert transport.event_types == ["EXTRACTION_DATA_ERROR"]
        assert transport.events[0].data["error"]["message"].startswith("Error uploading tasks:")
        assert state["data"]["completed"] is False

    def test_contact_fetch_failure(self, make_adapter, transport, client_factory, wrike_client):
        wrike_client.get_space_contacts.side_effect = WrikeServerError("Server error: down", 500)

        DataWorker(client_factory=client_factory).run(make_adapter(ExtractionPhase.DATA, data_state()))

        assert transport.events[0].data == {"error": {"message": "Error fetching contacts: Server error: down"}}

    def test_task_fetch_failure(self, make_adapter, transport, client_factory, wrike_client):
        wrike_client.list_tasks.side_effect = ValueError("Invalid project ID format: x")

        DataWorker(client_factory=client_factory).run(make_adapter(ExtractionPhase.DATA, data_state()))

        assert transport.events[0].data == {"error": {"message": "Error fetching tasks: Invalid project ID format: x"}}

    def test_task_without_id_is_skipped(self, make_adapter, transport, client_factory, wrike_client):
        wrike_client.list_tasks.return_value = [{"id": "T1"}, {"title": "no id"}]

        DataWorker(client_factory=client_factory).run(make_adapter(ExtractionPhase.DATA, data_state()))

        assert [item["id"] for item in transport.uploads["tasks"]] == ["T1"]

    def test_timeout_message(self, make_adapter, transport):
        DataWorker().on_timeout(make_adapter(ExtractionPhase.DATA, data_state()))

        assert transport.events[0].data == {"error": {"message": "Data extraction timed out"}}


class TestAttachmentsWorker:

    @pytest.fixture
    def state(self):
        return {"attachments": {"completed": False, "spaceId": "SPACE1", "apiKey": "wrike-key", "projectId": "P1"}}

    def make_stream(self, content):
        response = Mock()
        response.iter_content.return_value = [content]
        response.headers = {}
        return response

    def test_streams_attachments(self, make_adapter, transport, client_factory, wrike_client, state):
        wrike_client.download_attachment.side_effect = lambda url: self.make_stream(url.encode())
        attachments = [{"id": "A1", "url": "https://files.test/a1"}, {"id": "A2", "url": "https://files.test/a2"}]

        AttachmentsWorker(client_factory=client_factory).run(
            make_adapter(ExtractionPhase.ATTACHMENTS, state, attachments=attachments))

        assert transport.event_types == ["EXTRACTION_ATTACHMENTS_DONE"]
        assert transport.attachments == {"A1": b"https://files.test/a1", "A2": b"https://files.test/a2"}
        assert state["attachments"]["completed"] is True

    def test_failed_download_is_skipped(self, make_adapter, transport, client_factory, wrike_client, state):
        wrike_client.download_attachment.side_effect = WrikeServerError("Server error: down", 500)
        adapter = make_adapter(ExtractionPhase.ATTACHMENTS, state, attachments=[{"id": "A1", "url": "u"}])

        AttachmentsWorker(client_factory=client_factory).run(adapter)

        assert transport.event_types == ["EXTRACTION_ATTACHMENTS_DONE"]
        assert adapter.failed_attachments == [{"id": "A1", "url": "u"}]

    def test_delay_emits_delay_event(self, make_adapter, transport, client_factory, state):
        adapter = make_adapter(ExtractionPhase.ATTACHMENTS, state)
        adapter.stream_attachments = Mock(return_value={"delay": 30})

        AttachmentsWorker(client_factory=client_factory).run(adapter)

        assert transport.event_types == ["EXTRACTION_ATTACHMENTS_DELAY"]
        assert transport.events[0].data == {"delay": 30}
        assert verify_terminal_events(transport.events) == []

    def test_stream_error_emits_error(self, make_adapter, transport, client_factory, state):
        adapter = make_adapter(ExtractionPhase.ATTACHMENTS, state)
        adapter.stream_attachments = Mock(return_value={"error": {"message": "rate limited"}})

        AttachmentsWorker(client_factory=client_factory).run(adapter)

        assert transport.events[0].data == {"error": {"message": "Failed to extract attachments: rate limited"}}

    def test_timeout_mid_stream_stops_uploads(self, make_adapter, transport, client_factory, wrike_client, state):
        worker = AttachmentsWorker(client_factory=client_factory)
        adapter = make_adapter(ExtractionPhase.ATTACHMENTS, state, attachments=[
            {"id": "A1", "url": "https://files.test/a1"}, {"id": "A2", "url": "https://files.test/a2"},
        ])
        response = self.make_stream(b"body")

        def download_then_time_out(url):
            worker.on_timeout(adapter)
            return response

        wrike_client.download_attachment.side_effect = download_then_time_out

        with pytest.raises(TerminalEventViolation):
            worker.run(adapter)

        assert transport.attachments == {}
        assert transport.event_types == ["EXTRACTION_ATTACHMENTS_ERROR"]
        assert transport.events[0].data == {"error": {"message": "Attachments extraction timed out"}}
        response.close.assert_called_once()
        assert wrike_client.download_attachment.call_count == 1

    def test_closed_adapter_reports_error(self, make_adapter, transport, state):
        adapter = make_adapter(ExtractionPhase.ATTACHMENTS, state, attachments=[{"id": "A1", "url": "u"}])
        adapter.emit("EXTRACTION_ATTACHMENTS_DONE")
        stream = Mock()

        result = adapter.stream_attachments(stream)

        assert adapter.closed is True
        assert "EXTRACTION_ATTACHMENTS_DONE" in result["error"]["message"]
        stream.assert_not_called()

    def test_missing_api_key(self, make_adapter, transport, client_factory):
        AttachmentsWorker(client_factory=client_factory).run(
            make_adapter(ExtractionPhase.ATTACHMENTS, {"attachments": {"completed": False}}))

        assert transport.events[0].data == {"error": {
            "message": "Failed to extract attachments: Missing required state parameter: apiKey"
        }}


class TestContractAcrossWorkers:

    def test_late_done_after_timeout_is_rejected(self, make_adapter, transport):
        worker = MetadataWorker(metadata_loader=lambda: {"schema_version": "v0.2.0"})
        adapter = make_adapter(ExtractionPhase.METADATA, {"metadata": {"completed": False}})

        worker.on_timeout(adapter)
        with pytest.raises(TerminalEventViolation):
            worker.run(adapter)

        assert transport.event_types == ["EXTRACTION_METADATA_ERROR"]
        assert verify_terminal_events(transport.events) == []


class TestRepository:

    def test_batches_uploads(self, transport):
        repo = Repository("tasks", transport, batch_size=2)

        assert repo.push([{"id": 1}, {"id": 2}, {"id": 3}]) is True
        assert len(transport.uploads["tasks"]) == 2
        assert repo.upload() is None
        assert len(transport.uploads["tasks"]) == 3

    def test_normalize_failure_returns_false(self, transport):
        repo = Repository("tasks", transport, normalize=lambda item: item["missing"])

        assert repo.push([{"id": 1}]) is False
        assert repo.pushed_count == 0

    def test_refuses_work_once_invocation_concluded(self, transport):
        closed = {"reason": None}
        repo = Repository("tasks", transport, batch_size=2, closed_reason=lambda: closed["reason"])
        assert repo.push([{"id": 1}]) is True

        closed["reason"] = "invocation already concluded with EXTRACTION_DATA_ERROR"

        assert repo.push([{"id": 2}, {"id": 3}]) is False
        assert repo.upload() == {"message": "invocation already concluded with EXTRACTION_DATA_ERROR"}
        assert transport.uploads == {}


class TestRegistry:

    def test_every_phase_has_a_worker(self):
        assert set(WORKER_REGISTRY) == {phase.value for phase in ExtractionPhase}

    def test_get_worker(self):
        assert get_worker(ExtractionPhase.DATA) is DataWorker
        assert get_worker("attachments") is AttachmentsWorker

    def test_unknown_phase(self):
        with pytest.raises(ValueError, match="Unknown phase"):
            get_worker("loading")
