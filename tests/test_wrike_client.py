"""Tests for the Wrike API client."""

from unittest.mock import Mock, patch

import pytest
import requests

from wrike_airdrop.exceptions import (
    WrikeAPIError, WrikeClientError, WrikeForbiddenError, WrikeNetworkError,
    WrikeNotFoundError, WrikeServerError, WrikeUnauthorizedError,
)
from wrike_airdrop.integrations.wrike.client import WrikeClient, classify_http_error, create_client_from_env


def make_response(status_code=200, body=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = reason
    response.json.return_value = body if body is not None else {}
    response.text = str(body)
    return response


@pytest.fixture
def client():
    client = WrikeClient(api_key="test-key", base_url="https://wrike.test/api/v4/", timeout=5)
    client.session = Mock()
    return client


class TestClientSetup:

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API key is required"):
            WrikeClient(api_key="")

    def test_bearer_auth_header(self):
        client = WrikeClient(api_key="secret")

        assert client.session.headers["Authorization"] == "Bearer secret"
        assert client.base_url == "https://www.wrike.com/api/v4"

    def test_create_client_from_env(self):
        with patch.dict("os.environ", {"WRIKE_API_KEY": "env-key", "WRIKE_REQUEST_TIMEOUT": "12"}, clear=True):
            client = create_client_from_env()

        assert client.api_key == "env-key"
        assert client.timeout == 12

    def test_create_client_from_env_missing_key(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="WRIKE_API_KEY"):
                create_client_from_env()


class TestRequests:

    def test_list_projects(self, client):
        client.session.request.return_value = make_response(body={"kind": "folders", "data": [{"id": "P1"}]})

        projects = client.list_projects("SPACE1")

        assert projects == [{"id": "P1"}]
        client.session.request.assert_called_once_with(
            'GET', "https://wrike.test/api/v4/spaces/SPACE1/folders",
            params={'project': 'true'}, timeout=5
        )

    def test_list_tasks(self, client):
        client.session.request.return_value = make_response(body={"data": [{"id": "T1"}, {"id": "T2"}]})

        tasks = client.list_tasks("IEAPROJ1")

        assert len(tasks) == 2
        args, kwargs = client.session.request.call_args
        assert args[1].endswith("/folders/IEAPROJ1/tasks")
        assert kwargs["params"] == {'descendants': 'true', 'subTasks': 'true'}

    @pytest.mark.parametrize("project_id", ["", "abc", "IEA-1", "IEA/../x"])
    def test_list_tasks_rejects_bad_ids(self, client, project_id):
        with pytest.raises(ValueError):
            client.list_tasks(project_id)
        client.session.request.assert_not_called()

    def test_list_space_members_mixed_formats(self, client):
        client.session.request.return_value = make_response(body={
            "data": [{"id": "SPACE1", "members": [{"id": "U1"}, "U2", {"name": "no id"}, None]}]
        })

        assert client.list_space_members("SPACE1") == ["U1", "U2"]

    def test_list_space_members_empty_space(self, client):
        client.session.request.return_value = make_response(body={"data": []})

        assert client.list_space_members("SPACE1") == []

    def test_list_contacts_joins_ids(self, client):
        client.session.request.return_value = make_response(body={"data": [{"id": "U1"}, {"id": "U2"}]})

        contacts = client.list_contacts(["U1", "U2"])

        assert len(contacts) == 2
        assert client.session.request.call_args[0][1].endswith("/contacts/U1,U2")

    def test_list_contacts_empty_makes_no_request(self, client):
        assert client.list_contacts([]) == []
        client.session.request.assert_not_called()

    def test_invalid_response_format(self, client):
        client.session.request.return_value = make_response(body={"kind": "folders"})

        with pytest.raises(WrikeAPIError, match="Invalid response format"):
            client.list_projects("SPACE1")


class TestErrors:

    @pytest.mark.parametrize("status_code,error_class", [
        (401, WrikeUnauthorizedError),
        (403, WrikeForbiddenError),
        (404, WrikeNotFoundError),
        (400, WrikeClientError),
        (429, WrikeClientError),
        (500, WrikeServerError),
        (503, WrikeServerError),
    ])
    def test_status_classification(self, client, status_code, error_class):
        client.session.request.return_value = make_response(
            status_code=status_code, body={"errorDescription": "nope"}, reason="Error"
        )

        with pytest.raises(error_class) as exc_info:
            client.list_projects("SPACE1")

        assert exc_info.value.status_code == status_code

    def test_unauthorized_message(self):
        error = classify_http_error(401, None, "Unauthorized")

        assert str(error) == "Authentication failed: Invalid API key"

    def test_client_error_uses_description(self):
        error = classify_http_error(400, {"errorDescription": "Invalid parameter"}, "Bad Request")

        assert str(error) == "Client error: Invalid parameter"

    def test_network_error(self, client):
        client.session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(WrikeNetworkError) as exc_info:
            client.list_projects("SPACE1")

        assert exc_info.value.status_code is None


class TestAuthentication:

    def test_success(self, client):
        client.session.request.return_value = make_response(body={"kind": "contacts", "data": [{"id": "U1"}]})

        result = client.test_authentication()

        assert result["success"] is True
        assert result["details"] == {"contacts_count": 1}

    def test_failure_does_not_raise(self, client):
        client.session.request.return_value = make_response(status_code=401, body={}, reason="Unauthorized")

        result = client.test_authentication()

        assert result["success"] is False
        assert "Invalid API key" in result["message"]
        assert result["details"] == {"status_code": 401}

    def test_unexpected_body(self, client):
        client.session.request.return_value = make_response(body={"kind": "folders", "data": []})

        assert client.test_authentication()["success"] is False


class TestDownloads:

    def test_download_attachment_streams(self, client):
        response = make_response()
        client.session.get.return_value = response

        assert client.download_attachment("https://files.test/a.png") is response
        assert client.session.get.call_args[1]["stream"] is True

    def test_download_attachment_error(self, client):
        client.session.get.return_value = make_response(status_code=404, reason="Not Found")

        with pytest.raises(WrikeNotFoundError):
            client.download_attachment("https://files.test/missing.png")
