"""Wrike API client for projects, tasks and space members."""

import re
import logging
from typing import List, Optional, Dict, Any, Iterable

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ...core.config import (
    get_required_env, get_wrike_base_url, get_request_timeout, mask_secret,
    DEFAULT_WRIKE_API_BASE_URL, DEFAULT_REQUEST_TIMEOUT,
)
from ...exceptions import (
    WrikeAPIError, WrikeUnauthorizedError, WrikeForbiddenError, WrikeNotFoundError,
    WrikeClientError, WrikeServerError, WrikeNetworkError,
)
from ...version import __version__

logger = logging.getLogger(__name__)

PROJECT_ID_PATTERN = re.compile(r"^[A-Z0-9]+$")


def classify_http_error(status_code: int, payload: Any, fallback: str) -> WrikeAPIError:
    """Map an HTTP status onto the Wrike error taxonomy."""
    detail = fallback
    if isinstance(payload, dict):
        detail = payload.get("errorDescription") or payload.get("error") or fallback

    if status_code == 401:
        return WrikeUnauthorizedError("Authentication failed: Invalid API key", status_code)
    if status_code == 403:
        return WrikeForbiddenError("Authorization failed: Insufficient permissions", status_code)
    if status_code == 404:
        return WrikeNotFoundError("Resource not found: The requested resource does not exist", status_code)
    if 400 <= status_code < 500:
        return WrikeClientError(f"Client error: {detail}", status_code)
    if 500 <= status_code < 600:
        return WrikeServerError(f"Server error: {detail}", status_code)
    return WrikeAPIError(f"Unknown error: HTTP {status_code}: {detail}", status_code)


class WrikeClient:
    """Client for interacting with the Wrike v4 API."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_WRIKE_API_BASE_URL,
                 timeout: int = DEFAULT_REQUEST_TIMEOUT):
        """Initialize the Wrike client.

        Args:
            api_key: Wrike permanent access token
            base_url: Base URL for the Wrike API
            timeout: Per-request timeout in seconds
        """
        if not api_key:
            raise ValueError("Wrike API key is required")

        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        # Configure session with retries
        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            backoff_factor=1,
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
            'User-Agent': f'wrike-airdrop/{__version__}'
        })
        logger.debug(f"Initialized Wrike client: api_key={mask_secret(api_key)}, base_url={self.base_url}")

    def _make_request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Make a request to the Wrike API.

        Returns:
            JSON response data

        Raises:
            WrikeAPIError: A classified error if the request fails
        """
        url = f"{self.base_url}{endpoint}"

        try:
            logger.debug(f"Making {method} request to {url} with params: {params}")
            response = self.session.request(method, url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Wrike API request failed: {e}")
            raise WrikeNetworkError(f"Network error: {e}")

        if not response.ok:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            error = classify_http_error(response.status_code, payload, response.reason or "")
            logger.error(f"Wrike API returned HTTP {response.status_code} for {endpoint}: {error}")
            raise error

        try:
            return response.json()
        except ValueError:
            raise WrikeAPIError(f"Invalid JSON in response from {endpoint}", response.status_code)

    @staticmethod
    def _data(body: Dict[str, Any], what: str) -> List[Dict[str, Any]]:
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise WrikeAPIError(f"Invalid response format from Wrike API for {what}")
        return data

    def list_projects(self, space_id: str) -> List[Dict[str, Any]]:
        """Get the raw project folders of a space."""
        if not space_id:
            raise ValueError("Space ID is required")

        logger.info(f"Fetching projects for space {space_id}")
        body = self._make_request('GET', f'/spaces/{space_id}/folders', params={'project': 'true'})
        projects = self._data(body, "projects")
        logger.info(f"Retrieved {len(projects)} projects")
        return projects

    def list_tasks(self, project_id: str) -> List[Dict[str, Any]]:
        """Get the raw tasks of a project, including subtasks and descendants."""
        if not project_id:
            raise ValueError("Project ID is required")
        if not PROJECT_ID_PATTERN.match(project_id):
            raise ValueError(f"Invalid project ID format: {project_id}")

        logger.info(f"Fetching tasks for project {project_id}")
        body = self._make_request(
            'GET', f'/folders/{project_id}/tasks',
            params={'descendants': 'true', 'subTasks': 'true'}
        )
        tasks = self._data(body, "tasks")
        logger.info(f"Retrieved {len(tasks)} tasks for project {project_id}")
        return tasks

    def list_space_members(self, space_id: str) -> List[str]:
        """Get the contact ids of a space's members."""
        if not space_id:
            raise ValueError("Space ID is required")

        body = self._make_request('GET', f'/spaces/{space_id}', params={'fields': '[members]'})
        spaces = self._data(body, "space members")
        if not spaces:
            return []

        members = spaces[0].get("members") or []
        member_ids = []
        for member in members:
            if isinstance(member, dict):
                if member.get("id"):
                    member_ids.append(member["id"])
            elif member:
                member_ids.append(str(member))
        logger.info(f"Space {space_id} has {len(member_ids)} members")
        return member_ids

    def list_contacts(self, contact_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Get raw contact records by id."""
        contact_ids = [contact_id for contact_id in contact_ids if contact_id]
        if not contact_ids:
            return []

        body = self._make_request('GET', f"/contacts/{','.join(contact_ids)}")
        return self._data(body, "contacts")

    def get_space_contacts(self, space_id: str) -> List[Dict[str, Any]]:
        """Get raw contact records for every member of a space."""
        return self.list_contacts(self.list_space_members(space_id))

    def download_attachment(self, url: str) -> requests.Response:
        """Open a streaming download for an attachment URL."""
        try:
            response = self.session.get(
                url,
                stream=True,
                timeout=self.timeout,
                headers={'Accept-Encoding': 'identity'}
            )
        except requests.exceptions.RequestException as e:
            raise WrikeNetworkError(f"Network error: {e}")
        if not response.ok:
            raise classify_http_error(response.status_code, None, response.reason or "")
        return response

    def test_authentication(self) -> Dict[str, Any]:
        """Check the API key against the contacts endpoint without raising."""
        try:
            body = self._make_request('GET', '/contacts')
        except WrikeAPIError as e:
            return {
                "success": False,
                "message": f"Authentication failed: {e}",
                "details": {"status_code": e.status_code}
            }

        if isinstance(body, dict) and body.get("kind") == "contacts":
            return {
                "success": True,
                "message": "Successfully authenticated with Wrike API",
                "details": {"contacts_count": len(body.get("data") or [])}
            }
        return {
            "success": False,
            "message": "Received unexpected response from Wrike API",
            "details": {"response": body}
        }


def create_client_from_env() -> WrikeClient:
    """Create a Wrike client using environment variables.

    Raises:
        ValueError: If required environment variables are missing
    """
    api_key = get_required_env('WRIKE_API_KEY')
    return WrikeClient(api_key=api_key, base_url=get_wrike_base_url(), timeout=get_request_timeout())
