"""
Data worker: extracts the space's users and the selected project's tasks.

Users are pushed first so that task references resolve. A failed user upload
is logged and tolerated; a failed task upload fails the phase.
"""

import json
import logging
from typing import Any, Dict, Optional

from ..engine.normalizers import (
    contact_to_item, normalize_all, normalize_contact, normalize_task, task_to_item,
)
from ..exceptions import WorkerError
from ..models.events import ExtractionPhase
from .base import BaseWorker, RepoSpec, WorkerAdapter

logger = logging.getLogger(__name__)


class DataWorker(BaseWorker):
    """Extracts users and tasks for one external sync unit."""

    phase = ExtractionPhase.DATA
    timeout_message = "Data extraction timed out"

    def _extract(self, adapter: WorkerAdapter) -> Optional[Dict[str, Any]]:
        state = self.phase_state(adapter)
        api_key = state.get("apiKey")
        space_id = state.get("spaceId")
        project_id = state.get("projectId")
        if not api_key or not space_id or not project_id:
            raise WorkerError("Missing required state parameters: apiKey, spaceId or projectId")

        client = self.client_factory(api_key)
        adapter.initialize_repos([
            RepoSpec(item_type="users", normalize=contact_to_item),
            RepoSpec(item_type="tasks", normalize=task_to_item),
        ])
        users_repo = adapter.get_repo("users")
        tasks_repo = adapter.get_repo("tasks")

        try:
            contacts = normalize_all(client.get_space_contacts(space_id), normalize_contact)
        except Exception as e:
            raise WorkerError(f"Error fetching contacts: {e}") from e

        if contacts and not users_repo.push(contacts):
            raise WorkerError("Error pushing contacts: Failed to push contacts to repository")
        logger.info(f"Pushed {len(contacts)} users")

        try:
            tasks = normalize_all(client.list_tasks(project_id), normalize_task)
        except Exception as e:
            raise WorkerError(f"Error fetching tasks: {e}") from e

        if tasks and not tasks_repo.push(tasks):
            raise WorkerError("Error pushing tasks: Failed to push tasks to repository")
        logger.info(f"Pushed {len(tasks)} tasks for project {project_id}")

        users_error = users_repo.upload()
        if users_error:
            logger.warning(f"Error uploading users, continuing with tasks: {users_error}")
        state["users"]["completed"] = users_error is None

        tasks_error = tasks_repo.upload()
        if tasks_error:
            raise WorkerError(f"Error uploading tasks: {json.dumps(tasks_error)}")
        state["tasks"]["completed"] = True

        state["completed"] = True
        return None
