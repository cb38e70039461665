"""
External sync units worker: presents every Wrike project in the space as a
sync unit, with its task count.
"""

import logging
from typing import Any, Dict, Optional

from ..engine.normalizers import normalize_all, normalize_project, project_to_external_sync_unit
from ..exceptions import WorkerError, WrikeAPIError
from ..models.events import ExtractionPhase
from .base import BaseWorker, WorkerAdapter

logger = logging.getLogger(__name__)


class ExternalSyncUnitsWorker(BaseWorker):
    """Lists projects and counts their tasks."""

    phase = ExtractionPhase.EXTERNAL_SYNC_UNITS
    error_prefix = "Failed to extract external sync units"
    timeout_message = "External sync units extraction timed out. Lambda timeout."

    def _extract(self, adapter: WorkerAdapter) -> Optional[Dict[str, Any]]:
        state = self.phase_state(adapter)
        space_id = state.get("spaceId")
        api_key = state.get("apiKey")
        if not space_id or not api_key:
            raise WorkerError("Missing required state parameters: spaceId or apiKey")

        client = self.client_factory(api_key)
        projects = normalize_all(client.list_projects(space_id), normalize_project)

        external_sync_units = []
        for project in projects:
            try:
                item_count = len(client.list_tasks(project["id"]))
            except (WrikeAPIError, ValueError) as e:
                # A project whose tasks cannot be counted is still offered.
                logger.warning(f"Could not count tasks for project {project['id']}: {e}")
                item_count = 0
            external_sync_units.append(project_to_external_sync_unit(project, item_count))

        logger.info(f"Extracted {len(external_sync_units)} external sync units")
        state["completed"] = True
        return {"external_sync_units": external_sync_units}
