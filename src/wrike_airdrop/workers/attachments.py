"""
Attachments worker: streams platform-supplied attachment descriptors from
Wrike to the platform.
"""

import logging
from typing import Any, Dict, Optional

from ..exceptions import WorkerError, WrikeAPIError
from ..models.events import ExtractionPhase, ExtractorEventType
from .base import BaseWorker, DelayRequested, WorkerAdapter

logger = logging.getLogger(__name__)


class AttachmentsWorker(BaseWorker):
    """Streams attachments, or asks the platform to resume later."""

    phase = ExtractionPhase.ATTACHMENTS
    error_prefix = "Failed to extract attachments"
    timeout_message = "Attachments extraction timed out"
    delay_event = ExtractorEventType.EXTRACTION_ATTACHMENTS_DELAY

    def _extract(self, adapter: WorkerAdapter) -> Optional[Dict[str, Any]]:
        state = self.phase_state(adapter)
        api_key = state.get("apiKey")
        if not api_key:
            raise WorkerError("Missing required state parameter: apiKey")

        client = self.client_factory(api_key)

        def stream(item: Dict[str, Any]) -> Dict[str, Any]:
            attachment_id = item.get("id")
            try:
                logger.info(f"Fetching attachment {attachment_id}")
                return {"http_stream": client.download_attachment(item["url"])}
            except (WrikeAPIError, KeyError) as e:
                logger.warning(f"Error while fetching attachment {attachment_id} from URL: {e}")
                return {"error": {"message": f"Error while fetching attachment {attachment_id} from URL."}}

        result = adapter.stream_attachments(stream)
        if result and result.get("delay"):
            raise DelayRequested(result["delay"])
        if result and result.get("error"):
            raise WorkerError(result["error"].get("message", "Attachment streaming failed"))

        state["completed"] = True
        return None
