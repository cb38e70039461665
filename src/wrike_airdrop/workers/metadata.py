"""
Metadata worker: pushes the External Metadata Document as a single item.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

from ..engine.documents import load_external_domain_metadata
from ..exceptions import WorkerError
from ..models.events import ExtractionPhase
from .base import BaseWorker, RepoSpec, WorkerAdapter

logger = logging.getLogger(__name__)

METADATA_ITEM_TYPE = "external_domain_metadata"


class MetadataWorker(BaseWorker):
    """Publishes the packaged External Metadata Document."""

    phase = ExtractionPhase.METADATA
    timeout_message = "Metadata extraction timed out"

    def __init__(self, client_factory=None, metadata_loader: Optional[Callable[[], Dict[str, Any]]] = None,
                 **kwargs):
        super().__init__(client_factory=client_factory, **kwargs)
        self.metadata_loader = metadata_loader or load_external_domain_metadata

    def _extract(self, adapter: WorkerAdapter) -> Optional[Dict[str, Any]]:
        # The router loads and validates the document before spawning.
        metadata = adapter.external_domain_metadata
        if metadata is None:
            metadata = self.metadata_loader()

        # The document is published as-is, without a normalizer.
        adapter.initialize_repos([RepoSpec(item_type=METADATA_ITEM_TYPE)])
        repo = adapter.get_repo(METADATA_ITEM_TYPE)
        if repo is None:
            raise WorkerError(f"Failed to initialize {METADATA_ITEM_TYPE} repository")

        if not repo.push([metadata]):
            raise WorkerError("Failed to push metadata to repository")

        upload_error = repo.upload()
        if upload_error:
            raise WorkerError(f"Failed to upload metadata: {json.dumps(upload_error)}")

        logger.info("Pushed external domain metadata")
        self.phase_state(adapter)["completed"] = True
        return None
