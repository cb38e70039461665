"""
Base worker class and the adapter surface handed to every phase worker.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional
from pydantic import BaseModel
import logging

from ..core.config import get_request_timeout, get_wrike_base_url
from ..exceptions import WorkerError
from ..integrations.wrike.client import WrikeClient
from ..models.events import ExtractionPhase, ExtractorEventType
from ..services.transport import CallbackTransport, EmittedEvent
from .contract import TerminalEmitter

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 2000


class DelayRequested(Exception):
    """Raised by a worker that must pause and be resumed by the platform."""

    def __init__(self, delay: int):
        super().__init__(f"Delay requested: {delay}s")
        self.delay = delay


class RepoSpec(BaseModel):
    """Declares a repository a worker pushes items into."""
    item_type: str
    normalize: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None


class Repository:
    """Buffers normalized items of one type and uploads them in batches."""

    def __init__(self, item_type: str, transport: CallbackTransport,
                 normalize: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 closed_reason: Optional[Callable[[], Optional[str]]] = None):
        self.item_type = item_type
        self.transport = transport
        self.normalize = normalize
        self.batch_size = batch_size
        # Returns a message once the invocation has concluded; uploads are refused from then on.
        self.closed_reason = closed_reason or (lambda: None)
        self.items: List[Dict[str, Any]] = []
        self.pushed_count = 0
        self.upload_errors: List[Dict[str, Any]] = []

    def _send(self, batch: List[Dict[str, Any]]) -> None:
        reason = self.closed_reason()
        if reason:
            logger.warning(f"Dropping {len(batch)} {self.item_type}: {reason}")
            self.upload_errors.append({"message": reason})
            return
        error = self.transport.upload(self.item_type, batch)
        if error:
            self.upload_errors.append(error)

    def push(self, items: List[Dict[str, Any]]) -> bool:
        """Normalize and buffer items. Returns False if any item cannot be normalized
        or the invocation has already concluded."""
        reason = self.closed_reason()
        if reason:
            logger.warning(f"Refusing to push {self.item_type}: {reason}")
            return False

        try:
            normalized = [self.normalize(item) if self.normalize else item for item in items]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to normalize {self.item_type}: {e}")
            return False

        self.items.extend(normalized)
        self.pushed_count += len(normalized)

        while len(self.items) >= self.batch_size:
            batch, self.items = self.items[:self.batch_size], self.items[self.batch_size:]
            self._send(batch)
        return True

    def upload(self) -> Optional[Dict[str, Any]]:
        """Upload whatever is buffered. Returns the first error seen, or None."""
        if self.items:
            batch, self.items = self.items, []
            self._send(batch)
        if self.upload_errors:
            return self.upload_errors[0]
        logger.info(f"Uploaded {self.pushed_count} {self.item_type}")
        return None


class WorkerAdapter:
    """Everything a phase worker may touch: event, state, repos and the terminal channel.

    Once the terminal event has been emitted the adapter is closed: repositories
    and attachment streaming refuse further work.
    """

    def __init__(self, event: Dict[str, Any], state: Dict[str, Any], emitter: TerminalEmitter,
                 initial_domain_mapping: Optional[Dict[str, Any]] = None,
                 attachments: Optional[List[Dict[str, Any]]] = None,
                 external_domain_metadata: Optional[Dict[str, Any]] = None):
        self.event = event
        self.state = state
        self.emitter = emitter
        self.transport = emitter.transport
        self.initial_domain_mapping = initial_domain_mapping or {}
        self.external_domain_metadata = external_domain_metadata
        self.attachments = attachments or []
        self.failed_attachments: List[Dict[str, Any]] = []
        self.repos: Dict[str, Repository] = {}

    @property
    def closed(self) -> bool:
        return self.emitter.emitted

    def closed_reason(self) -> Optional[str]:
        event = self.emitter.event
        if event is None:
            return None
        return f"invocation already concluded with {event.event_type}"

    def initialize_repos(self, specs: List[RepoSpec]) -> None:
        for spec in specs:
            self.repos[spec.item_type] = Repository(
                spec.item_type, self.transport, spec.normalize, closed_reason=self.closed_reason
            )

    def get_repo(self, item_type: str) -> Optional[Repository]:
        return self.repos.get(item_type)

    def emit(self, event_type: ExtractorEventType, data: Optional[Dict[str, Any]] = None) -> EmittedEvent:
        return self.emitter.emit(event_type, data)

    def stream_attachments(self, stream: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Stream every attachment descriptor through `stream` and upload the bodies.

        `stream(item)` returns `{"http_stream": response}`, `{"error": {...}}` or
        `{"delay": seconds}`. Per-item errors are recorded and skipped; a delay
        stops streaming and is returned to the caller. Returns `{"error": {...}}`
        if the invocation concluded while streaming.
        """
        for item in self.attachments:
            reason = self.closed_reason()
            if reason:
                logger.warning(f"Stopped streaming attachments: {reason}")
                return {"error": {"message": f"Attachment streaming stopped: {reason}"}}

            result = stream(item) or {}
            if result.get("delay"):
                logger.info(f"Attachment streaming delayed by {result['delay']}s")
                return {"delay": result["delay"]}
            if result.get("error"):
                logger.warning(f"Skipping attachment {item.get('id')}: {result['error']}")
                self.failed_attachments.append(item)
                continue

            response = result.get("http_stream")
            if response is None:
                self.failed_attachments.append(item)
                continue
            try:
                reason = self.closed_reason()
                if reason:
                    logger.warning(f"Not uploading attachment {item.get('id')}: {reason}")
                    return {"error": {"message": f"Attachment streaming stopped: {reason}"}}
                error = self.transport.upload_attachment(item, response)
            finally:
                response.close()
            if error:
                logger.warning(f"Upload of attachment {item.get('id')} failed: {error}")
                self.failed_attachments.append(item)

        logger.info(
            f"Streamed {len(self.attachments) - len(self.failed_attachments)} of "
            f"{len(self.attachments)} attachments"
        )
        return None


def default_client_factory(api_key: str) -> WrikeClient:
    return WrikeClient(api_key=api_key, base_url=get_wrike_base_url(), timeout=get_request_timeout())


class BaseWorker(ABC):
    """Abstract base class for phase workers."""

    phase: ExtractionPhase
    # Prefix for ERROR messages; None means the raised message is used verbatim.
    error_prefix: Optional[str] = None
    timeout_message: str = "Worker timed out"
    delay_event: Optional[ExtractorEventType] = None

    def __init__(self, client_factory: Optional[Callable[[str], WrikeClient]] = None, **kwargs):
        """
        Initialize the worker.

        Args:
            client_factory: Builds a Wrike client from an API key
            **kwargs: Additional worker configuration
        """
        self.client_factory = client_factory or default_client_factory
        self.config = kwargs
        logger.info(f"Initialized {self.__class__.__name__} worker")

    def phase_state(self, adapter: WorkerAdapter) -> Dict[str, Any]:
        state = adapter.state.get(self.phase.state_key)
        if state is None:
            raise WorkerError(f"Missing {self.phase.state_key} state")
        return state

    def format_error(self, error: Exception) -> str:
        if self.error_prefix:
            return f"{self.error_prefix}: {error}"
        return str(error)

    def run(self, adapter: WorkerAdapter) -> None:
        """Run the phase and emit its single terminal event."""
        try:
            data = self._extract(adapter)
        except DelayRequested as delay:
            if self.delay_event is None:
                adapter.emit(self.phase.error_event, {
                    "error": {"message": f"{self.phase.description} cannot be delayed"}
                })
                return
            adapter.emit(self.delay_event, {"delay": delay.delay})
            return
        except Exception as e:
            logger.error(f"{self.__class__.__name__} failed: {e}")
            adapter.emit(self.phase.error_event, {"error": {"message": self.format_error(e)}})
            return

        adapter.emit(self.phase.done_event, data)

    def on_timeout(self, adapter: WorkerAdapter) -> None:
        """Called by the spawner when the worker exceeds its time budget."""
        logger.warning(f"{self.__class__.__name__} timed out")
        adapter.emit(self.phase.error_event, {"error": {"message": self.timeout_message}})

    @abstractmethod
    def _extract(self, adapter: WorkerAdapter) -> Optional[Dict[str, Any]]:
        """Phase-specific work. Returns the DONE event data, or raises."""
        pass
