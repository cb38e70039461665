"""
Worker spawning: runs a phase worker for one lifecycle event and relays its
terminal event to a callback transport.
"""

import copy
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict

from ..core.config import get_request_timeout, get_worker_timeout
from ..exceptions import TerminalEventViolation, WorkerContractError
from ..models.events import ExtractionPhase
from ..workers.base import BaseWorker, WorkerAdapter
from ..workers.contract import TerminalEmitter
from .transport import CallbackTransport, EmittedEvent, HttpCallbackTransport

logger = logging.getLogger(__name__)


class SpawnRequest(BaseModel):
    """Everything needed to start one worker invocation."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    event: Dict[str, Any]
    initial_domain_mapping: Dict[str, Any]
    external_domain_metadata: Optional[Dict[str, Any]] = None
    initial_state: Dict[str, Any]
    phase: ExtractionPhase
    worker: Type[BaseWorker]
    worker_path: str


class Spawner(ABC):
    """Runs a phase worker in an isolated context."""

    @abstractmethod
    def spawn(self, request: SpawnRequest) -> Optional[EmittedEvent]:
        """Run the worker. Raise if it cannot be started or breaks its contract."""
        pass


def default_transport_factory(event: Dict[str, Any]) -> CallbackTransport:
    return HttpCallbackTransport.from_event(event, timeout=get_request_timeout())


def no_attachments(event: Dict[str, Any]) -> List[Dict[str, Any]]:
    return []


class LocalSpawner(Spawner):
    """Runs the worker on a thread in this process, enforcing a time budget."""

    def __init__(self, transport_factory: Optional[Callable[[Dict[str, Any]], CallbackTransport]] = None,
                 timeout: Optional[float] = None, client_factory=None,
                 attachments_provider: Optional[Callable[[Dict[str, Any]], List[Dict[str, Any]]]] = None):
        """
        Args:
            transport_factory: Builds the callback transport for an event
            timeout: Seconds before the worker's timeout handler is invoked
            client_factory: Passed to workers to build Wrike clients
            attachments_provider: Returns the attachment descriptors for an event
        """
        self.transport_factory = transport_factory or default_transport_factory
        self.timeout = timeout if timeout is not None else get_worker_timeout()
        self.client_factory = client_factory
        self.attachments_provider = attachments_provider or no_attachments

    def spawn(self, request: SpawnRequest) -> Optional[EmittedEvent]:
        transport = self.transport_factory(request.event)
        emitter = TerminalEmitter(request.phase, transport)
        adapter = WorkerAdapter(
            event=request.event,
            state=copy.deepcopy(request.initial_state),
            emitter=emitter,
            initial_domain_mapping=request.initial_domain_mapping,
            external_domain_metadata=request.external_domain_metadata,
            attachments=self.attachments_provider(request.event),
        )
        worker = request.worker(client_factory=self.client_factory)

        logger.info(f"Spawning {request.worker_path} worker with {self.timeout}s timeout")
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"worker-{request.worker_path}")
        try:
            future = executor.submit(worker.run, adapter)
            try:
                future.result(timeout=self.timeout)
            except TimeoutError:
                logger.error(f"{request.worker_path} worker exceeded {self.timeout}s")
                future.add_done_callback(_log_late_failure)
                if not emitter.emitted:
                    try:
                        worker.on_timeout(adapter)
                    except TerminalEventViolation as e:
                        # The worker concluded while the timeout handler was starting.
                        logger.warning(f"Timeout handler skipped: {e}")
        finally:
            executor.shutdown(wait=False)

        if not emitter.emitted:
            raise WorkerContractError(
                f"{request.worker_path} worker finished without emitting a terminal event"
            )
        return emitter.event


def _log_late_failure(future) -> None:
    error = future.exception()
    if error is not None:
        logger.warning(f"Worker finished after timeout with: {error}")
