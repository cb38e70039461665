"""
The terminal event contract: every worker invocation concludes with exactly
one terminal event, never zero, never two, never both DONE and ERROR.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import TerminalEventViolation, WorkerContractError
from ..models.events import ExtractionPhase, ExtractorEventType
from ..services.transport import CallbackTransport, EmittedEvent

logger = logging.getLogger(__name__)

CONCLUDING_SUFFIXES = ("_DONE", "_ERROR", "_DELAY")


def is_terminal(event_type: str) -> bool:
    return str(event_type).endswith(CONCLUDING_SUFFIXES)


class TerminalEmitter:
    """One-shot terminal event channel for a single worker invocation."""

    def __init__(self, phase: ExtractionPhase, transport: CallbackTransport):
        self.phase = phase
        self.transport = transport
        self._lock = threading.Lock()
        self._event: Optional[EmittedEvent] = None

    @property
    def emitted(self) -> bool:
        return self._event is not None

    @property
    def event(self) -> Optional[EmittedEvent]:
        return self._event

    def emit(self, event_type: ExtractorEventType, data: Optional[Dict[str, Any]] = None) -> EmittedEvent:
        """
        Emit the terminal event.

        Raises:
            ValueError: If the event type does not belong to this phase
            TerminalEventViolation: If a terminal event was already emitted
        """
        event_type = ExtractorEventType(event_type)
        if not event_type.value.startswith(f"EXTRACTION_{self.phase.value.upper()}_"):
            raise ValueError(f"{event_type.value} cannot conclude the {self.phase.description} phase")

        # The slot is claimed under the lock; delivery happens outside it so a slow
        # callback never blocks a competing emit.
        event = EmittedEvent(event_type=event_type.value, data=data)
        with self._lock:
            if self._event is not None:
                logger.error(
                    f"Rejected {event_type.value}: {self._event.event_type} was already emitted"
                )
                raise TerminalEventViolation(
                    f"Cannot emit {event_type.value}: {self._event.event_type} was already emitted"
                )
            self._event = event

        try:
            self.transport.send_event(event_type.value, data)
        except Exception:
            with self._lock:
                self._event = None
            raise

        logger.info(f"Emitted {event_type.value}")
        return event


def verify_terminal_events(events: Iterable[EmittedEvent]) -> List[str]:
    """
    Check a recorded event sequence for one invocation against the contract.

    Returns:
        Human readable violations; empty when the sequence is valid.
    """
    terminal = [event for event in events if is_terminal(event.event_type)]
    violations = []

    if not terminal:
        violations.append("no terminal event was emitted")
        return violations

    if len(terminal) > 1:
        sequence = ", ".join(event.event_type for event in terminal)
        violations.append(f"{len(terminal)} terminal events were emitted: {sequence}")

    has_done = any(event.event_type.endswith("_DONE") for event in terminal)
    has_error = any(event.event_type.endswith("_ERROR") for event in terminal)
    if has_done and has_error:
        violations.append("both DONE and ERROR were emitted")

    return violations


def assert_single_terminal(events: Iterable[EmittedEvent]) -> None:
    """Raise WorkerContractError if the sequence violates the contract."""
    violations = verify_terminal_events(list(events))
    if violations:
        raise WorkerContractError("; ".join(violations))
