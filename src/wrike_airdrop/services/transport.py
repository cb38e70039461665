"""
Callback transports that carry worker output back to the platform.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, Field

from ..core.config import DEFAULT_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class EmittedEvent(BaseModel):
    """An event as seen on the callback channel."""
    event_type: str
    data: Optional[Dict[str, Any]] = None
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CallbackTransport(ABC):
    """Where emitted events and repository uploads are delivered."""

    @abstractmethod
    def send_event(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Deliver an event; raise if delivery fails."""
        pass

    @abstractmethod
    def upload(self, item_type: str, items: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Upload a batch of repository items. Returns None on success, else an error dict."""
        pass

    @abstractmethod
    def upload_attachment(self, item: Dict[str, Any], response: requests.Response) -> Optional[Dict[str, Any]]:
        """Upload one attachment body. Returns None on success, else an error dict."""
        pass


class RecordingTransport(CallbackTransport):
    """In-memory transport for dry runs and tests."""

    def __init__(self):
        self.events: List[EmittedEvent] = []
        self.uploads: Dict[str, List[Dict[str, Any]]] = {}
        self.attachments: Dict[str, bytes] = {}

    def send_event(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.events.append(EmittedEvent(event_type=event_type, data=data))
        logger.info(f"Recorded event {event_type}")

    def upload(self, item_type: str, items: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        self.uploads.setdefault(item_type, []).extend(items)
        logger.info(f"Recorded upload of {len(items)} {item_type}")
        return None

    def upload_attachment(self, item: Dict[str, Any], response: requests.Response) -> Optional[Dict[str, Any]]:
        self.attachments[str(item.get("id"))] = b"".join(response.iter_content(chunk_size=8192))
        return None

    @property
    def event_types(self) -> List[str]:
        return [event.event_type for event in self.events]


class HttpCallbackTransport(CallbackTransport):
    """Delivers events to the sync run's callback URL and uploads to its worker data URL."""

    def __init__(self, callback_url: str, worker_data_url: Optional[str], service_account_token: str,
                 event_context: Optional[Dict[str, Any]] = None, timeout: int = DEFAULT_REQUEST_TIMEOUT):
        if not callback_url:
            raise ValueError("callback_url is required for HTTP callbacks")
        self.callback_url = callback_url
        self.worker_data_url = worker_data_url
        self.event_context = event_context or {}
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': service_account_token,
            'Content-Type': 'application/json',
        })

    @classmethod
    def from_event(cls, event: Dict[str, Any], timeout: int = DEFAULT_REQUEST_TIMEOUT) -> "HttpCallbackTransport":
        """Build a transport from a raw lifecycle event."""
        event_context = (event.get("payload") or {}).get("event_context") or {}
        token = ((event.get("context") or {}).get("secrets") or {}).get("service_account_token", "")
        return cls(
            callback_url=event_context.get("callback_url"),
            worker_data_url=event_context.get("worker_data_url"),
            service_account_token=token,
            event_context=event_context,
            timeout=timeout,
        )

    def send_event(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        body = {"event_type": event_type, "event_context": self.event_context}
        if data is not None:
            body["event_data"] = data
        logger.info(f"Posting {event_type} to callback URL")
        response = self.session.post(self.callback_url, json=body, timeout=self.timeout)
        response.raise_for_status()

    def _require_data_url(self) -> Optional[Dict[str, Any]]:
        if not self.worker_data_url:
            return {"message": "event_context.worker_data_url is not set"}
        return None

    def upload(self, item_type: str, items: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        missing = self._require_data_url()
        if missing:
            return missing
        try:
            response = self.session.post(
                self.worker_data_url,
                json={"item_type": item_type, "items": items},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Upload of {item_type} failed: {e}")
            return {"message": str(e)}
        if not response.ok:
            return {"status_code": response.status_code, "message": response.text}
        return None

    def upload_attachment(self, item: Dict[str, Any], response: requests.Response) -> Optional[Dict[str, Any]]:
        missing = self._require_data_url()
        if missing:
            return missing
        try:
            upload = self.session.post(
                f"{self.worker_data_url.rstrip('/')}/attachments",
                params={"id": item.get("id"), "file_name": item.get("file_name")},
                data=response.iter_content(chunk_size=8192),
                headers={'Content-Type': response.headers.get('Content-Type', 'application/octet-stream')},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Attachment upload for {item.get('id')} failed: {e}")
            return {"message": str(e)}
        if not upload.ok:
            return {"status_code": upload.status_code, "message": upload.text}
        return None
