"""
Services for the Wrike Airdrop snap-in.

The spawner lives in `services.spawner` and is imported from there, since it
depends on the workers package which itself uses these transports.
"""

from .transport import CallbackTransport, EmittedEvent, HttpCallbackTransport, RecordingTransport

__all__ = [
    "CallbackTransport",
    "EmittedEvent",
    "HttpCallbackTransport",
    "RecordingTransport",
]
