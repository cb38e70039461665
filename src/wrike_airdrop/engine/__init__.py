"""
Extraction engine: state builders, document validation and record
normalization. The event router lives in `engine.router`.
"""

from .state import build_initial_state
from .documents import load_initial_domain_mapping, load_external_domain_metadata

__all__ = [
    "build_initial_state",
    "load_initial_domain_mapping",
    "load_external_domain_metadata",
]
