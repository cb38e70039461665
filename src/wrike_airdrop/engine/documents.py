"""
Loading of the packaged Domain Mapping and External Metadata documents.

Both documents are static configuration shipped with the package. A missing
or malformed file is a packaging defect, so failures are reported as
DocumentError and never retried.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..exceptions import DocumentLoadError
from .mapping_validator import validate_domain_mapping
from .metadata_validator import validate_external_domain_metadata

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
INITIAL_DOMAIN_MAPPING_PATH = DATA_DIR / "initial_domain_mapping.json"
EXTERNAL_DOMAIN_METADATA_PATH = DATA_DIR / "external_domain_metadata.json"


def load_json_document(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a JSON document from disk.

    Raises:
        DocumentLoadError: If the file is missing, unreadable or not a JSON object
    """
    path = Path(path)
    if not path.exists():
        raise DocumentLoadError(f"Document not found at {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise DocumentLoadError(f"Document at {path} is not valid JSON: {e}")
    except OSError as e:
        raise DocumentLoadError(f"Could not read document at {path}: {e}")

    if not isinstance(document, dict):
        raise DocumentLoadError(f"Document at {path} must contain a JSON object")

    logger.debug(f"Loaded document from {path}")
    return document


def load_initial_domain_mapping(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load and validate the Domain Mapping Document, returning it as plain JSON data."""
    document = load_json_document(path or INITIAL_DOMAIN_MAPPING_PATH)
    validate_domain_mapping(document)
    return document


def load_external_domain_metadata(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load and validate the External Metadata Document, returning it as plain JSON data."""
    document = load_json_document(path or EXTERNAL_DOMAIN_METADATA_PATH)
    validate_external_domain_metadata(document)
    return document
