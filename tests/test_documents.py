"""Tests for packaged document loading."""

import json

import pytest

from wrike_airdrop.engine.documents import (
    EXTERNAL_DOMAIN_METADATA_PATH, INITIAL_DOMAIN_MAPPING_PATH,
    load_external_domain_metadata, load_initial_domain_mapping, load_json_document,
)
from wrike_airdrop.exceptions import DocumentLoadError, DocumentValidationError


def test_packaged_documents_exist():
    assert INITIAL_DOMAIN_MAPPING_PATH.exists()
    assert EXTERNAL_DOMAIN_METADATA_PATH.exists()


def test_load_packaged_mapping():
    document = load_initial_domain_mapping()

    assert document["format_version"]
    assert "tasks" in document["additional_mappings"]["record_type_mappings"]


def test_load_packaged_metadata():
    document = load_external_domain_metadata()

    assert document["schema_version"] == "v0.2.0"


def test_missing_file(tmp_path):
    with pytest.raises(DocumentLoadError, match="Document not found"):
        load_json_document(tmp_path / "missing.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")

    with pytest.raises(DocumentLoadError, match="not valid JSON"):
        load_json_document(path)


def test_not_an_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2, 3]")

    with pytest.raises(DocumentLoadError, match="must contain a JSON object"):
        load_json_document(path)


def test_structurally_invalid_mapping(tmp_path):
    path = tmp_path / "mapping.json"
    path.write_text(json.dumps({"format_version": "v1"}))

    with pytest.raises(DocumentValidationError):
        load_initial_domain_mapping(path)
