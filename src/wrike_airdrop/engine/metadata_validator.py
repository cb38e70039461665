"""
Structural validation for the External Metadata Document.
"""

import logging
from typing import Any, Optional, Tuple

from pydantic import ValidationError

from ..models.metadata import (
    ExternalDomainMetadata, FieldType, FIELD_TYPES, MetadataField, RecordType, StageDiagram,
)
from ..models.validation import ValidationReport
from .mapping_validator import report_pydantic_errors

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "External domain metadata"
RECORD_REFERENCE_PREFIX = "#record:"


def check_field(report: ValidationReport, path: str, field: MetadataField, metadata: ExternalDomainMetadata) -> None:
    if field.type not in FIELD_TYPES:
        report.error(f"{path}.type", f"unknown field type '{field.type}'")
        return

    if field.type == FieldType.ENUM.value:
        values = field.enum.values if field.enum else []
        if not values:
            report.error(f"{path}.enum.values", "enum field declares no values")
        keys = [value.key for value in values]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            report.error(f"{path}.enum.values", f"duplicate enum keys: {', '.join(duplicates)}")

    elif field.type == FieldType.REFERENCE.value:
        refers_to = field.reference.refers_to if field.reference else {}
        if not refers_to:
            report.error(f"{path}.reference.refers_to", "reference field does not name a target")
        for target in refers_to:
            if target.startswith(RECORD_REFERENCE_PREFIX):
                record_type = target[len(RECORD_REFERENCE_PREFIX):]
                if record_type not in metadata.record_types:
                    report.error(
                        f"{path}.reference.refers_to",
                        f"'{target}' does not resolve to a declared record type"
                    )


def check_stage_diagram(report: ValidationReport, path: str, record_type: RecordType) -> None:
    diagram: StageDiagram = record_type.stage_diagram

    controlling = record_type.fields.get(diagram.controlling_field)
    if controlling is None:
        report.error(f"{path}.controlling_field", f"'{diagram.controlling_field}' is not a field of this record type")
    elif controlling.type != FieldType.ENUM.value:
        report.error(f"{path}.controlling_field", f"'{diagram.controlling_field}' must be an enum field")

    if not diagram.stages:
        report.error(f"{path}.stages", "stage diagram declares no stages")
        return

    if diagram.starting_stage not in diagram.stages:
        report.error(f"{path}.starting_stage", f"'{diagram.starting_stage}' is not a declared stage")

    for stage_name, stage in diagram.stages.items():
        stage_path = f"{path}.stages.{stage_name}"
        for target in stage.transitions_to:
            if target not in diagram.stages:
                report.error(f"{stage_path}.transitions_to", f"'{target}' is not a declared stage")
        if stage.state not in diagram.states:
            report.error(f"{stage_path}.state", f"'{stage.state}' is not a declared state")

    # Lints below never fail the document.
    if controlling is not None and controlling.enum is not None:
        enum_keys = {value.key for value in controlling.enum.values}
        for stage_name in diagram.stages:
            if stage_name not in enum_keys:
                report.warn(f"{path}.stages.{stage_name}", f"stage is not a value of '{diagram.controlling_field}'")

    end_states = {name for name, state in diagram.states.items() if state.is_end_state}
    if not end_states:
        report.warn(f"{path}.states", "no state is marked is_end_state")
        return

    reachable = diagram.reachable_stages()
    if diagram.starting_stage in diagram.stages:
        unreachable = [name for name in diagram.stages if name not in reachable]
        if unreachable:
            report.warn(f"{path}.stages", f"unreachable from starting stage: {', '.join(unreachable)}")
        if not any(diagram.stages[name].state in end_states for name in reachable):
            report.warn(f"{path}.states", "no end state is reachable from the starting stage")


def check_external_domain_metadata(document: Any) -> Tuple[Optional[ExternalDomainMetadata], ValidationReport]:
    """Parse and check a metadata document without raising."""
    report = ValidationReport(document=DOCUMENT_NAME)

    if not isinstance(document, dict):
        report.error("", f"document must be a JSON object, got {type(document).__name__}")
        return None, report

    try:
        metadata = ExternalDomainMetadata.model_validate(document)
    except ValidationError as e:
        report_pydantic_errors(report, e)
        return None, report

    if not metadata.record_types:
        report.warn("record_types", "no record types are declared")

    for record_name, record_type in metadata.record_types.items():
        base = f"record_types.{record_name}"
        if not record_type.fields:
            report.warn(f"{base}.fields", "record type declares no fields")
        for field_name, field in record_type.fields.items():
            check_field(report, f"{base}.fields.{field_name}", field, metadata)
        if record_type.stage_diagram is not None:
            check_stage_diagram(report, f"{base}.stage_diagram", record_type)

    for warning in report.warnings:
        logger.warning(f"{DOCUMENT_NAME} lint: {warning}")

    return metadata, report


def validate_external_domain_metadata(document: Any) -> ExternalDomainMetadata:
    """
    Validate a metadata document.

    Raises:
        DocumentValidationError: If the document violates any structural rule
    """
    metadata, report = check_external_domain_metadata(document)
    report.raise_for_errors()
    return metadata
