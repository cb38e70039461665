"""
Structural validation for the Domain Mapping Document.

Runs before any worker is spawned so a malformed document is rejected
locally instead of failing inside the platform.
"""

import logging
from typing import Any, Dict, Tuple, Optional

from pydantic import ValidationError

from ..models.mapping import (
    DomainMapping, FieldMapping, TransformationMethod, TRANSFORMATION_METHODS,
)
from ..models.validation import ValidationReport

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "Initial domain mapping"


def report_pydantic_errors(report: ValidationReport, error: ValidationError) -> None:
    """Copy pydantic parse errors into a report as dotted-path issues."""
    for detail in error.errors():
        path = ".".join(str(part) for part in detail.get("loc", ()))
        report.error(path, detail.get("msg", "invalid value"))


def check_enum_mapping(report: ValidationReport, path: str, field_mapping: FieldMapping) -> None:
    """map_enum needs forward and reverse tables that are exact inverses."""
    tmfs = field_mapping.transformation_method_for_set
    forward = tmfs.forward
    reverse = tmfs.reverse

    if not forward:
        report.error(f"{path}.forward", "map_enum requires a non-empty forward table")
    if not reverse:
        report.error(f"{path}.reverse", "map_enum requires a non-empty reverse table")
    if not forward or not reverse:
        return

    for source_value, target in forward.items():
        target_value = target.value
        if target_value is None:
            report.error(f"{path}.forward.{source_value}", "forward entry has no value")
            continue
        back = reverse.get(str(target_value))
        if back is None:
            report.error(
                f"{path}.forward.{source_value}",
                f"'{target_value}' has no reverse entry (one-way mapping)"
            )
        elif back.value != source_value:
            report.error(
                f"{path}.reverse.{target_value}",
                f"reverse maps back to '{back.value}', expected '{source_value}'"
            )

    for target_value, source in reverse.items():
        source_value = source.value
        if source_value is None:
            report.error(f"{path}.reverse.{target_value}", "reverse entry has no value")
            continue
        if str(source_value) not in forward:
            report.error(
                f"{path}.reverse.{target_value}",
                f"'{source_value}' is not a declared forward source value (dangling reverse entry)"
            )


def check_field_mapping(report: ValidationReport, path: str, field_mapping: FieldMapping) -> None:
    method = field_mapping.method
    if method is None:
        return

    tmfs_path = f"{path}.transformation_method_for_set"
    if method not in TRANSFORMATION_METHODS:
        report.error(f"{tmfs_path}.transformation_method", f"unknown transformation_method '{method}'")
        return

    if method == TransformationMethod.MAP_ENUM.value:
        check_enum_mapping(report, tmfs_path, field_mapping)
    elif method == TransformationMethod.USE_FIXED_VALUE.value:
        if field_mapping.transformation_method_for_set.value is None:
            report.error(f"{tmfs_path}.value", "use_fixed_value requires a non-null value")


def check_domain_mapping(document: Any) -> Tuple[Optional[DomainMapping], ValidationReport]:
    """
    Parse and check a mapping document without raising.

    Returns:
        The parsed document (None when it does not parse) and the report.
    """
    report = ValidationReport(document=DOCUMENT_NAME)

    if not isinstance(document, dict):
        report.error("", f"document must be a JSON object, got {type(document).__name__}")
        return None, report

    try:
        mapping = DomainMapping.model_validate(document)
    except ValidationError as e:
        report_pydantic_errors(report, e)
        return None, report

    if not mapping.record_type_mappings:
        report.warn("additional_mappings.record_type_mappings", "no record types are mapped")

    for record_type, record_mapping in mapping.record_type_mappings.items():
        base = f"additional_mappings.record_type_mappings.{record_type}"
        if not record_mapping.possible_record_type_mappings:
            report.warn(f"{base}.possible_record_type_mappings", "no possible record type mappings")
        for location, shard in record_mapping.iter_shards():
            if not shard.stock_field_mappings:
                report.warn(f"{base}.{location}.stock_field_mappings", "shard maps no fields")

    for path, _field_name, field_mapping in mapping.iter_field_mappings():
        check_field_mapping(report, path, field_mapping)

    for warning in report.warnings:
        logger.warning(f"{DOCUMENT_NAME} lint: {warning}")

    return mapping, report


def validate_domain_mapping(document: Dict[str, Any]) -> DomainMapping:
    """
    Validate a mapping document.

    Raises:
        DocumentValidationError: If the document violates any structural rule
    """
    mapping, report = check_domain_mapping(document)
    report.raise_for_errors()
    return mapping
