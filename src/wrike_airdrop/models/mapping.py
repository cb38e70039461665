"""
Domain Mapping Document models.

The document describes, per external record type, how source fields map onto
DevRev record fields. Models accept unknown keys so that platform-specific
attributes survive a parse/dump cycle untouched.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransformationMethod(str, Enum):
    """Closed vocabulary of field transformation methods."""
    USE_DIRECTLY = "use_directly"
    USE_RICH_TEXT = "use_rich_text"
    MAP_ENUM = "map_enum"
    USE_FIXED_VALUE = "use_fixed_value"
    FILTER_TYPED_REFERENCE = "filter_typed_reference"
    MAKE_AUTHORIZATION_TARGET = "make_authorization_target"
    MAKE_CUSTOM_LINKS = "make_custom_links"
    MAKE_CUSTOM_STAGES = "make_custom_stages"
    MAP_ROLES = "map_roles"
    USE_AS_ARRAY_VALUE = "use_as_array_value"
    USE_DEVREV_RECORD = "use_devrev_record"
    USE_FIRST_NON_NULL = "use_first_non_null"
    USE_RAW_JQ = "use_raw_jq"


TRANSFORMATION_METHODS = frozenset(method.value for method in TransformationMethod)


class _Open(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class LeafType(_Open):
    """A DevRev object category/type pair."""
    object_category: str
    object_type: str


class EnumTarget(_Open):
    value: Any = None


class TransformationMethodForSet(_Open):
    """How a field value is computed; payload keys depend on the method."""
    # Kept as a string so unknown methods are reported by the validator with a path.
    transformation_method: str
    forward: Optional[Dict[str, EnumTarget]] = None
    reverse: Optional[Dict[str, EnumTarget]] = None
    value: Any = None


class FieldMapping(_Open):
    forward: bool = True
    reverse: bool = True
    primary_external_field: Optional[str] = None
    transformation_method_for_set: Optional[TransformationMethodForSet] = None

    @property
    def method(self) -> Optional[str]:
        if self.transformation_method_for_set is None:
            return None
        return self.transformation_method_for_set.transformation_method


class Shard(_Open):
    mode: str
    devrev_leaf_type: LeafType
    stock_field_mappings: Dict[str, FieldMapping] = Field(default_factory=dict)


class PossibleMapping(_Open):
    devrev_leaf_type: LeafType
    forward: bool = True
    reverse: bool = True
    shard: Shard


class CustomObjectMapping(_Open):
    forward: bool = True
    reverse: bool = True
    shard: Optional[Shard] = None


class RecordTypeMapping(_Open):
    default_mapping: LeafType
    possible_record_type_mappings: List[PossibleMapping] = Field(default_factory=list)
    mapping_as_custom_object: Optional[CustomObjectMapping] = None

    def iter_shards(self):
        """Yield (location, shard) for every shard in this record type mapping."""
        for index, possible in enumerate(self.possible_record_type_mappings):
            yield f"possible_record_type_mappings[{index}].shard", possible.shard
        if self.mapping_as_custom_object is not None and self.mapping_as_custom_object.shard is not None:
            yield "mapping_as_custom_object.shard", self.mapping_as_custom_object.shard


class AdditionalMappings(_Open):
    record_type_mappings: Dict[str, RecordTypeMapping] = Field(default_factory=dict)


class DomainMapping(_Open):
    """Top level Domain Mapping Document."""
    format_version: str
    devrev_metadata_version: int
    additional_mappings: AdditionalMappings

    @property
    def record_type_mappings(self) -> Dict[str, RecordTypeMapping]:
        return self.additional_mappings.record_type_mappings

    def iter_field_mappings(self):
        """Yield (path, field name, FieldMapping) for every stock field mapping."""
        for record_type, mapping in self.record_type_mappings.items():
            base = f"additional_mappings.record_type_mappings.{record_type}"
            for location, shard in mapping.iter_shards():
                for field_name, field_mapping in shard.stock_field_mappings.items():
                    yield f"{base}.{location}.stock_field_mappings.{field_name}", field_name, field_mapping
