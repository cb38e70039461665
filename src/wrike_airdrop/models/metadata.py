"""
External Domain Metadata models: the shape of each Wrike record type as
presented to DevRev, including the task stage diagram.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FieldType(str, Enum):
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    TEXT = "text"
    RICH_TEXT = "rich_text"
    ENUM = "enum"
    DATE = "date"
    TIMESTAMP = "timestamp"
    REFERENCE = "reference"
    PERMISSION = "permission"
    STRUCT = "struct"


FIELD_TYPES = frozenset(field_type.value for field_type in FieldType)


class _Open(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class EnumValue(_Open):
    key: str
    name: Optional[str] = None


class EnumSpec(_Open):
    values: List[EnumValue] = Field(default_factory=list)


class ReferenceSpec(_Open):
    refers_to: Dict[str, Any] = Field(default_factory=dict)


class CollectionSpec(_Open):
    min_length: Optional[int] = None
    max_length: Optional[int] = None


class MetadataField(_Open):
    name: Optional[str] = None
    # Kept as a string so unknown types are reported by the validator with a path.
    type: str
    is_required: bool = False
    is_identifier: bool = False
    is_indexed: bool = False
    enum: Optional[EnumSpec] = None
    reference: Optional[ReferenceSpec] = None
    collection: Optional[CollectionSpec] = None


class Stage(_Open):
    transitions_to: List[str] = Field(default_factory=list)
    state: str


class State(_Open):
    name: str
    is_end_state: bool = False


class StageDiagram(_Open):
    controlling_field: str
    starting_stage: str
    all_transitions_allowed: bool = False
    stages: Dict[str, Stage]
    states: Dict[str, State]

    def reachable_stages(self) -> List[str]:
        """Stages reachable from the starting stage, in breadth-first order."""
        if self.starting_stage not in self.stages:
            return []
        if self.all_transitions_allowed:
            return list(self.stages)
        seen = [self.starting_stage]
        queue = [self.starting_stage]
        while queue:
            current = queue.pop(0)
            for target in self.stages[current].transitions_to:
                if target in self.stages and target not in seen:
                    seen.append(target)
                    queue.append(target)
        return seen


class RecordType(_Open):
    name: str
    description: Optional[str] = None
    fields: Dict[str, MetadataField] = Field(default_factory=dict)
    stage_diagram: Optional[StageDiagram] = None


class ExternalDomainMetadata(_Open):
    """Top level External Metadata Document."""
    schema_version: str
    record_types: Dict[str, RecordType] = Field(default_factory=dict)
