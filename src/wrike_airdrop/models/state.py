"""
Per-phase worker state models.

Field names are serialized in camelCase because that is the shape the
platform persists and hands back to the worker.
"""

from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field


class PhaseState(BaseModel):
    """State shared by every phase: a completion flag."""
    model_config = ConfigDict(populate_by_name=True)

    completed: bool = False

    def to_state(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ProgressFlag(PhaseState):
    """Completion flag for a single item type within the data phase."""
    pass


class ExternalSyncUnitsState(PhaseState):
    space_id: str = Field(..., alias="spaceId")
    api_key: str = Field(..., alias="apiKey")


class MetadataState(PhaseState):
    pass


class DataState(PhaseState):
    space_id: str = Field(..., alias="spaceId")
    api_key: str = Field(..., alias="apiKey")
    project_id: str = Field(..., alias="projectId")
    users: ProgressFlag = Field(default_factory=ProgressFlag)
    tasks: ProgressFlag = Field(default_factory=ProgressFlag)


class AttachmentsState(PhaseState):
    space_id: str = Field(..., alias="spaceId")
    api_key: str = Field(..., alias="apiKey")
    project_id: str = Field(..., alias="projectId")
