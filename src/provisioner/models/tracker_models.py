"""Issue tracker data models (groups, containers, items, labels)."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class RelationKind(str, Enum):
    """Relation types understood by the tracker."""

    BLOCKS = "blocks"


class TrackerGroup(BaseModel):
    """Top-level organizational unit (a team)."""

    id: str
    name: str
    key: str = ""


class TrackerContainer(BaseModel):
    """Grouping entity for work items (a project)."""

    id: str
    name: str
    state: str = "planned"


class TrackerLabel(BaseModel):
    """Issue label scoped to a group."""

    id: str
    name: str
    group_id: Optional[str] = None
    color: Optional[str] = None


class TrackerWorkflowState(BaseModel):
    """Workflow state (column) of a group."""

    id: str
    name: str
    type: str  # backlog, unstarted, started, completed, canceled


class TrackerItem(BaseModel):
    """
    Work item as returned by the tracker.

    `labels` holds label names; label ids are only needed on create.
    """

    id: str
    title: str
    description: str = ""
    priority: int = 0
    labels: list[str] = Field(default_factory=list)
    container_id: Optional[str] = None
    state: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def empty_description(cls, v: Any) -> str:
        """Tracker returns null for items without a description."""
        return v or ""


class ItemFilter(BaseModel):
    """Filter for listing items. `no_container` selects orphans."""

    group_id: Optional[str] = None
    container_id: Optional[str] = None
    no_container: bool = False
    limit: int = 250


class ItemInput(BaseModel):
    """Payload for creating an item."""

    title: str
    description: str = ""
    priority: int = 0
    group_id: str
    container_id: Optional[str] = None
    label_ids: list[str] = Field(default_factory=list)


class ItemPatch(BaseModel):
    """Partial update for an item. `state_type` is resolved to a state id by the client."""

    container_id: Optional[str] = None
    state_type: Optional[str] = None


class LabelInput(BaseModel):
    """Payload for creating a label."""

    name: str
    group_id: str


class ContainerInput(BaseModel):
    """Payload for creating a container."""

    name: str
    group_id: str
    description: str = ""
    state: str = "planned"


class ContainerPatch(BaseModel):
    """Partial update for a container."""

    name: Optional[str] = None
    state: Optional[str] = None


class GroupInput(BaseModel):
    """Payload for creating a group."""

    name: str
    description: str = ""
