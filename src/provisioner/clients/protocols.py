"""
Collaborator contracts consumed by the pipeline.

Clients do not retry internally; the pipeline wraps every tracker,
deployment and completion call in ResilientCaller.
"""

from pathlib import Path
from typing import Optional, Protocol

from ..models.deployment_models import Server, Site, SiteInput
from ..models.tracker_models import (
    ContainerInput,
    ContainerPatch,
    GroupInput,
    ItemFilter,
    ItemInput,
    ItemPatch,
    LabelInput,
    RelationKind,
    TrackerContainer,
    TrackerGroup,
    TrackerItem,
    TrackerLabel,
)


class IssueTracker(Protocol):
    """Issue-tracking workspace (groups, containers, items, labels, relations)."""

    def get_group(self, group_id: str) -> TrackerGroup: ...

    def create_group(self, data: GroupInput) -> TrackerGroup: ...

    def list_items(self, item_filter: ItemFilter) -> list[TrackerItem]: ...

    def create_item(self, data: ItemInput) -> TrackerItem: ...

    def update_item(self, item_id: str, patch: ItemPatch) -> TrackerItem: ...

    def delete_item(self, item_id: str) -> None: ...

    def list_labels(self, group_id: str, name: Optional[str] = None) -> list[TrackerLabel]: ...

    def create_label(self, data: LabelInput) -> TrackerLabel: ...

    def delete_label(self, label_id: str) -> None: ...

    def create_relation(self, from_id: str, to_id: str, kind: RelationKind) -> None: ...

    def list_containers(self, group_id: str) -> list[TrackerContainer]: ...

    def get_container(self, container_id: str) -> TrackerContainer: ...

    def create_container(self, data: ContainerInput) -> TrackerContainer: ...

    def update_container(self, container_id: str, patch: ContainerPatch) -> TrackerContainer: ...


class CodeHost(Protocol):
    """Local repository plus its hosted remote."""

    def init(self, branch: str = "main") -> None: ...

    def commit_all(self, message: str) -> None: ...

    def add_remote(self, url: str) -> None: ...

    def remove_remote(self) -> None: ...

    def push(self, branch: str = "main") -> None: ...


class DeploymentPlatform(Protocol):
    """Server/site deployment platform."""

    def list_servers(self) -> list[Server]: ...

    def create_site(self, server_id: str, data: SiteInput) -> Site: ...

    def enable_tls(self, site: Site) -> None: ...

    def deploy(self, site: Site) -> None: ...


class CompletionService(Protocol):
    """Text completion service used for dependency inference."""

    def complete(self, prompt: str) -> str: ...


class ScaffoldRenderer(Protocol):
    """Writes the application boilerplate into the workspace."""

    def render(self, workspace: Path) -> None: ...


class DocsPublisher(Protocol):
    """Writes project documentation once ticketing is known."""

    def publish(self, workspace: Path, ids_by_title: dict[str, str]) -> None: ...
