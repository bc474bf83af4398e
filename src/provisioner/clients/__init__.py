"""Collaborator contracts and their concrete clients."""

from .protocols import (
    IssueTracker,
    CodeHost,
    DeploymentPlatform,
    CompletionService,
    ScaffoldRenderer,
    DocsPublisher,
)
from .linear_client import LinearAPIClient
from .git_remote import GitRemote, normalize_remote_url, repository_slug
from .forge_client import ForgeAPIClient
from .completion import OpenAICompletion

__all__ = [
    "IssueTracker",
    "CodeHost",
    "DeploymentPlatform",
    "CompletionService",
    "ScaffoldRenderer",
    "DocsPublisher",
    "LinearAPIClient",
    "GitRemote",
    "normalize_remote_url",
    "repository_slug",
    "ForgeAPIClient",
    "OpenAICompletion",
]
