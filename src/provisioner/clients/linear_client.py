"""
Linear GraphQL client implementing the IssueTracker contract.

Purpose:
- Typed access to teams (groups), projects (containers), issues (items),
  labels and issue relations
- Parse raw GraphQL payloads into tracker models
- Rate limit outgoing requests

Retries are NOT performed here; the pipeline wraps every call in
ResilientCaller.
"""

import logging
from typing import Any, Optional

import requests

from ..errors import TrackerAPIError
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
    TrackerWorkflowState,
)
from ..utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

LINEAR_API_URL = "https://api.linear.app/graphql"

ISSUE_FIELDS = """
    id
    title
    description
    priority
    project { id }
    state { id name type }
    labels { nodes { id name } }
"""

TEAM_QUERY = """
query Team($id: String!) {
  team(id: $id) { id name key }
}
"""

TEAM_CREATE = """
mutation TeamCreate($input: TeamCreateInput!) {
  teamCreate(input: $input) { success team { id name key } }
}
"""

ISSUES_QUERY = f"""
query Issues($filter: IssueFilter, $first: Int) {{
  issues(filter: $filter, first: $first) {{ nodes {{ {ISSUE_FIELDS} }} }}
}}
"""

ISSUE_CREATE = f"""
mutation IssueCreate($input: IssueCreateInput!) {{
  issueCreate(input: $input) {{ success issue {{ {ISSUE_FIELDS} }} }}
}}
"""

ISSUE_UPDATE = f"""
mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {{
  issueUpdate(id: $id, input: $input) {{ success issue {{ {ISSUE_FIELDS} }} }}
}}
"""

ISSUE_DELETE = """
mutation IssueDelete($id: String!) {
  issueDelete(id: $id) { success }
}
"""

ISSUE_TEAM_STATES = """
query IssueTeamStates($id: String!) {
  issue(id: $id) { team { states { nodes { id name type } } } }
}
"""

LABELS_QUERY = """
query IssueLabels($filter: IssueLabelFilter) {
  issueLabels(filter: $filter, first: 250) { nodes { id name color team { id } } }
}
"""

LABEL_CREATE = """
mutation IssueLabelCreate($input: IssueLabelCreateInput!) {
  issueLabelCreate(input: $input) { success issueLabel { id name color team { id } } }
}
"""

LABEL_DELETE = """
mutation IssueLabelDelete($id: String!) {
  issueLabelDelete(id: $id) { success }
}
"""

RELATION_CREATE = """
mutation IssueRelationCreate($input: IssueRelationCreateInput!) {
  issueRelationCreate(input: $input) { success }
}
"""

PROJECTS_QUERY = """
query TeamProjects($id: String!) {
  team(id: $id) { projects(first: 250) { nodes { id name state } } }
}
"""

PROJECT_QUERY = """
query Project($id: String!) {
  project(id: $id) { id name state }
}
"""

PROJECT_CREATE = """
mutation ProjectCreate($input: ProjectCreateInput!) {
  projectCreate(input: $input) { success project { id name state } }
}
"""

PROJECT_UPDATE = """
mutation ProjectUpdate($id: String!, $input: ProjectUpdateInput!) {
  projectUpdate(id: $id, input: $input) { success project { id name state } }
}
"""


class LinearAPIClient:
    """Linear GraphQL API client with rate limiting."""

    def __init__(
        self,
        api_key: str,
        api_url: str = LINEAR_API_URL,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Initialize Linear client.

        Args:
            api_key: Personal API key (sent as-is in the Authorization header)
            api_url: GraphQL endpoint
            session: Pre-configured session (tests inject a mock)
            rate_limiter: Shared limiter; defaults to 10 req/s with bursts of 20
        """
        self.api_url = api_url
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": api_key,
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        self._rate_limiter = rate_limiter or RateLimiter(requests_per_second=10.0, burst_size=20)

    def _request(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Run a rate-limited GraphQL request and return its `data` payload."""
        self._rate_limiter.acquire_sync()

        try:
            response = self.session.post(
                self.api_url,
                json={"query": query, "variables": variables or {}},
                timeout=(5, 30),
            )
        except requests.exceptions.RequestException as e:
            raise TrackerAPIError(f"Linear request failed: {e}") from e

        if response.status_code >= 400:
            raise TrackerAPIError(
                f"Linear API returned {response.status_code}: {response.text[:300]}",
                status_code=response.status_code,
            )

        payload = response.json()
        if payload.get("errors"):
            messages = "; ".join(err.get("message", "unknown error") for err in payload["errors"])
            raise TrackerAPIError(f"Linear API error: {messages}", status_code=response.status_code)

        return payload.get("data") or {}

    def _mutate(self, query: str, variables: dict[str, Any], root: str) -> dict[str, Any]:
        """Run a mutation and fail on `success: false`."""
        result = self._request(query, variables).get(root) or {}
        if not result.get("success", False):
            raise TrackerAPIError(f"Linear mutation {root} was not successful")
        return result

    # Groups

    def get_group(self, group_id: str) -> TrackerGroup:
        team = self._request(TEAM_QUERY, {"id": group_id}).get("team")
        if not team:
            raise TrackerAPIError(f"Team not found: {group_id}", status_code=404)
        return TrackerGroup(**team)

    def create_group(self, data: GroupInput) -> TrackerGroup:
        result = self._mutate(
            TEAM_CREATE,
            {"input": {"name": data.name, "description": data.description}},
            "teamCreate",
        )
        return TrackerGroup(**result["team"])

    # Items

    def list_items(self, item_filter: ItemFilter) -> list[TrackerItem]:
        variables = {"filter": _issue_filter(item_filter), "first": item_filter.limit}
        nodes = (self._request(ISSUES_QUERY, variables).get("issues") or {}).get("nodes", [])
        return [_parse_issue(node) for node in nodes]

    def create_item(self, data: ItemInput) -> TrackerItem:
        issue_input: dict[str, Any] = {
            "title": data.title,
            "description": data.description,
            "priority": data.priority,
            "teamId": data.group_id,
        }
        if data.container_id:
            issue_input["projectId"] = data.container_id
        if data.label_ids:
            issue_input["labelIds"] = data.label_ids

        result = self._mutate(ISSUE_CREATE, {"input": issue_input}, "issueCreate")
        return _parse_issue(result["issue"])

    def update_item(self, item_id: str, patch: ItemPatch) -> TrackerItem:
        issue_input: dict[str, Any] = {}
        if patch.container_id:
            issue_input["projectId"] = patch.container_id
        if patch.state_type:
            issue_input["stateId"] = self._state_id_for(item_id, patch.state_type)

        result = self._mutate(ISSUE_UPDATE, {"id": item_id, "input": issue_input}, "issueUpdate")
        return _parse_issue(result["issue"])

    def delete_item(self, item_id: str) -> None:
        self._mutate(ISSUE_DELETE, {"id": item_id}, "issueDelete")

    def list_workflow_states(self, item_id: str) -> list[TrackerWorkflowState]:
        """Workflow states of the team owning `item_id`."""
        issue = self._request(ISSUE_TEAM_STATES, {"id": item_id}).get("issue") or {}
        nodes = ((issue.get("team") or {}).get("states") or {}).get("nodes", [])
        return [TrackerWorkflowState(**node) for node in nodes]

    def _state_id_for(self, item_id: str, state_type: str) -> str:
        for state in self.list_workflow_states(item_id):
            if state.type == state_type:
                return state.id
        raise TrackerAPIError(f"No workflow state of type '{state_type}' for issue {item_id}")

    # Labels

    def list_labels(self, group_id: str, name: Optional[str] = None) -> list[TrackerLabel]:
        label_filter: dict[str, Any] = {"team": {"id": {"eq": group_id}}}
        if name is not None:
            label_filter["name"] = {"eq": name}
        nodes = (self._request(LABELS_QUERY, {"filter": label_filter}).get("issueLabels") or {}).get("nodes", [])
        return [_parse_label(node) for node in nodes]

    def create_label(self, data: LabelInput) -> TrackerLabel:
        result = self._mutate(
            LABEL_CREATE,
            {"input": {"name": data.name, "teamId": data.group_id}},
            "issueLabelCreate",
        )
        return _parse_label(result["issueLabel"])

    def delete_label(self, label_id: str) -> None:
        self._mutate(LABEL_DELETE, {"id": label_id}, "issueLabelDelete")

    # Relations

    def create_relation(self, from_id: str, to_id: str, kind: RelationKind) -> None:
        """Create `from_id <kind> to_id`, e.g. from_id blocks to_id."""
        self._mutate(
            RELATION_CREATE,
            {"input": {"issueId": from_id, "relatedIssueId": to_id, "type": kind.value}},
            "issueRelationCreate",
        )

    # Containers

    def list_containers(self, group_id: str) -> list[TrackerContainer]:
        team = self._request(PROJECTS_QUERY, {"id": group_id}).get("team") or {}
        nodes = (team.get("projects") or {}).get("nodes", [])
        return [TrackerContainer(**node) for node in nodes]

    def get_container(self, container_id: str) -> TrackerContainer:
        project = self._request(PROJECT_QUERY, {"id": container_id}).get("project")
        if not project:
            raise TrackerAPIError(f"Project not found: {container_id}", status_code=404)
        return TrackerContainer(**project)

    def create_container(self, data: ContainerInput) -> TrackerContainer:
        project_input: dict[str, Any] = {
            "name": data.name,
            "teamIds": [data.group_id],
            "state": data.state,
        }
        if data.description:
            project_input["description"] = data.description

        result = self._mutate(PROJECT_CREATE, {"input": project_input}, "projectCreate")
        return TrackerContainer(**result["project"])

    def update_container(self, container_id: str, patch: ContainerPatch) -> TrackerContainer:
        project_input = patch.model_dump(exclude_none=True)
        result = self._mutate(PROJECT_UPDATE, {"id": container_id, "input": project_input}, "projectUpdate")
        return TrackerContainer(**result["project"])


def _issue_filter(item_filter: ItemFilter) -> dict[str, Any]:
    """Translate an ItemFilter into a Linear IssueFilter."""
    result: dict[str, Any] = {}
    if item_filter.group_id:
        result["team"] = {"id": {"eq": item_filter.group_id}}
    if item_filter.container_id:
        result["project"] = {"id": {"eq": item_filter.container_id}}
    elif item_filter.no_container:
        result["project"] = {"null": True}
    return result


def _parse_issue(node: dict[str, Any]) -> TrackerItem:
    """Parse a raw issue node into a TrackerItem."""
    project = node.get("project") or {}
    state = node.get("state") or {}
    labels = (node.get("labels") or {}).get("nodes", [])
    return TrackerItem(
        id=node["id"],
        title=node.get("title", ""),
        description=node.get("description"),
        priority=node.get("priority") or 0,
        labels=[label.get("name", "") for label in labels],
        container_id=project.get("id"),
        state=state.get("type"),
    )


def _parse_label(node: dict[str, Any]) -> TrackerLabel:
    team = node.get("team") or {}
    return TrackerLabel(
        id=node["id"],
        name=node.get("name", ""),
        group_id=team.get("id"),
        color=node.get("color"),
    )
