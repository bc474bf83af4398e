"""Starter files written into a new workspace, and the work-item docs page."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

GITIGNORE = """/vendor/
/node_modules/
/public/build/
/storage/*.key
.env
.env.backup
.phpunit.result.cache
npm-debug.log
.DS_Store
"""


class StarterScaffold:
    """Minimal scaffold: README, .gitignore and .env.example."""

    def __init__(self, app_name: str, description: str = ""):
        self.app_name = app_name
        self.description = description

    def render(self, workspace: Path) -> None:
        workspace = Path(workspace)
        (workspace / "README.md").write_text(
            f"# {self.app_name}\n\n{self.description}\n", encoding="utf-8"
        )
        (workspace / ".gitignore").write_text(GITIGNORE, encoding="utf-8")
        (workspace / ".env.example").write_text(
            f"APP_NAME={self.app_name}\nAPP_ENV=local\nAPP_DEBUG=true\nDB_DATABASE={self.app_name.replace('-', '_')}\n",
            encoding="utf-8",
        )
        logger.info(f"Wrote starter files to {workspace}")


class WorkItemDocsPublisher:
    """Writes docs/WORK_ITEMS.md listing the tracked items."""

    def __init__(self, tracker_url: str = "https://linear.app/issue"):
        self.tracker_url = tracker_url.rstrip("/")

    def publish(self, workspace: Path, ids_by_title: dict[str, str]) -> None:
        docs_dir = Path(workspace) / "docs"
        docs_dir.mkdir(parents=True, exist_ok=True)

        lines = ["# Work Items", ""]
        if not ids_by_title:
            lines.append("No work items are tracked for this application.")
        for title, item_id in ids_by_title.items():
            lines.append(f"- [{title}]({self.tracker_url}/{item_id})")

        filepath = docs_dir / "WORK_ITEMS.md"
        filepath.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.info(f"Wrote {filepath}")
