"""Dependency inference prompt for the completion service."""

from ..models.work_item import WorkItem


DEPENDENCY_SYSTEM_PROMPT = """You are a software project manager planning the order of development tasks.

Answer ONLY with a JSON array. Do not wrap it in markdown and do not add commentary."""


def build_dependency_prompt(items: list[WorkItem]) -> str:
    """
    Build the prompt asking for a dependency list per task.

    Args:
        items: Work items to analyze (title, description, category, complexity)

    Returns:
        Prompt text constraining the answer to `[{"title", "dependencies"}]`
    """
    lines = ["Analyze these development tasks for dependencies:", ""]

    for idx, item in enumerate(items, start=1):
        lines.append(f"{idx}. {item.title}")
        lines.append(f"   Description: {item.description}")
        lines.append(f"   Category: {item.category.value}")
        lines.append(f"   Complexity: {item.complexity.value}")

    lines.extend([
        "",
        "Return ONLY a JSON array with this format:",
        "[",
        "  {",
        '    "title": "Task Title",',
        '    "dependencies": ["Dependency Title 1"]',
        "  }",
        "]",
        "",
        "Rules:",
        "- Use the exact task titles listed above",
        "- Infrastructure tasks first",
        "- Backend before frontend",
        "- Core before advanced features",
    ])

    return "\n".join(lines)
