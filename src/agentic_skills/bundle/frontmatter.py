"""YAML front matter parsing and rendering.

Skill (``SKILL.md``) and agent definitions share one format:

```yaml
---
name: software-architect
description: Designs systems
tools: Read, Grep, Glob
model: sonnet
---

# Markdown body...
```

Rendering is deterministic (insertion order, no line wrapping) so converting
the same unit twice yields byte-identical output.
"""

import re
from typing import Any

import yaml

from agentic_skills.exceptions import BundleError

_FRONTMATTER_PATTERN = re.compile(r"^---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n(.*))?\Z", re.DOTALL)

# Large enough that PyYAML never folds a long description onto several lines
_NO_WRAP = 2**31 - 1


def extract_yaml_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Extract YAML front matter from a markdown document.

    Args:
        content: Full document content

    Returns:
        Tuple of (yaml_data, markdown_body); the body keeps its original text
        apart from the blank lines directly after the closing marker

    Raises:
        BundleError: If YAML front matter is missing or malformed
    """
    match = _FRONTMATTER_PATTERN.match(content)

    if not match:
        raise BundleError("Document must start with YAML front matter delimited by '---' markers")

    yaml_content = match.group(1)
    body = (match.group(2) or "").lstrip("\r\n")

    try:
        yaml_data = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise BundleError(f"Invalid YAML front matter: {e}") from e

    if yaml_data is None:
        yaml_data = {}
    if not isinstance(yaml_data, dict):
        raise BundleError("YAML front matter must be a dictionary")

    return yaml_data, body


def render_frontmatter(fields: dict[str, Any], body: str) -> str:
    """Render front matter fields and a markdown body into one document.

    Args:
        fields: Ordered front matter mapping (None values are dropped)
        body: Markdown body

    Returns:
        Document text ending with a single newline
    """
    data = {key: value for key, value in fields.items() if value is not None}
    header = yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=_NO_WRAP,
    )
    text = f"---\n{header}---\n"
    body = body.strip("\n")
    if body:
        text += f"\n{body}\n"
    return text


def fold_description(description: str) -> str:
    """Fold a description to its single-line form.

    Examples:
        >>> fold_description("Designs systems.\\n  Reviews   plans.")
        'Designs systems. Reviews plans.'
    """
    return " ".join(description.split())
