"""Source bundle: the read-only catalog of skills and agents.

Example:
    >>> from agentic_skills.bundle import load_bundle
    >>> bundle = load_bundle(Path("/path/to/agentic-skills"))
    >>> len(bundle.skills), len(bundle.agents)
"""

from agentic_skills.bundle.loader import SourceBundle, get_packaged_bundle_dir, load_bundle
from agentic_skills.bundle.models import AgentUnit, SkillUnit

__all__ = [
    "AgentUnit",
    "SkillUnit",
    "SourceBundle",
    "get_packaged_bundle_dir",
    "load_bundle",
]
