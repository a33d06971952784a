"""Installer: plans and applies bundle deployments to target roots.

Example:
    >>> from agentic_skills.installer import InstallManager
    >>> manager = InstallManager()
    >>> manager.install(TargetSchema.CLAUDE)
"""

from agentic_skills.installer.doctor import CheckResult, DoctorReport, run_doctor
from agentic_skills.installer.manager import InstallManager, OperationReport
from agentic_skills.installer.plan import InstallPlan, build_plan
from agentic_skills.installer.source import is_git_url, resolve_source

__all__ = [
    "CheckResult",
    "DoctorReport",
    "InstallManager",
    "InstallPlan",
    "OperationReport",
    "build_plan",
    "is_git_url",
    "resolve_source",
    "run_doctor",
]
