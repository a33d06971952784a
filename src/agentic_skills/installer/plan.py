"""Install planning: compute everything an operation would write.

A plan is built entirely in memory from the bundle and the current host
state. Nothing is written until the plan has been fully computed, so
validation errors and unparseable settings documents abort before any file
is touched.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from agentic_skills.bundle.loader import SourceBundle
from agentic_skills.exceptions import InstallValidationError, SchemaViolation
from agentic_skills.hooks import bridge_source
from agentic_skills.manifest import Manifest, Scope
from agentic_skills.settings.merger import build_hooks_fragment, merge, read_settings, unmerge
from agentic_skills.targets.convert import DocumentSection, convert, render_single_document
from agentic_skills.targets.schema import SINGLE_DOCUMENT_NAME, TargetSchema, get_layout

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp used for ``installed_at``."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class InstallPlan:
    """Files, manifest entries and settings content for one target root.

    Attributes:
        schema: Target schema
        root: Target root directory
        scope: Install scope
        files: Root-relative file path -> content for every governed file
        skills: Skill names that converted successfully
        agents: Agent names that converted successfully
        hooks: True if the bridge and settings fragment are deployed
        plugin_files: Root-relative bridge artifact paths
        violations: Units skipped because they violate the schema
        settings_path: Host settings document (None if untouched)
        settings: Settings content to write (None if untouched)
        settings_changed: True if settings must be written
    """

    schema: TargetSchema
    root: Path
    scope: Scope
    files: dict[str, bytes] = field(default_factory=dict)
    skills: list[str] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)
    hooks: bool = False
    plugin_files: list[str] = field(default_factory=list)
    violations: list[SchemaViolation] = field(default_factory=list)
    settings_path: Path | None = None
    settings: dict[str, Any] | None = None
    settings_changed: bool = False

    def manifest(
        self, version: str | None, installed_at: str | None, source: str | None
    ) -> Manifest:
        """Build the manifest recording this plan."""
        return Manifest(
            target=self.schema,
            scope=self.scope,
            version=version,
            installed_at=installed_at or utc_timestamp(),
            source=source,
            skills=self.skills,
            agents=self.agents,
            hooks=self.hooks,
            plugin_files=self.plugin_files,
        )

    def changed_files(self) -> list[str]:
        """Planned files whose on-disk bytes differ (or are missing)."""
        changed = []
        for relative, data in self.files.items():
            path = self.root / relative
            if not path.is_file() or path.read_bytes() != data:
                changed.append(relative)
        return changed

    def conflicts(self, owned: list[str]) -> list[str]:
        """Existing files the plan would overwrite that no manifest records.

        Args:
            owned: Artifact paths recorded by the previous manifest
        """
        conflicts = []
        for relative in self.changed_files():
            if _is_under_any(relative, owned):
                continue
            if (self.root / relative).exists():
                conflicts.append(relative)
        return conflicts


def _is_under_any(relative: str, artifacts: list[str]) -> bool:
    return any(relative == a or relative.startswith(f"{a}/") for a in artifacts)


def _convert_units(units: list, schema: TargetSchema, plan: InstallPlan, names: list[str]) -> list:
    sections = []
    for unit in units:
        try:
            result = convert(unit, schema)
        except SchemaViolation as e:
            logger.warning(f"Skipping {unit.name}: {e.constraint}")
            plan.violations.append(e)
            continue

        names.append(unit.name)
        if isinstance(result, DocumentSection):
            sections.append(result)
        else:
            plan.files.update(result.files)
    return sections


def build_plan(
    bundle: SourceBundle,
    schema: TargetSchema,
    scope: Scope,
    root: Path,
    hook_python: str = "python3",
    previous_hooks: bool = False,
) -> InstallPlan:
    """Plan a deployment of the bundle into a target root.

    Args:
        bundle: Source bundle
        schema: Target schema
        scope: Which artifact classes to deploy
        root: Target root directory
        hook_python: Interpreter used in hook commands
        previous_hooks: True if the installed manifest deploys hooks (the
            governed fragment is removed when the new scope drops them)

    Returns:
        InstallPlan ready to apply

    Raises:
        InstallValidationError: If the scope is not available for the target
        InvalidExistingDocument: If the host settings document is not valid JSON
    """
    layout = get_layout(schema)
    if scope is Scope.HOOKS_ONLY and not layout.supports_hooks:
        raise InstallValidationError(
            f"{layout.label} has no hook support; --hooks-only is not available"
        )

    plan = InstallPlan(schema=schema, root=root, scope=scope)

    sections = []
    if scope.include_skills:
        sections += _convert_units(bundle.skills, schema, plan, plan.skills)
    if scope.include_agents:
        sections += _convert_units(bundle.agents, schema, plan, plan.agents)
    if sections:
        plan.files[SINGLE_DOCUMENT_NAME] = render_single_document(sections)

    if not layout.supports_hooks:
        return plan

    if scope.include_hooks:
        artifact = layout.hook_artifact
        plan.hooks = True
        plan.plugin_files.append(artifact)
        plan.files[artifact] = bridge_source()

    # Plugin hosts load the bridge from hook_dir and take no settings entries
    if layout.settings_file is None:
        return plan

    plan.settings_path = root / layout.settings_file
    if scope.include_hooks:
        existing = read_settings(plan.settings_path)
        fragment = build_hooks_fragment(root.resolve() / layout.hook_artifact, hook_python)
        plan.settings = merge(existing, fragment)
        plan.settings_changed = plan.settings != existing or not plan.settings_path.exists()
    elif previous_hooks and plan.settings_path.exists():
        existing = read_settings(plan.settings_path)
        plan.settings = unmerge(existing)
        plan.settings_changed = plan.settings != existing

    return plan
