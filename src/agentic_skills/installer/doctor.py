"""Read-only verification of an installed target root.

Each check returns explicit ``CheckResult`` values which are accumulated
into a ``DoctorReport``; the report's counts decide the exit code.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from agentic_skills.bundle.loader import SourceBundle
from agentic_skills.exceptions import InvalidExistingDocument
from agentic_skills.manifest import Manifest, ManifestStore
from agentic_skills.settings.merger import build_hooks_fragment, contains_fragment, read_settings
from agentic_skills.targets.schema import SINGLE_DOCUMENT_NAME, get_layout

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Outcome of one doctor check."""

    name: str
    passed: bool
    detail: str = ""


@dataclass
class DoctorReport:
    """Accumulated check results for one target root."""

    root: Path
    manifest: Manifest | None = None
    results: list[CheckResult] = field(default_factory=list)

    def extend(self, results: list[CheckResult]) -> None:
        self.results.extend(results)

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.passed)

    @property
    def ok(self) -> bool:
        return self.failed == 0


def _exists(name: str, path: Path, detail: str) -> CheckResult:
    if path.exists():
        return CheckResult(name, True, detail)
    return CheckResult(name, False, f"missing {detail}")


def check_references(root: Path, manifest: Manifest) -> list[CheckResult]:
    """Every artifact the manifest references is present."""
    layout = get_layout(manifest.target)
    results = []

    if layout.single_document:
        if manifest.skills or manifest.agents:
            results.append(_exists("document", root / SINGLE_DOCUMENT_NAME, SINGLE_DOCUMENT_NAME))
    else:
        for name in manifest.skills:
            relative = f"skills/{name}/SKILL.md"
            results.append(_exists(f"skill:{name}", root / relative, relative))
        for name in manifest.agents:
            relative = f"agents/{name}.md"
            results.append(_exists(f"agent:{name}", root / relative, relative))

    for relative in manifest.plugin_files:
        results.append(_exists(f"plugin:{relative}", root / relative, relative))

    return results


def check_orphans(root: Path, manifest: Manifest) -> list[CheckResult]:
    """No fixed-name manager artifact exists without a manifest record."""
    layout = get_layout(manifest.target)
    results = []

    if layout.hook_artifact:
        recorded = layout.hook_artifact in manifest.plugin_files
        present = (root / layout.hook_artifact).exists()
        if present and not recorded:
            results.append(
                CheckResult("orphan:hooks", False, f"{layout.hook_artifact} is not recorded")
            )
        else:
            results.append(CheckResult("orphan:hooks", True, "bridge artifact accounted for"))

    if layout.single_document:
        recorded = bool(manifest.skills or manifest.agents)
        if (root / SINGLE_DOCUMENT_NAME).exists() and not recorded:
            results.append(
                CheckResult("orphan:document", False, f"{SINGLE_DOCUMENT_NAME} is not recorded")
            )
        else:
            results.append(CheckResult("orphan:document", True, "document accounted for"))

    return results


def check_unit_orphans(root: Path, manifest: Manifest, bundle: SourceBundle) -> list[CheckResult]:
    """No deployed copy of a bundle unit exists without a manifest record.

    Only names the bundle ships are considered; other files under
    ``skills/`` and ``agents/`` belong to the user.
    """
    layout = get_layout(manifest.target)
    if layout.single_document:
        return []

    stray = []
    skills_dir = root / "skills"
    if skills_dir.is_dir():
        for path in sorted(skills_dir.iterdir()):
            if path.name in bundle.skill_names and path.name not in manifest.skills:
                stray.append(f"skills/{path.name}")
    agents_dir = root / "agents"
    if agents_dir.is_dir():
        for path in sorted(agents_dir.glob("*.md")):
            if path.stem in bundle.agent_names and path.stem not in manifest.agents:
                stray.append(f"agents/{path.name}")

    if stray:
        return [CheckResult("orphan:units", False, f"not recorded: {', '.join(stray)}")]
    return [CheckResult("orphan:units", True, "deployed units accounted for")]


def check_settings(
    root: Path, manifest: Manifest, hook_python: str = "python3"
) -> list[CheckResult]:
    """When hooks are deployed, the settings document holds the fragment."""
    layout = get_layout(manifest.target)
    if not manifest.hooks or not layout.settings_file:
        return []

    settings_path = root / layout.settings_file
    if not settings_path.exists():
        return [CheckResult("settings", False, f"missing {layout.settings_file}")]

    try:
        existing = read_settings(settings_path)
    except InvalidExistingDocument as e:
        return [CheckResult("settings", False, str(e))]

    fragment = build_hooks_fragment(root.resolve() / layout.hook_artifact, hook_python)
    if contains_fragment(existing, fragment):
        detail = f"hook registration present in {layout.settings_file}"
        return [CheckResult("settings", True, detail)]
    detail = f"hook registration missing from {layout.settings_file}"
    return [CheckResult("settings", False, detail)]


def run_doctor(
    root: Path, hook_python: str = "python3", bundle: SourceBundle | None = None
) -> DoctorReport:
    """Verify an installed root.

    When a bundle is given, deployed copies of its units are also checked
    against the manifest.

    Raises:
        NotInstalledError: If the root has no manifest
        ManifestError: If the manifest is invalid
    """
    manifest = ManifestStore(root).read()
    report = DoctorReport(root=root, manifest=manifest)
    report.extend(check_references(root, manifest))
    report.extend(check_orphans(root, manifest))
    if bundle is not None:
        report.extend(check_unit_orphans(root, manifest, bundle))
    report.extend(check_settings(root, manifest, hook_python))
    logger.info(f"Doctor {root}: {report.passed} passed, {report.failed} failed")
    return report
