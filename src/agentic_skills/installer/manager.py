"""Install manager for target root lifecycle operations.

This module drives install, update, self-update and uninstall. Every
operation follows the same shape: read the manifest, build a plan, diff,
then apply the diff with atomic writes and write the manifest last.
"""

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from agentic_skills import __version__
from agentic_skills.bundle.loader import SourceBundle, get_packaged_bundle_dir, load_bundle
from agentic_skills.bundle.security import is_safe_relative_path
from agentic_skills.exceptions import (
    BundleError,
    InstallAbortedError,
    InstallValidationError,
    SchemaViolation,
)
from agentic_skills.fsutil import prune_empty_dirs, write_if_changed
from agentic_skills.installer.doctor import DoctorReport, run_doctor
from agentic_skills.installer.plan import InstallPlan, build_plan
from agentic_skills.installer.source import resolve_source
from agentic_skills.manifest import Manifest, ManifestStore, Scope, diff
from agentic_skills.settings.merger import read_settings, unmerge, write_settings
from agentic_skills.targets.schema import TargetSchema, get_layout

logger = logging.getLogger(__name__)

# Governed directories pruned when left empty
GOVERNED_DIRS = ["skills", "agents", "hooks", "plugins"]

# confirm(message, default) -> bool; default is used when nobody can be asked
ConfirmCallback = Callable[[str, bool], bool]


def _no_prompt(message: str, default: bool) -> bool:
    return default


@dataclass
class OperationReport:
    """What an operation did (or, for a dry run, would do) to a target root."""

    action: str
    root: Path
    schema: TargetSchema
    written: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    violations: list[SchemaViolation] = field(default_factory=list)
    settings_updated: bool = False
    manifest_updated: bool = False
    dry_run: bool = False
    manifest: Manifest | None = None

    @property
    def changed(self) -> bool:
        return bool(self.written or self.removed or self.settings_updated or self.manifest_updated)


class InstallManager:
    """Manage target root lifecycle: install, update, self-update, uninstall.

    Example:
        >>> manager = InstallManager(bundle_dir=Path("agentic-skills"))
        >>> report = manager.install(TargetSchema.CLAUDE, Path(".claude"))
        >>> report.manifest.skills
    """

    def __init__(
        self,
        bundle_dir: Path | None = None,
        hook_python: str = "python3",
        confirm: ConfirmCallback | None = None,
    ):
        """Initialize install manager.

        Args:
            bundle_dir: Source bundle (default: bundle shipped with the package)
            hook_python: Interpreter written into hook commands
            confirm: Callback asking the user to confirm a risky step
        """
        self.bundle_dir = bundle_dir or get_packaged_bundle_dir()
        self.hook_python = hook_python
        self.confirm = confirm or _no_prompt

    @staticmethod
    def default_root(schema: TargetSchema) -> Path:
        return Path(get_layout(schema).default_root)

    def load_bundle(self) -> SourceBundle:
        return load_bundle(self.bundle_dir)

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def install(
        self,
        schema: TargetSchema,
        root: Path | None = None,
        scope: Scope = Scope.FULL,
        force: bool = False,
        dry_run: bool = False,
    ) -> OperationReport:
        """Deploy the bundle into a target root.

        Re-installing over an existing installation of the same target
        behaves like an update with the requested scope.

        Args:
            schema: Target schema
            root: Target root (default: the schema's default root)
            scope: Which artifact classes to deploy
            force: Overwrite unrecorded files without asking
            dry_run: Plan only, write nothing

        Raises:
            InstallValidationError: If the scope or root is invalid
            InstallAbortedError: If overwriting unrecorded files was declined
            InvalidExistingDocument: If the host settings document is invalid
        """
        root = root or self.default_root(schema)
        store = ManifestStore(root)
        previous = store.read_optional()

        if previous is not None and previous.target != schema:
            raise InstallValidationError(
                f"{root} already holds a '{previous.target.value}' installation; "
                "uninstall it first"
            )

        plan = build_plan(
            self.load_bundle(),
            schema,
            scope,
            root,
            self.hook_python,
            previous_hooks=bool(previous and previous.hooks),
        )
        return self._apply("install", plan, store, previous, str(self.bundle_dir), force, dry_run)

    def update(self, root: Path, force: bool = False, dry_run: bool = False) -> OperationReport:
        """Bring an installed root in line with the current bundle.

        Only files whose content changed are rewritten; the manifest keeps its
        original scope and install timestamp.

        Raises:
            NotInstalledError: If the root has no manifest
        """
        store = ManifestStore(root)
        previous = store.read()
        plan = build_plan(
            self.load_bundle(),
            previous.target,
            previous.scope,
            root,
            self.hook_python,
            previous_hooks=previous.hooks,
        )
        return self._apply("update", plan, store, previous, str(self.bundle_dir), force, dry_run)

    def self_update(
        self,
        source: str,
        root: Path,
        ref: str | None = None,
        yes: bool = False,
        force: bool = False,
    ) -> OperationReport:
        """Update an installed root from an alternate bundle source.

        Args:
            source: Bundle directory or git URL
            root: Installed target root
            ref: Branch or tag for git sources
            yes: Skip the confirmation prompt
            force: Overwrite unrecorded files without asking

        Raises:
            NotInstalledError: If the root has no manifest
            SourceFetchError: If the source cannot be fetched
            InstallAbortedError: If the user declined
        """
        store = ManifestStore(root)
        previous = store.read()

        if not yes and not self.confirm(f"Update {root} from {source}?", True):
            raise InstallAbortedError("Self-update cancelled")

        with resolve_source(source, ref) as bundle_dir:
            plan = build_plan(
                load_bundle(bundle_dir),
                previous.target,
                previous.scope,
                root,
                self.hook_python,
                previous_hooks=previous.hooks,
            )
            return self._apply("self-update", plan, store, previous, source, force, False)

    def uninstall(self, root: Path, force: bool = False) -> OperationReport:
        """Remove exactly what the manifest records, then the manifest.

        Raises:
            NotInstalledError: If the root has no manifest
            InvalidExistingDocument: If the host settings document is invalid
            InstallAbortedError: If the user declined
        """
        store = ManifestStore(root)
        manifest = store.read()
        layout = get_layout(manifest.target)
        report = OperationReport(action="uninstall", root=root, schema=manifest.target)

        # Parse settings before touching anything
        settings_path = root / layout.settings_file if layout.settings_file else None
        existing = stripped = None
        if manifest.hooks and settings_path is not None and settings_path.exists():
            existing = read_settings(settings_path)
            stripped = unmerge(existing)

        paths = manifest.artifact_paths()
        if not force and not self.confirm(f"Remove {len(paths)} artifacts from {root}?", True):
            raise InstallAbortedError("Uninstall cancelled")

        for relative in paths:
            if self._remove_artifact(root, relative):
                report.removed.append(relative)

        if existing is not None and stripped != existing:
            if stripped:
                write_settings(settings_path, stripped)
            else:
                # Only the governed fragment was left
                settings_path.unlink()
                logger.info(f"Removed empty settings document {settings_path}")
            report.settings_updated = True

        if not layout.single_document:
            prune_empty_dirs(root, GOVERNED_DIRS)
        store.delete()
        report.manifest_updated = True
        logger.info(f"Uninstalled {len(report.removed)} artifacts from {root}")
        return report

    def status(self, root: Path) -> Manifest:
        """Return the manifest of an installed root.

        Raises:
            NotInstalledError: If the root has no manifest
        """
        return ManifestStore(root).read()

    def doctor(self, root: Path) -> DoctorReport:
        """Verify an installed root (read-only).

        Unit orphan checks need the source bundle and are skipped when it
        cannot be loaded.
        """
        try:
            bundle = self.load_bundle()
        except BundleError as e:
            logger.warning(f"Skipping unit orphan checks: {e}")
            bundle = None
        return run_doctor(root, self.hook_python, bundle)

    @staticmethod
    def version() -> str:
        return __version__

    # ------------------------------------------------------------------
    # Plan application
    # ------------------------------------------------------------------

    def _apply(
        self,
        action: str,
        plan: InstallPlan,
        store: ManifestStore,
        previous: Manifest | None,
        source: str,
        force: bool,
        dry_run: bool,
    ) -> OperationReport:
        installed_at = previous.installed_at if previous else None
        manifest = plan.manifest(version=__version__, installed_at=installed_at, source=source)
        changes = diff(previous, manifest)
        owned = previous.artifact_paths() if previous else []

        report = OperationReport(
            action=action,
            root=plan.root,
            schema=plan.schema,
            violations=plan.violations,
            dry_run=dry_run,
            manifest=manifest,
        )

        stale = self._stale_files(plan, previous, manifest)
        if dry_run:
            report.written = plan.changed_files()
            report.removed = changes.to_remove + stale
            report.settings_updated = plan.settings_changed
            return report

        conflicts = plan.conflicts(owned)
        if conflicts and not force:
            listing = ", ".join(conflicts[:5]) + (" ..." if len(conflicts) > 5 else "")
            message = (
                f"Overwrite {len(conflicts)} existing file(s) not managed by "
                f"agentic-skills ({listing})?"
            )
            if not self.confirm(message, False):
                raise InstallAbortedError(
                    f"Refusing to overwrite unmanaged files in {plan.root}; "
                    "use --force to overwrite"
                )

        for relative, data in plan.files.items():
            if write_if_changed(plan.root / relative, data):
                report.written.append(relative)

        for relative in changes.to_remove + stale:
            if self._remove_artifact(plan.root, relative):
                report.removed.append(relative)
        if report.removed and not get_layout(plan.schema).single_document:
            prune_empty_dirs(plan.root, GOVERNED_DIRS)

        if plan.settings_changed and plan.settings_path is not None:
            write_settings(plan.settings_path, plan.settings)
            report.settings_updated = True

        report.manifest_updated = store.write(manifest)
        logger.info(
            f"{action} {plan.root}: {len(report.written)} written, {len(report.removed)} removed"
        )
        return report

    @staticmethod
    def _stale_files(plan: InstallPlan, previous: Manifest | None, manifest: Manifest) -> list[str]:
        """Files inside kept skill directories that the bundle no longer has."""
        if previous is None:
            return []
        kept = set(previous.artifact_paths()) & set(manifest.artifact_paths())
        stale = []
        for artifact in sorted(kept):
            directory = plan.root / artifact
            if not artifact.startswith("skills/") or not directory.is_dir():
                continue
            for path in sorted(directory.rglob("*")):
                relative = path.relative_to(plan.root).as_posix()
                if path.is_file() and relative not in plan.files:
                    stale.append(relative)
        return stale

    @staticmethod
    def _remove_artifact(root: Path, relative: str) -> bool:
        if not is_safe_relative_path(relative):
            logger.warning(f"Refusing to remove unsafe manifest path: {relative}")
            return False

        path = root / relative
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        else:
            logger.debug(f"Already absent: {path}")
            return False
        logger.debug(f"Removed {path}")
        return True
