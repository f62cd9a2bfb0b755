"""
L5 Orchestration — The installer service.

``Installer`` owns the recipe index, the backend-availability cache and
the session state, and ties the layers together:

    scan → resolve stack → idempotency guard → method resolution
         → per wave: pre_install + provisioning → refresh → install
         → post_install → report

Execution is strictly sequential; package managers hold exclusive locks.
Nothing is rolled back on failure: every step is safe to re-run.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Sequence
from typing import Any

from zinstall.core.models.recipe import Recipe
from zinstall.core.models.report import InstallReport, RecipeOutcome
from zinstall.core.models.settings import Settings
from zinstall.core.services.installer.data.backends import (
    get_backend,
    is_batchable,
    refresh_key,
)
from zinstall.core.services.installer.data.recipe_loader import RecipeIndex
from zinstall.core.services.installer.detection.environment import (
    SystemProfile,
    detect_available_backends,
    detect_system_profile,
)
from zinstall.core.services.installer.detection.installed import find_provided
from zinstall.core.services.installer.domain.actions import CallbackRegistry, HookContext
from zinstall.core.services.installer.domain.batching import InstallGroup, plan_groups
from zinstall.core.services.installer.domain.dag import order_stack
from zinstall.core.services.installer.errors import (
    BatchInstallFailure,
    CycleDetected,
    HookFailure,
    InstallerError,
    NetworkFailure,
    NoApplicableMethod,
    RepoProvisioningFailure,
    SingleInstallFailure,
)
from zinstall.core.services.installer.execution.builtin_callbacks import default_registry
from zinstall.core.services.installer.execution.download import fetch_bytes
from zinstall.core.services.installer.execution.github_release import GitHubReleaseInstaller
from zinstall.core.services.installer.execution.hooks import run_action
from zinstall.core.services.installer.execution.repo_setup import RepoProvisioner
from zinstall.core.services.installer.execution.session import SessionState
from zinstall.core.services.installer.execution.subprocess_runner import run_command
from zinstall.core.services.installer.resolver.method_selection import (
    build_install_cmd,
    parse_github_spec,
    pick_install_method,
)
from zinstall.core.services.installer.resolver.stack_resolution import build_graph

logger = logging.getLogger(__name__)


class Installer:
    """Recipe-driven installer. Construct once, reuse for the session.

    Args:
        settings: Runtime settings (defaults to ``Settings()``).
        profile: System profile (detected when omitted).
        index: Recipe index (built from ``settings`` when omitted).
        callbacks: Registry for ``{callback: name}`` hooks.
        run: Command runner, ``run_command``-compatible.
        which: PATH lookup, ``shutil.which``-compatible.
        github: GitHub release installer.
        fetch: HTTP GET returning bytes, for signing keys.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        profile: SystemProfile | None = None,
        index: RecipeIndex | None = None,
        callbacks: CallbackRegistry | None = None,
        run: Callable[..., dict[str, Any]] = run_command,
        which: Callable[[str], str | None] = shutil.which,
        github: GitHubReleaseInstaller | None = None,
        fetch: Callable[..., bytes] = fetch_bytes,
    ) -> None:
        self.settings = settings or Settings()
        self.profile = profile or detect_system_profile()
        self.index = index or RecipeIndex(self.settings.all_recipe_dirs())
        self.callbacks = callbacks if callbacks is not None else default_registry()
        self.session = SessionState()
        self._run = run
        self._which = which
        self.github = github or GitHubReleaseInstaller(
            self.settings.github_install_dir,
            self.profile,
            http_timeout=self.settings.http_timeout,
        )
        self.provisioner = RepoProvisioner(
            self.settings, self.profile, self.session, run=run, fetch=fetch,
        )
        self._available: set[str] | None = None

    # ── Queries ───────────────────────────────────────────────────

    @property
    def available_backends(self) -> set[str]:
        """Backends usable on this machine (computed once)."""
        if self._available is None:
            self._available = detect_available_backends(self.profile, self._which)
        return self._available

    def refresh_backends(self) -> None:
        """Forget cached backend availability (e.g. after installing brew)."""
        self._available = None

    def resolve(self, target: str) -> str | None:
        """Recipe id for a recipe id or provided command; ``None`` if unknown."""
        return self.index.resolve(target)

    def recipe(self, recipe_id: str) -> Recipe | None:
        return self.index.get(recipe_id)

    def field(self, recipe_id: str, field: str, default: str | None = None) -> str:
        """Raw recipe field (raises ``RecipeFieldMissing`` without a default)."""
        return self.index.field(recipe_id, field, default)

    def method_for(self, recipe_id: str) -> str | None:
        """Backend *recipe_id* installs through here, or ``None``."""
        recipe = self.index.get(recipe_id)
        if recipe is None:
            return None
        return pick_install_method(recipe, self.available_backends)

    def stack(self, *targets: str) -> list[str]:
        """Merged dependency stack for *targets* (dependencies first).

        Raises:
            UnknownTarget: If a reference resolves to nothing.
            CycleDetected: If the dependency graph loops.
        """
        return self._resolve(targets)[0]

    def is_installed(self, recipe_id: str) -> bool:
        """True when any provided command is on PATH or in a GitHub app's bin/."""
        recipe = self.index.get(recipe_id)
        if recipe is None or not recipe.provides:
            return False
        if find_provided(recipe, self._which):
            return True
        return any(self.github.find_executable(cmd) for cmd in recipe.provides)

    def locate(self, command: str) -> str | None:
        return self._which(command) or self.github.find_executable(command)

    def _resolve(self, targets: Sequence[str]) -> tuple[list[str], dict[str, tuple[str, ...]]]:
        roots, graph = build_graph(self.index, targets)
        result = order_stack(graph, roots)
        if not result.ok:
            raise CycleDetected(result.cycle or [])
        return result.stack, graph

    # ── Install ───────────────────────────────────────────────────

    def install(self, *targets: str, force_refresh: bool = False) -> InstallReport:
        """Install *targets* and everything they depend on.

        Returns:
            An ``InstallReport``; ``report.ok`` is False when resolution
            failed or any recipe failed.
        """
        report = InstallReport(targets=list(targets))

        logger.info("🔍 Scanning recipes...")
        self.index.load()

        try:
            stack, graph = self._resolve(targets)
        except InstallerError as e:
            logger.error("❌ %s", e)
            report.error = e
            return report
        report.stack = stack
        logger.info("🧩 Install stack: %s", " → ".join(stack) or "(empty)")

        pending, backend_of = self._triage(stack, report)
        if not pending:
            logger.info("✨ Nothing to install")
            return report

        broken: set[str] = set()
        forced: set[str] = set()
        for wave in plan_groups(pending, graph, backend_of, is_batchable):
            for group in wave:
                ready = self._prepare_group(group, graph, report, broken)
                if not ready:
                    continue
                refresh_forced = force_refresh and refresh_key(group.backend) not in forced
                self._install_group(group.backend, ready, report, broken, refresh_forced)
                if refresh_forced:
                    forced.add(refresh_key(group.backend))

        if report.ok:
            logger.info("🎉 Done: %s", ", ".join(report.installed) or "nothing new")
        else:
            logger.error("❌ Failed: %s", ", ".join(report.failed))
        return report

    def _triage(self, stack: list[str], report: InstallReport) -> tuple[list[str], dict[str, str]]:
        """Split the stack into satisfied, inapplicable and pending recipes."""
        pending: list[str] = []
        backend_of: dict[str, str] = {}
        for rid in stack:
            recipe = self.index.get(rid)
            outcome = RecipeOutcome(recipe_id=rid, name=recipe.name if recipe else rid)
            report.outcomes.append(outcome)

            if self.session.was_handled(rid) or self.is_installed(rid):
                outcome.status = "already_installed"
                outcome.message = "already installed"
                self.session.mark_handled(rid)
                logger.info("✅ Already installed: %s", outcome.name)
                continue

            backend = self.method_for(rid)
            if backend is None:
                info = NoApplicableMethod(
                    f"No install method for {outcome.name} on {self.profile.family}",
                    recipe_id=rid,
                )
                outcome.status = "no_method"
                outcome.message = str(info)
                logger.info("⏭️  %s", info)
                continue

            outcome.backend = backend
            pending.append(rid)
            backend_of[rid] = backend
        return pending, backend_of

    def _prepare_group(
        self,
        group: InstallGroup,
        graph: dict[str, tuple[str, ...]],
        report: InstallReport,
        broken: set[str],
    ) -> list[Recipe]:
        """Skip blocked recipes, run pre_install hooks, provision repos."""
        ready: list[Recipe] = []
        for rid in group.recipe_ids:
            outcome = report.outcome(rid)
            recipe = self.index.get(rid)

            blocked = [d for d in graph.get(rid, ()) if d in broken]
            if blocked:
                outcome.status = "skipped"
                outcome.message = f"dependency failed: {', '.join(blocked)}"
                broken.add(rid)
                logger.warning("⏭️  Skipping %s: dependency failed (%s)", recipe.name, ", ".join(blocked))
                continue

            try:
                if recipe.pre_install is not None:
                    self._run_hook(recipe, "pre_install", group.backend)
                if self.provisioner.provision(recipe, group.backend):
                    logger.info("   Repositories changed for %s", group.backend)
            except (HookFailure, RepoProvisioningFailure, NetworkFailure) as e:
                self._fail(report, broken, [rid], e)
                continue
            ready.append(recipe)
        return ready

    def _install_group(
        self,
        backend: str,
        recipes: list[Recipe],
        report: InstallReport,
        broken: set[str],
        force_refresh: bool,
    ) -> None:
        """Refresh the backend, install the group, run post_install hooks."""
        ids = [r.id for r in recipes]
        try:
            self.provisioner.refresh(backend, force=force_refresh)
        except RepoProvisioningFailure as e:
            self._fail(report, broken, ids, e)
            return

        if is_batchable(backend):
            specs = [r.spec_for(backend) for r in recipes]
            cmd = build_install_cmd(backend, specs)
            logger.info("📦 Batch installing (%s): %s", backend, " ".join(cmd[len(get_backend(backend).install):]))
            result = self._run(
                cmd,
                needs_sudo=get_backend(backend).needs_sudo,
                timeout=self.settings.command_timeout,
                stream=self.settings.stream_output,
            )
            if not result["ok"]:
                self._fail(report, broken, ids, BatchInstallFailure(backend, ids, result.get("error", "")))
                return
            succeeded = recipes
        else:
            succeeded = []
            for recipe in recipes:
                logger.info("📦 Installing %s via %s...", recipe.name, backend)
                try:
                    self._install_single(recipe, backend)
                except (SingleInstallFailure, NetworkFailure) as e:
                    self._fail(report, broken, [recipe.id], e)
                    continue
                succeeded.append(recipe)

        for recipe in succeeded:
            outcome = report.outcome(recipe.id)
            if recipe.post_install is not None:
                try:
                    self._run_hook(recipe, "post_install", backend)
                except HookFailure as e:
                    outcome.warnings.append(str(e))
                    logger.warning("⚠️  %s", e)
            outcome.status = "installed"
            outcome.message = f"installed via {backend}"
            self.session.mark_handled(recipe.id)
            logger.info("✅ Successfully installed %s!", recipe.name)

    def _install_single(self, recipe: Recipe, backend: str) -> None:
        """Install one recipe through a non-batchable backend.

        Raises:
            SingleInstallFailure: If the install fails.
            NetworkFailure: If a GitHub lookup or download fails.
        """
        if backend == "github":
            try:
                app, repo, version = parse_github_spec(recipe.spec_for("github"))
            except ValueError as e:
                raise SingleInstallFailure(str(e), recipe_id=recipe.id, backend=backend) from e
            try:
                self.github.install(app, repo, version)
            except InstallerError as e:
                e.recipe_id = e.recipe_id or recipe.id
                raise
            return

        if backend == "install_cmd" and recipe.install_cmd is not None:
            result = run_action(
                recipe.install_cmd,
                HookContext(recipe=recipe, hook="install_cmd", backend=backend, run=self._run),
                self.callbacks,
                run=self._run,
                shell=self.settings.shell,
                timeout=self.settings.command_timeout,
                stream=self.settings.stream_output,
            )
            if not result["ok"]:
                raise SingleInstallFailure(
                    f"Installation command failed for {recipe.name}: {result.get('error', '')}",
                    recipe_id=recipe.id, backend=backend,
                )
            return

        raise SingleInstallFailure(
            f"Backend '{backend}' cannot install {recipe.name} on its own",
            recipe_id=recipe.id, backend=backend,
        )

    def _run_hook(self, recipe: Recipe, hook: str, backend: str) -> None:
        action = getattr(recipe, hook)
        logger.info("   Running %s for %s...", hook, recipe.id)
        result = run_action(
            action,
            HookContext(recipe=recipe, hook=hook, backend=backend, run=self._run),
            self.callbacks,
            run=self._run,
            shell=self.settings.shell,
            timeout=self.settings.command_timeout,
            stream=self.settings.stream_output,
        )
        if not result["ok"]:
            raise HookFailure(
                f"{hook} failed for {recipe.name}: {result.get('error', '')}",
                recipe_id=recipe.id, backend=backend,
            )

    def _fail(
        self,
        report: InstallReport,
        broken: set[str],
        recipe_ids: list[str],
        error: InstallerError,
    ) -> None:
        logger.error("❌ %s", error)
        if report.error is None:
            report.error = error
        for rid in recipe_ids:
            outcome = report.outcome(rid)
            outcome.status = "failed"
            outcome.message = str(error)
            broken.add(rid)

    # ── Ensure-and-execute ────────────────────────────────────────

    def ensure_and_exec(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        confirm: Callable[[str], bool] | None = None,
    ) -> int:
        """Run *command*, installing its owning recipe first when missing.

        Args:
            command: Command name to look up on PATH.
            args: Arguments passed through to the command.
            confirm: Asked with the recipe id before installing; a false
                answer leaves the command uninstalled. No prompt when omitted.

        Returns:
            The command's exit code; 127 when the command stays missing,
            1 when the install failed.
        """
        path = self.locate(command)
        if path is None:
            rid = self.resolve(command)
            if rid is None:
                logger.error("zinstall: command not found: %s", command)
                return 127

            if confirm is not None and not confirm(rid):
                logger.info("Not installing %s", rid)
                return 127

            logger.info("💡 Command '%s' not found, installing '%s'...", command, rid)
            report = self.install(rid)
            if not report.ok:
                return 1

            path = self.locate(command)
            if path is None:
                logger.error(
                    "❌ Command '%s' still not found after installation. "
                    "You may need to restart your shell.", command,
                )
                return 127

        result = self._run([path, *args], timeout=None, stream=True)
        code = result.get("returncode")
        return code if isinstance(code, int) else 1
