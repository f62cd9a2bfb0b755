"""
L4 Execution — Repository and signing-key provisioning.

Every step is idempotent so an interrupted run can simply be repeated:

    apt   keyring downloaded only when absent; source file written only
          when its bytes differ
    dnf   ``.repo`` file added only when absent
    brew  taps added only when not yet listed

Any real change flags the backend for a metadata refresh. Refreshes run
at most once per backend per session unless flagged or forced.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

from zinstall.core.models.recipe import Recipe
from zinstall.core.models.settings import Settings
from zinstall.core.services.installer.data.backends import get_backend, refresh_key
from zinstall.core.services.installer.detection.environment import SystemProfile
from zinstall.core.services.installer.domain.repo_descriptor import (
    parse_apt_repo,
    render_repo_line,
    render_template,
    repo_filename,
)
from zinstall.core.services.installer.errors import RepoProvisioningFailure
from zinstall.core.services.installer.execution.download import fetch_bytes
from zinstall.core.services.installer.execution.session import SessionState
from zinstall.core.services.installer.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)


def _dir_writable(directory: Path) -> bool:
    return directory.is_dir() and os.access(directory, os.W_OK)


class RepoProvisioner:
    """Configures backend repositories and keys before installs."""

    def __init__(
        self,
        settings: Settings,
        profile: SystemProfile,
        session: SessionState,
        *,
        run: Callable[..., dict[str, Any]] = run_command,
        fetch: Callable[..., bytes] = fetch_bytes,
    ) -> None:
        self.settings = settings
        self.profile = profile
        self.session = session
        self._run = run
        self._fetch = fetch

    # ── Public ────────────────────────────────────────────────────

    def provision(self, recipe: Recipe, backend: str) -> bool:
        """Set up whatever *backend* needs for *recipe*.

        Returns:
            True if anything changed on disk (and a refresh was flagged).

        Raises:
            RepoProvisioningFailure: If a setup command fails.
            NetworkFailure: If a key download fails.
        """
        if backend == "apt" and recipe.repos.get("apt"):
            return self._setup_apt(recipe, recipe.repos["apt"])
        if backend == "dnf" and recipe.repos.get("dnf"):
            return self._setup_dnf(recipe, recipe.repos["dnf"])
        if backend in ("brew", "brew-cask") and recipe.taps:
            return self._setup_brew_taps(recipe, backend)
        return False

    def refresh(self, backend: str, force: bool = False) -> bool:
        """Refresh *backend*'s package metadata if this session needs it.

        Returns:
            True if the refresh command ran.

        Raises:
            RepoProvisioningFailure: If the refresh command fails.
        """
        spec = get_backend(backend)
        if not spec.refresh:
            return False
        key = refresh_key(backend)
        if not self.session.should_refresh(key, force=force):
            logger.debug("Repositories for %s already refreshed this session", backend)
            return False

        logger.info("🔄 Updating repositories for %s...", backend)
        result = self._run(
            list(spec.refresh),
            needs_sudo=spec.needs_sudo,
            timeout=self.settings.command_timeout,
            stream=self.settings.stream_output,
        )
        if not result["ok"]:
            raise RepoProvisioningFailure(
                f"Repository refresh failed for {backend}: {result.get('error', '')}",
                backend=backend,
            )
        self.session.mark_refreshed(key)
        return True

    # ── APT ───────────────────────────────────────────────────────

    def _setup_apt(self, recipe: Recipe, descriptor: str) -> bool:
        try:
            repo = parse_apt_repo(descriptor)
        except ValueError as e:
            raise RepoProvisioningFailure(str(e), recipe_id=recipe.id, backend="apt") from e

        tokens = self.profile.repo_tokens()
        keyring_path = ""
        if repo.has_key:
            keyring = self.settings.keyring_dir / repo.keyring_name
            keyring_path = str(keyring)
            if not keyring.exists():
                logger.info("   Downloading GPG key for %s...", recipe.id)
                key_url = render_template(repo.key_url, tokens)
                data = self._fetch(key_url, timeout=self.settings.http_timeout)
                self._install_keyring(recipe, data, keyring)

        line = render_repo_line(repo.line_template, tokens, keyring_path)
        list_file = self.settings.apt_sources_dir / f"{recipe.id}.list"
        content = (line + "\n").encode("utf-8")
        try:
            if list_file.read_bytes() == content:
                return False
        except OSError:
            pass

        logger.info("   Configuring apt source for %s...", recipe.id)
        self._write_system_file(recipe, "apt", list_file, content)
        self.session.flag_refresh("apt")
        return True

    def _install_keyring(self, recipe: Recipe, data: bytes, keyring: Path) -> None:
        """Dearmor a downloaded key into *keyring*."""
        with tempfile.NamedTemporaryFile(prefix="zinstall-key-", delete=False) as tmp:
            tmp.write(data)
        try:
            result = self._run(
                ["gpg", "--dearmor", "--yes", "-o", str(keyring), tmp.name],
                needs_sudo=not _dir_writable(keyring.parent),
                timeout=self.settings.command_timeout,
            )
        finally:
            os.unlink(tmp.name)
        if not result["ok"]:
            raise RepoProvisioningFailure(
                f"Failed to install signing key {keyring}: {result.get('error', '')}",
                recipe_id=recipe.id, backend="apt",
            )

    def _write_system_file(self, recipe: Recipe, backend: str, path: Path, content: bytes) -> None:
        """Write *content* to *path*, through sudo when the directory is not ours."""
        if _dir_writable(path.parent):
            try:
                path.write_bytes(content)
                return
            except OSError as e:
                raise RepoProvisioningFailure(
                    f"Cannot write {path}: {e}", recipe_id=recipe.id, backend=backend,
                ) from e

        with tempfile.NamedTemporaryFile(prefix="zinstall-src-", delete=False) as tmp:
            tmp.write(content)
        try:
            result = self._run(
                ["install", "-D", "-m", "0644", tmp.name, str(path)],
                needs_sudo=True,
                timeout=self.settings.command_timeout,
            )
        finally:
            os.unlink(tmp.name)
        if not result["ok"]:
            raise RepoProvisioningFailure(
                f"Cannot write {path}: {result.get('error', '')}",
                recipe_id=recipe.id, backend=backend,
            )

    # ── DNF ───────────────────────────────────────────────────────

    def _setup_dnf(self, recipe: Recipe, url: str) -> bool:
        try:
            filename = repo_filename(url)
        except ValueError as e:
            raise RepoProvisioningFailure(str(e), recipe_id=recipe.id, backend="dnf") from e
        if (self.settings.yum_repos_dir / filename).exists():
            return False

        logger.info("   Adding dnf repo for %s...", recipe.id)
        result = self._run(
            ["dnf", "config-manager", "--add-repo", url],
            needs_sudo=True,
            timeout=self.settings.command_timeout,
        )
        if not result["ok"]:
            raise RepoProvisioningFailure(
                f"Failed to add dnf repo {url}: {result.get('error', '')}",
                recipe_id=recipe.id, backend="dnf",
            )
        self.session.flag_refresh("dnf")
        return True

    # ── Homebrew ──────────────────────────────────────────────────

    def _setup_brew_taps(self, recipe: Recipe, backend: str) -> bool:
        listed = self._run(["brew", "tap"], timeout=self.settings.command_timeout)
        if not listed["ok"]:
            raise RepoProvisioningFailure(
                f"Cannot list brew taps: {listed.get('error', '')}",
                recipe_id=recipe.id, backend=backend,
            )
        existing = set(listed.get("stdout", "").split())

        changed = False
        for tap in recipe.taps:
            if tap in existing:
                continue
            logger.info("   Tapping %s...", tap)
            result = self._run(["brew", "tap", tap], timeout=self.settings.command_timeout)
            if not result["ok"]:
                raise RepoProvisioningFailure(
                    f"Failed to tap {tap}: {result.get('error', '')}",
                    recipe_id=recipe.id, backend=backend,
                )
            existing.add(tap)
            changed = True

        if changed:
            self.session.flag_refresh(refresh_key(backend))
        return changed
