"""
L4 Execution — GitHub release installer.

Installs an app from a GitHub release into ``<install_dir>/<app>``:

    1. resolve ``latest``/``main``/``master`` to a concrete tag
    2. skip when ``<app>/.version`` already holds that tag
    3. pick an asset for this OS/arch in a supported archive format
    4. download, extract (rejecting paths that escape the target),
       flatten a single wrapping directory
    5. synthesise ``bin/`` with symlinks when the archive has none
    6. write the ``.version`` marker

No signature verification is performed on release assets.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import stat
import tarfile
import tempfile
import zipfile
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from zinstall.core.services.installer.detection.environment import SystemProfile
from zinstall.core.services.installer.errors import NetworkFailure, SingleInstallFailure
from zinstall.core.services.installer.execution.download import download_to, fetch_json

logger = logging.getLogger(__name__)

API_ROOT = "https://api.github.com"
VERSION_MARKER = ".version"

_ALIASES = frozenset({"latest", "main", "master"})
_REPO_RE = re.compile(r"^[A-Za-z0-9._-]+/[A-Za-z0-9._-]+$")
_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".tar.bz2", ".zip")

_ARCH_PATTERNS: dict[str, tuple[str, ...]] = {
    "amd64": ("amd64", "x86_64", "x64"),
    "arm64": ("arm64", "aarch64"),
}


def os_patterns(profile: SystemProfile) -> tuple[str, ...]:
    if profile.is_macos:
        return ("darwin", "macos")
    if profile.is_linux:
        return ("linux",)
    return (profile.family,)


def arch_patterns(profile: SystemProfile) -> tuple[str, ...]:
    return _ARCH_PATTERNS.get(profile.arch, (profile.arch,))


def select_asset(urls: Iterable[str], profile: SystemProfile) -> str | None:
    """First asset URL matching this OS, this arch and an archive format."""
    os_re = re.compile("|".join(map(re.escape, os_patterns(profile))), re.IGNORECASE)
    arch_re = re.compile("|".join(map(re.escape, arch_patterns(profile))), re.IGNORECASE)
    for url in urls:
        name = url.rsplit("/", 1)[-1]
        if not name.lower().endswith(_ARCHIVE_SUFFIXES):
            continue
        if os_re.search(name) and arch_re.search(name):
            return url
    return None


def _is_within(base: Path, target: Path) -> bool:
    try:
        target.resolve().relative_to(base.resolve())
        return True
    except ValueError:
        return False


def extract_archive(archive: Path, dest: Path) -> None:
    """Extract *archive* into *dest*, refusing members that escape it.

    Raises:
        ValueError: On an unsupported format or an unsafe member path.
    """
    name = archive.name.lower()
    if name.endswith(".zip"):
        with zipfile.ZipFile(archive) as zf:
            for member in zf.namelist():
                if not _is_within(dest, dest / member):
                    raise ValueError(f"Unsafe path in archive: {member}")
            for info in zf.infolist():
                zf.extract(info, dest)
                mode = (info.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(dest / info.filename, mode)
        return

    if name.endswith(_ARCHIVE_SUFFIXES):
        with tarfile.open(archive) as tf:
            members = tf.getmembers()
            for member in members:
                if not _is_within(dest, dest / member.name):
                    raise ValueError(f"Unsafe path in archive: {member.name}")
                if member.issym():
                    link_target = (dest / member.name).parent / member.linkname
                elif member.islnk():
                    link_target = dest / member.linkname
                else:
                    continue
                if not _is_within(dest, link_target):
                    raise ValueError(f"Unsafe link in archive: {member.name}")
            if hasattr(tarfile, "data_filter"):
                tf.extractall(dest, members=members, filter="data")
            else:
                tf.extractall(dest, members=members)
        return

    raise ValueError(f"Unsupported archive format: {archive.name}")


def flatten_single_dir(root: Path) -> None:
    """Hoist the contents of a lone top-level directory into *root*."""
    entries = list(root.iterdir())
    if len(entries) != 1 or not entries[0].is_dir() or entries[0].is_symlink():
        return
    inner = entries[0]
    tmp = root / (".flatten-" + inner.name)
    inner.rename(tmp)
    for child in tmp.iterdir():
        child.rename(root / child.name)
    tmp.rmdir()


def ensure_bin_dir(root: Path) -> Path:
    """Create ``bin/`` with relative symlinks to top-level executables when missing."""
    bin_dir = root / "bin"
    if bin_dir.is_dir():
        return bin_dir
    bin_dir.mkdir()
    for entry in sorted(root.iterdir()):
        if entry.is_file() and os.access(entry, os.X_OK):
            link = bin_dir / entry.name
            if link.exists() or link.is_symlink():
                link.unlink()
            link.symlink_to(Path("..") / entry.name)
    return bin_dir


class GitHubReleaseInstaller:
    """Installs apps from GitHub releases, one directory per app."""

    def __init__(
        self,
        install_dir: Path,
        profile: SystemProfile,
        *,
        http_timeout: int = 30,
        fetch_json: Callable[..., Any] = fetch_json,
        download: Callable[..., Path] = download_to,
    ) -> None:
        self.install_dir = Path(install_dir)
        self.profile = profile
        self.http_timeout = http_timeout
        self._fetch_json = fetch_json
        self._download = download

    # ── Lookups ───────────────────────────────────────────────────

    def app_dir(self, app: str) -> Path:
        return self.install_dir / app

    def installed_version(self, app: str) -> str | None:
        marker = self.app_dir(app) / VERSION_MARKER
        try:
            return marker.read_text(encoding="utf-8").strip() or None
        except OSError:
            return None

    def resolve_version(self, repo: str, version: str) -> str:
        """Concrete tag for *version*; aliases resolve to the newest release.

        Raises:
            NetworkFailure: If the release API cannot be reached or has
                no releases.
        """
        if version not in _ALIASES:
            return version

        url = f"{API_ROOT}/repos/{repo}/releases/latest"
        try:
            tag = (self._fetch_json(url, timeout=self.http_timeout) or {}).get("tag_name")
        except NetworkFailure:
            tag = None
        if tag:
            return tag

        # No stable release: fall back to the newest one (pre-releases included).
        url = f"{API_ROOT}/repos/{repo}/releases"
        releases = self._fetch_json(url, timeout=self.http_timeout) or []
        if releases and releases[0].get("tag_name"):
            return releases[0]["tag_name"]
        raise NetworkFailure(url, f"no releases found for {repo}")

    def asset_urls(self, repo: str, tag: str) -> list[str]:
        url = f"{API_ROOT}/repos/{repo}/releases/tags/{tag}"
        release = self._fetch_json(url, timeout=self.http_timeout) or {}
        return [
            a["browser_download_url"]
            for a in release.get("assets", [])
            if a.get("browser_download_url")
        ]

    def find_executable(self, command: str) -> str | None:
        """Path of *command* in any installed app's ``bin/``."""
        if not self.install_dir.is_dir():
            return None
        for app_dir in sorted(self.install_dir.iterdir()):
            candidate = app_dir / "bin" / command
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate)
        return None

    def bin_dirs(self) -> list[Path]:
        if not self.install_dir.is_dir():
            return []
        return [d / "bin" for d in sorted(self.install_dir.iterdir()) if (d / "bin").is_dir()]

    # ── Install ───────────────────────────────────────────────────

    def install(self, app: str, repo: str, version: str = "latest") -> dict[str, Any]:
        """Install or update *app* from *repo*.

        Returns:
            ``{"ok": True, "version": tag, "changed": bool, "path": ...}``

        Raises:
            SingleInstallFailure: On invalid input, no matching asset or a
                broken archive, or when the install directory
                cannot be written.
            NetworkFailure: If a lookup or download fails.
        """
        if not _REPO_RE.match(repo):
            raise SingleInstallFailure(
                f"Invalid repo name: {repo} (expected owner/repo)", backend="github",
            )
        if not app or "/" in app or app in (".", ".."):
            raise SingleInstallFailure(f"Invalid app name: {app!r}", backend="github")

        tag = self.resolve_version(repo, version)
        target = self.app_dir(app)

        current = self.installed_version(app)
        if current == tag:
            logger.info("🔄 %s is already at version %s", app, tag)
            return {"ok": True, "version": tag, "changed": False, "path": str(target)}

        logger.info("📦 Installing %s version %s from %s", app, tag, repo)
        logger.warning(
            "No signature verification performed for %s release assets", repo,
        )

        asset_url = select_asset(self.asset_urls(repo, tag), self.profile)
        if asset_url is None:
            raise SingleInstallFailure(
                f"No compatible asset found for {repo} {tag} on "
                f"{self.profile.family} {self.profile.arch}",
                backend="github",
            )

        try:
            self._unpack_into(app, asset_url, target)
            (target / VERSION_MARKER).write_text(tag + "\n", encoding="utf-8")
        except OSError as e:
            raise SingleInstallFailure(
                f"Cannot install {app} into {self.install_dir}: {e}", backend="github",
            ) from e
        logger.info("✅ Successfully installed %s version %s", app, tag)
        return {"ok": True, "version": tag, "changed": True, "path": str(target)}

    def _unpack_into(self, app: str, asset_url: str, target: Path) -> None:
        """Download and extract *asset_url*, then swap it in as *target*."""
        self.install_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=f".{app}-", dir=self.install_dir) as work:
            work_dir = Path(work)
            archive = work_dir / asset_url.rsplit("/", 1)[-1]
            self._download(asset_url, archive, timeout=self.http_timeout)

            staging = work_dir / "staging"
            staging.mkdir()
            try:
                extract_archive(archive, staging)
            except (ValueError, tarfile.TarError, zipfile.BadZipFile, OSError) as e:
                raise SingleInstallFailure(
                    f"Failed to extract {archive.name}: {e}", backend="github",
                ) from e

            flatten_single_dir(staging)
            ensure_bin_dir(staging)
            _make_bin_executable(staging / "bin")

            if target.exists():
                shutil.rmtree(target)
            staging.rename(target)


def _make_bin_executable(bin_dir: Path) -> None:
    for entry in bin_dir.iterdir():
        if entry.is_file() and not entry.is_symlink():
            mode = entry.stat().st_mode
            entry.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
