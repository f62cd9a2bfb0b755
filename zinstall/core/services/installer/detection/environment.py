"""
L3 Detection — OS family, architecture and backend availability.

Read-only probes. The profile feeds method resolution (which backends
exist here), repo-line templates (codename, arch, distro id) and GitHub
asset selection (OS and arch patterns).
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

Which = Callable[[str], "str | None"]

# Architecture name normalization (Debian/Go style).
_ARCH_MAP: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "AMD64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armhf",
    "i686": "i386",
    "i386": "i386",
}

_DEBIAN_IDS = {"debian", "ubuntu", "linuxmint", "pop", "raspbian", "elementary", "kali"}
_FEDORA_IDS = {"fedora", "rhel", "centos", "rocky", "almalinux"}
_ARCH_IDS = {"arch", "manjaro", "endeavouros"}


@dataclass(frozen=True)
class SystemProfile:
    """What kind of machine we are installing onto.

    ``family`` is one of ``macos``, ``termux``, ``debian``, ``fedora``,
    ``arch``, ``linux`` (other Linux) or ``unknown``.
    """

    family: str
    arch: str
    distro_id: str = ""
    codename: str = "stable"

    @property
    def is_macos(self) -> bool:
        return self.family == "macos"

    @property
    def is_linux(self) -> bool:
        return self.family in ("termux", "debian", "fedora", "arch", "linux")

    @property
    def is_termux(self) -> bool:
        return self.family == "termux"

    def repo_tokens(self) -> dict[str, str]:
        """Runtime tokens for APT repo-line templates."""
        return {
            "CODENAME": self.codename or "stable",
            "ARCH": self.arch,
            "DISTRO": self.distro_id or "debian",
        }


def normalize_arch(machine: str) -> str:
    return _ARCH_MAP.get(machine, machine.lower())


def read_os_release(path: Path = Path("/etc/os-release")) -> dict[str, str]:
    """Parse an os-release file into a dict (empty when absent)."""
    data: dict[str, str] = {}
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                data[key] = value.strip().strip('"').strip("'")
    except (FileNotFoundError, OSError):
        pass
    return data


def _is_termux(environ: dict[str, str]) -> bool:
    prefix = environ.get("PREFIX", "")
    return bool(environ.get("TERMUX_VERSION")) and bool(prefix) and Path(prefix).is_dir()


def family_from_os_release(os_release: dict[str, str]) -> str:
    """Map os-release ``ID``/``ID_LIKE`` to a distro family."""
    ids = {os_release.get("ID", "").lower()}
    ids.update(os_release.get("ID_LIKE", "").lower().split())
    ids.discard("")
    if ids & _DEBIAN_IDS:
        return "debian"
    if ids & _FEDORA_IDS:
        return "fedora"
    if ids & _ARCH_IDS:
        return "arch"
    return "linux" if ids else "unknown"


def detect_system_profile(
    *,
    system: str | None = None,
    machine: str | None = None,
    os_release_path: Path = Path("/etc/os-release"),
    environ: dict[str, str] | None = None,
) -> SystemProfile:
    """Probe the running machine."""
    system = (system or platform.system()).lower()
    arch = normalize_arch(machine or platform.machine())
    env = dict(os.environ if environ is None else environ)

    if system == "darwin":
        return SystemProfile(family="macos", arch=arch, distro_id="macos")
    if system != "linux":
        return SystemProfile(family="unknown", arch=arch, distro_id=system)
    if _is_termux(env):
        return SystemProfile(family="termux", arch=arch, distro_id="termux")

    os_release = read_os_release(os_release_path)
    profile = SystemProfile(
        family=family_from_os_release(os_release),
        arch=arch,
        distro_id=os_release.get("ID", "").lower(),
        codename=os_release.get("VERSION_CODENAME")
        or os_release.get("UBUNTU_CODENAME")
        or "stable",
    )
    logger.debug("Detected system profile: %s", profile)
    return profile


def detect_available_backends(
    profile: SystemProfile,
    which: Which = shutil.which,
) -> set[str]:
    """Backends that can install on this machine.

    ``github`` and ``install_cmd`` are always available.
    """
    available = {"github", "install_cmd"}

    if profile.is_macos:
        if which("brew"):
            available.update({"brew", "brew-cask"})
    elif profile.is_termux:
        if which("pkg"):
            available.add("pkg")
    elif profile.is_linux:
        if which("flatpak"):
            available.add("flatpak")
        if which("snap"):
            available.add("snap")
        if profile.family == "debian":
            available.add("apt")
        if profile.family == "fedora":
            available.add("dnf")
        if which("pacman"):
            available.add("pacman")

    if which("cargo"):
        available.add("cargo")

    logger.debug("Available backends: %s", ", ".join(sorted(available)))
    return available
