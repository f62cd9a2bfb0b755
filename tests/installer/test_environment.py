"""
Tests for system profile detection and backend availability.
"""

from __future__ import annotations

from zinstall.core.services.installer.detection.environment import (
    SystemProfile,
    detect_available_backends,
    detect_system_profile,
    family_from_os_release,
    normalize_arch,
    read_os_release,
)
from zinstall.core.services.installer.detection.installed import (
    find_provided,
    is_recipe_installed,
)
from zinstall.core.models.recipe import Recipe

UBUNTU_OS_RELEASE = """\
NAME="Ubuntu"
ID=ubuntu
ID_LIKE=debian
VERSION_CODENAME=jammy
"""


class TestProfile:
    def test_normalize_arch(self):
        assert normalize_arch("x86_64") == "amd64"
        assert normalize_arch("aarch64") == "arm64"
        assert normalize_arch("riscv64") == "riscv64"

    def test_read_os_release(self, tmp_path):
        path = tmp_path / "os-release"
        path.write_text(UBUNTU_OS_RELEASE + "# comment\n\n", encoding="utf-8")
        data = read_os_release(path)
        assert data["ID"] == "ubuntu"
        assert data["NAME"] == "Ubuntu"

    def test_read_missing_os_release(self, tmp_path):
        assert read_os_release(tmp_path / "nope") == {}

    def test_family_from_os_release(self):
        assert family_from_os_release({"ID": "pop", "ID_LIKE": "ubuntu debian"}) == "debian"
        assert family_from_os_release({"ID": "rocky", "ID_LIKE": "rhel centos fedora"}) == "fedora"
        assert family_from_os_release({"ID": "manjaro"}) == "arch"
        assert family_from_os_release({"ID": "alpine"}) == "linux"
        assert family_from_os_release({}) == "unknown"

    def test_detect_ubuntu(self, tmp_path):
        path = tmp_path / "os-release"
        path.write_text(UBUNTU_OS_RELEASE, encoding="utf-8")
        profile = detect_system_profile(
            system="Linux", machine="x86_64", os_release_path=path, environ={},
        )
        assert profile == SystemProfile(
            family="debian", arch="amd64", distro_id="ubuntu", codename="jammy",
        )
        assert profile.repo_tokens() == {
            "CODENAME": "jammy", "ARCH": "amd64", "DISTRO": "ubuntu",
        }

    def test_detect_macos(self):
        profile = detect_system_profile(system="Darwin", machine="arm64", environ={})
        assert profile.is_macos
        assert not profile.is_linux

    def test_detect_termux(self, tmp_path):
        profile = detect_system_profile(
            system="Linux", machine="aarch64",
            environ={"TERMUX_VERSION": "0.118", "PREFIX": str(tmp_path)},
        )
        assert profile.is_termux
        assert profile.is_linux


class TestAvailableBackends:
    def test_macos_with_brew(self, which):
        which.present = {"brew"}
        profile = SystemProfile(family="macos", arch="arm64")
        assert detect_available_backends(profile, which) == {
            "brew", "brew-cask", "github", "install_cmd",
        }

    def test_macos_without_brew(self, which):
        profile = SystemProfile(family="macos", arch="arm64")
        assert detect_available_backends(profile, which) == {"github", "install_cmd"}

    def test_debian(self, which):
        which.present = {"snap", "cargo"}
        profile = SystemProfile(family="debian", arch="amd64")
        assert detect_available_backends(profile, which) == {
            "snap", "apt", "cargo", "github", "install_cmd",
        }

    def test_fedora(self, which):
        profile = SystemProfile(family="fedora", arch="amd64")
        assert "dnf" in detect_available_backends(profile, which)
        assert "apt" not in detect_available_backends(profile, which)

    def test_termux(self, which):
        which.present = {"pkg"}
        profile = SystemProfile(family="termux", arch="arm64")
        assert detect_available_backends(profile, which) == {"pkg", "github", "install_cmd"}


class TestInstalledCheck:
    def test_any_provided_command(self, which):
        which.present = {"rg"}
        r = Recipe(id="ripgrep", name="ripgrep", provides=("ripgrep", "rg"))
        assert find_provided(r, which) == "rg"
        assert is_recipe_installed(r, which)

    def test_no_provides_never_installed(self, which):
        which.present = {"meta"}
        assert not is_recipe_installed(Recipe(id="meta", name="meta"), which)
