"""
Tests for repository provisioning and metadata refresh.

Runs against tmp directories and the recording fake runner; every
provisioning step must be a no-op the second time round.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.installer.fakes import DEBIAN, MACOS
from zinstall.core.services.installer.data.recipe_loader import parse_recipe
from zinstall.core.services.installer.errors import NetworkFailure, RepoProvisioningFailure
from zinstall.core.services.installer.execution.repo_setup import RepoProvisioner
from zinstall.core.services.installer.execution.session import SessionState

DOCKER_APT = (
    "https://download.docker.com/linux/%DISTRO%/gpg|docker.gpg|"
    "deb [arch=%ARCH%] https://download.docker.com/linux/%DISTRO% %CODENAME% stable"
)


def _write_keyring(cmd: list[str]) -> None:
    Path(cmd[cmd.index("-o") + 1]).write_bytes(b"dearmored")


@pytest.fixture
def fetched() -> list[str]:
    return []


@pytest.fixture
def provisioner(settings, runner, fetched):
    def fetch(url, *, timeout):
        fetched.append(url)
        return b"-----BEGIN PGP PUBLIC KEY BLOCK-----\n"

    runner.side_effects["gpg"] = _write_keyring
    return RepoProvisioner(settings, DEBIAN, SessionState(), run=runner, fetch=fetch)


class TestAptProvisioning:
    def test_writes_key_and_source(self, provisioner, settings, runner, fetched):
        recipe = parse_recipe("docker", {"apt": "docker-ce", "apt_repo": DOCKER_APT})

        assert provisioner.provision(recipe, "apt") is True

        assert fetched == ["https://download.docker.com/linux/ubuntu/gpg"]
        keyring = settings.keyring_dir / "docker.gpg"
        assert keyring.read_bytes() == b"dearmored"
        gpg = runner.commands_starting("gpg")[0]
        assert gpg[:5] == ["gpg", "--dearmor", "--yes", "-o", str(keyring)]

        source = (settings.apt_sources_dir / "docker.list").read_text(encoding="utf-8")
        assert source == (
            f"deb [signed-by={keyring} arch=amd64] "
            "https://download.docker.com/linux/ubuntu jammy stable\n"
        )
        assert "apt" in provisioner.session.needs_refresh

    def test_second_run_is_noop(self, provisioner, runner, fetched):
        recipe = parse_recipe("docker", {"apt": "docker-ce", "apt_repo": DOCKER_APT})
        provisioner.provision(recipe, "apt")
        provisioner.session.mark_refreshed("apt")
        calls = len(runner.calls)

        assert provisioner.provision(recipe, "apt") is False
        assert len(fetched) == 1
        assert len(runner.calls) == calls
        assert "apt" not in provisioner.session.needs_refresh

    def test_changed_source_is_rewritten(self, provisioner, settings):
        recipe = parse_recipe("tool", {"apt": "tool", "apt_repo": "deb https://r stable main"})
        (settings.apt_sources_dir / "tool.list").write_text("deb https://old stable main\n")

        assert provisioner.provision(recipe, "apt") is True
        assert (settings.apt_sources_dir / "tool.list").read_text() == "deb https://r stable main\n"

    def test_key_download_failure(self, settings, runner):
        def fetch(url, *, timeout):
            raise NetworkFailure(url, "HTTP 404")

        provisioner = RepoProvisioner(settings, DEBIAN, SessionState(), run=runner, fetch=fetch)
        recipe = parse_recipe("docker", {"apt": "docker-ce", "apt_repo": DOCKER_APT})
        with pytest.raises(NetworkFailure):
            provisioner.provision(recipe, "apt")
        assert not (settings.apt_sources_dir / "docker.list").exists()

    def test_dearmor_failure(self, provisioner, runner):
        runner.fail_tokens.add("gpg")
        recipe = parse_recipe("docker", {"apt": "docker-ce", "apt_repo": DOCKER_APT})
        with pytest.raises(RepoProvisioningFailure) as exc:
            provisioner.provision(recipe, "apt")
        assert exc.value.recipe_id == "docker"
        assert exc.value.backend == "apt"

    def test_bad_descriptor(self, provisioner):
        recipe = parse_recipe("x", {"apt": "x", "apt_repo": "https://k|x.gpg"})
        with pytest.raises(RepoProvisioningFailure):
            provisioner.provision(recipe, "apt")

    def test_other_backend_ignores_apt_repo(self, provisioner, runner):
        recipe = parse_recipe("docker", {"snap": "docker", "apt_repo": DOCKER_APT})
        assert provisioner.provision(recipe, "snap") is False
        assert runner.calls == []


class TestDnfProvisioning:
    URL = "https://download.docker.com/linux/fedora/docker-ce.repo"

    def test_adds_repo_once(self, settings, runner):
        provisioner = RepoProvisioner(settings, DEBIAN, SessionState(), run=runner)
        recipe = parse_recipe("docker", {"dnf": "docker-ce", "dnf_repo": self.URL})

        assert provisioner.provision(recipe, "dnf") is True
        assert runner.calls == [["dnf", "config-manager", "--add-repo", self.URL]]
        assert runner.kwargs[0]["needs_sudo"] is True
        assert "dnf" in provisioner.session.needs_refresh

        (settings.yum_repos_dir / "docker-ce.repo").write_text("[docker-ce]\n")
        assert provisioner.provision(recipe, "dnf") is False
        assert len(runner.calls) == 1


class TestBrewTaps:
    def test_only_missing_taps_added(self, settings, runner):
        runner.outputs["brew tap"] = "homebrew/core\nderailed/k9s\n"
        provisioner = RepoProvisioner(settings, MACOS, SessionState(), run=runner)
        recipe = parse_recipe("k9s", {"brew": "k9s", "brew_tap": "derailed/k9s other/tap"})

        assert provisioner.provision(recipe, "brew") is True
        assert runner.calls == [["brew", "tap"], ["brew", "tap", "other/tap"]]
        assert "brew" in provisioner.session.needs_refresh

    def test_all_tapped(self, settings, runner):
        runner.outputs["brew tap"] = "derailed/k9s\n"
        provisioner = RepoProvisioner(settings, MACOS, SessionState(), run=runner)
        recipe = parse_recipe("k9s", {"brew": "k9s", "brew_tap": "derailed/k9s"})
        assert provisioner.provision(recipe, "brew") is False

    def test_cask_flags_brew(self, settings, runner):
        provisioner = RepoProvisioner(settings, MACOS, SessionState(), run=runner)
        recipe = parse_recipe("font", {"brew-cask": "font-x", "brew_tap": "homebrew/cask-fonts"})
        provisioner.provision(recipe, "brew-cask")
        assert provisioner.session.needs_refresh == {"brew"}


class TestRefresh:
    def test_once_per_session(self, provisioner, runner):
        assert provisioner.refresh("apt") is True
        assert provisioner.refresh("apt") is False
        assert runner.calls == [["apt", "update", "-qq"]]
        assert runner.kwargs[0]["needs_sudo"] is True

    def test_again_after_flag(self, provisioner, runner):
        provisioner.refresh("apt")
        provisioner.session.flag_refresh("apt")
        assert provisioner.refresh("apt") is True
        assert len(runner.calls) == 2

    def test_force(self, provisioner, runner):
        provisioner.refresh("apt")
        assert provisioner.refresh("apt", force=True) is True

    def test_cask_and_brew_share_refresh(self, settings, runner):
        provisioner = RepoProvisioner(settings, MACOS, SessionState(), run=runner)
        provisioner.refresh("brew")
        assert provisioner.refresh("brew-cask") is False
        assert runner.calls == [["brew", "update"]]

    def test_backend_without_refresh(self, provisioner, runner):
        assert provisioner.refresh("snap") is False
        assert runner.calls == []

    def test_failure(self, provisioner, runner):
        runner.fail_tokens.add("update")
        with pytest.raises(RepoProvisioningFailure):
            provisioner.refresh("apt")
        assert "apt" not in provisioner.session.refreshed
