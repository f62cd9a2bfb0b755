"""
Tests for install method selection and command building.
"""

from __future__ import annotations

import pytest

from zinstall.core.models.recipe import Recipe, ShellExpression
from zinstall.core.services.installer.data.backends import BACKEND_ORDER, BACKENDS, refresh_key
from zinstall.core.services.installer.resolver.method_selection import (
    build_install_cmd,
    parse_github_spec,
    pick_install_method,
)


def _recipe(**methods) -> Recipe:
    install_cmd = methods.pop("install_cmd", None)
    return Recipe(
        id="tool",
        name="tool",
        methods=methods,
        install_cmd=ShellExpression(text=install_cmd) if install_cmd else None,
    )


class TestBackendTable:
    def test_precedence_order(self):
        assert BACKEND_ORDER == (
            "brew", "brew-cask", "pkg", "flatpak", "snap",
            "apt", "dnf", "pacman", "cargo", "github", "install_cmd",
        )

    def test_only_github_and_install_cmd_are_single(self):
        single = {b for b, spec in BACKENDS.items() if not spec.batchable}
        assert single == {"github", "install_cmd"}

    def test_cask_shares_brew_refresh(self):
        assert refresh_key("brew-cask") == "brew"
        assert refresh_key("apt") == "apt"


class TestPickInstallMethod:
    def test_lowest_precedence_wins(self):
        r = _recipe(apt="ripgrep", cargo="ripgrep", brew="ripgrep")
        assert pick_install_method(r, {"apt", "cargo", "brew"}) == "brew"

    def test_unavailable_backend_skipped(self):
        r = _recipe(brew="ripgrep", apt="ripgrep")
        assert pick_install_method(r, {"apt", "github", "install_cmd"}) == "apt"

    def test_empty_spec_skipped(self):
        r = _recipe(apt="  ", cargo="ripgrep")
        assert pick_install_method(r, {"apt", "cargo"}) == "cargo"

    def test_install_cmd_last(self):
        r = _recipe(github="rg:BurntSushi/ripgrep", install_cmd="make install")
        assert pick_install_method(r, {"github", "install_cmd"}) == "github"
        assert pick_install_method(r, {"install_cmd"}) == "install_cmd"

    def test_no_method(self):
        assert pick_install_method(_recipe(brew="x"), {"apt", "github", "install_cmd"}) is None


class TestBuildInstallCmd:
    def test_apt(self):
        assert build_install_cmd("apt", ["pkg-b", "pkg-a"]) == [
            "apt", "install", "-y", "pkg-b", "pkg-a",
        ]

    def test_multi_package_specs_and_dedup(self):
        cmd = build_install_cmd("brew-cask", ["docker", "iterm2 docker"])
        assert cmd == ["brew", "install", "--cask", "docker", "iterm2"]

    def test_specs_split_on_whitespace_only(self):
        cmd = build_install_cmd("apt", ["pkg-a 'oops", "pkg-b\tpkg-c"])
        assert cmd == ["apt", "install", "-y", "pkg-a", "'oops", "pkg-b", "pkg-c"]

    def test_non_batchable(self):
        with pytest.raises(ValueError):
            build_install_cmd("github", ["x:o/r"])


class TestParseGithubSpec:
    def test_full(self):
        assert parse_github_spec("lazygit:jesseduffield/lazygit@v0.40.2") == (
            "lazygit", "jesseduffield/lazygit", "v0.40.2",
        )

    def test_defaults(self):
        assert parse_github_spec("sharkdp/bat") == ("bat", "sharkdp/bat", "latest")

    @pytest.mark.parametrize("spec", ["bat", "app:owner/", "a:b/c/d@1"])
    def test_invalid(self, spec):
        with pytest.raises(ValueError):
            parse_github_spec(spec)
