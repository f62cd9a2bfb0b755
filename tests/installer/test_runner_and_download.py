"""
Tests for the command runner and HTTP helpers, with subprocess and
urllib patched out.
"""

from __future__ import annotations

import io
import subprocess
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from zinstall.core.services.installer.errors import NetworkFailure
from zinstall.core.services.installer.execution import download
from zinstall.core.services.installer.execution.subprocess_runner import run_command

RUNNER = "zinstall.core.services.installer.execution.subprocess_runner"


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class TestRunCommand:
    @patch(f"{RUNNER}.subprocess.run", return_value=_completed(stdout="ok\n"))
    def test_success(self, mock_run):
        result = run_command(["brew", "tap"])
        assert result["ok"]
        assert result["stdout"] == "ok\n"
        assert mock_run.call_args.args[0] == ["brew", "tap"]
        assert mock_run.call_args.kwargs["capture_output"] is True

    @patch(f"{RUNNER}._is_root", return_value=False)
    @patch(f"{RUNNER}.subprocess.run", return_value=_completed())
    def test_sudo_prefix(self, mock_run, _root):
        run_command(["apt", "update", "-qq"], needs_sudo=True)
        assert mock_run.call_args.args[0] == ["sudo", "apt", "update", "-qq"]

    @patch(f"{RUNNER}._is_root", return_value=False)
    @patch(f"{RUNNER}.subprocess.run", return_value=_completed())
    def test_sudo_password_on_stdin(self, mock_run, _root):
        run_command(["apt", "install", "-y", "x"], needs_sudo=True, sudo_password="hunter2")
        args, kwargs = mock_run.call_args
        assert args[0][:3] == ["sudo", "-S", "-k"]
        assert "hunter2" not in args[0]
        assert kwargs["input"] == "hunter2\n"

    @patch(f"{RUNNER}._is_root", return_value=True)
    @patch(f"{RUNNER}.subprocess.run", return_value=_completed())
    def test_root_needs_no_sudo(self, mock_run, _root):
        run_command(["apt", "update"], needs_sudo=True)
        assert mock_run.call_args.args[0] == ["apt", "update"]

    @patch(f"{RUNNER}.subprocess.run", return_value=_completed(returncode=100, stderr="E: boom"))
    def test_failure(self, _run):
        result = run_command(["apt", "install", "-y", "nope"])
        assert not result["ok"]
        assert result["returncode"] == 100
        assert result["stderr"] == "E: boom"
        assert "100" in result["error"]

    @patch(f"{RUNNER}.subprocess.run", side_effect=FileNotFoundError)
    def test_missing_executable(self, _run):
        result = run_command(["nope"])
        assert result["returncode"] == 127
        assert not result["ok"]

    @patch(f"{RUNNER}.subprocess.run", side_effect=subprocess.TimeoutExpired(["x"], 5))
    def test_timeout(self, _run):
        result = run_command(["x"], timeout=5)
        assert not result["ok"]
        assert "Timed out" in result["error"]

    @patch(f"{RUNNER}.subprocess.run", return_value=_completed())
    def test_stream_leaves_output_attached(self, mock_run):
        run_command(["apt", "install", "-y", "x"], stream=True)
        assert mock_run.call_args.kwargs["capture_output"] is False


class TestDownload:
    def _response(self, body: bytes) -> MagicMock:
        resp = MagicMock()
        resp.__enter__.return_value = io.BytesIO(body)
        return resp

    @patch("urllib.request.urlopen")
    def test_fetch_json(self, mock_open):
        mock_open.return_value = self._response(b'{"tag_name": "v1.2.3"}')
        assert download.fetch_json("https://api.github.com/x", timeout=3) == {"tag_name": "v1.2.3"}
        req = mock_open.call_args.args[0]
        assert req.get_header("User-agent").startswith("zinstall/")
        assert mock_open.call_args.kwargs["timeout"] == 3

    @patch("urllib.request.urlopen")
    def test_http_error(self, mock_open):
        mock_open.side_effect = urllib.error.HTTPError("https://x", 404, "Not Found", {}, None)
        with pytest.raises(NetworkFailure) as exc:
            download.fetch_bytes("https://x")
        assert exc.value.url == "https://x"
        assert "404" in str(exc.value)

    @patch("urllib.request.urlopen")
    def test_unreachable(self, mock_open):
        mock_open.side_effect = urllib.error.URLError("Name or service not known")
        with pytest.raises(NetworkFailure, match="Name or service"):
            download.fetch_bytes("https://x")
        assert mock_open.call_count == 1

    @patch("urllib.request.urlopen")
    def test_download_to(self, mock_open, tmp_path):
        mock_open.return_value = self._response(b"archive-bytes")
        dest = download.download_to("https://x/a.tar.gz", tmp_path / "dl" / "a.tar.gz")
        assert dest.read_bytes() == b"archive-bytes"

    @patch("urllib.request.urlopen")
    def test_bad_json(self, mock_open):
        mock_open.return_value = self._response(b"<html>")
        with pytest.raises(NetworkFailure, match="bad response"):
            download.fetch_json("https://x")
