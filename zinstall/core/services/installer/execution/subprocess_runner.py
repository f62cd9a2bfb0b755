"""
L4 Execution — Command runner.

Every package-manager, git, gpg and hook command goes through
``run_command``. It never raises: timeouts, missing executables and
non-zero exits all come back as a result dict, so callers decide which
error class a failure maps to.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any

logger = logging.getLogger(__name__)

# Captured stderr kept on failure (tail)
_STDERR_TAIL = 4000


def _is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def _with_sudo(cmd: list[str], password: str) -> tuple[list[str], str | None]:
    """Prefix *cmd* for privilege escalation; returns ``(cmd, stdin)``.

    A password is fed on stdin (``sudo -S -k``) and never appears in argv
    or logs. Without one, sudo prompts on the terminal.
    """
    if _is_root():
        return cmd, None
    if password:
        return ["sudo", "-S", "-k", *cmd], password + "\n"
    return ["sudo", *cmd], None


def _merged_env(overrides: dict[str, str] | None) -> dict[str, str] | None:
    if not overrides:
        return None
    env = dict(os.environ)
    env.update({k: os.path.expandvars(v) for k, v in overrides.items()})
    return env


def run_command(
    cmd: list[str],
    *,
    needs_sudo: bool = False,
    sudo_password: str = "",
    timeout: int | None = 1800,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
    stream: bool = False,
) -> dict[str, Any]:
    """Run *cmd* and describe the outcome.

    Args:
        cmd: Argument list; never passed through a shell.
        needs_sudo: Escalate unless already root.
        sudo_password: Optional password for ``sudo -S``.
        timeout: Seconds to wait, ``None`` for no limit.
        env_overrides: Extra environment variables (``$VAR`` expanded).
        cwd: Working directory.
        stream: Leave stdout/stderr attached to the terminal (package
            manager progress bars, interactive prompts).

    Returns:
        ``{"ok", "returncode", "stdout", "stderr", "error", "elapsed_ms"}``;
        ``error`` is only present when ``ok`` is False. A missing
        executable reports returncode 127.
    """
    stdin = None
    if needs_sudo:
        cmd, stdin = _with_sudo(cmd, sudo_password)

    logger.debug("$ %s", " ".join(cmd))
    started = time.monotonic()
    try:
        proc = subprocess.run(
            cmd,
            input=stdin,
            capture_output=not stream,
            text=True,
            timeout=timeout,
            env=_merged_env(env_overrides),
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "returncode": None, "error": f"Timed out after {timeout}s: {cmd[0]}"}
    except FileNotFoundError:
        return {"ok": False, "returncode": 127, "error": f"Command not found: {cmd[0]}"}
    except OSError as e:
        logger.debug("Cannot start %s", cmd[0], exc_info=True)
        return {"ok": False, "returncode": None, "error": f"Cannot run {cmd[0]}: {e}"}

    result: dict[str, Any] = {
        "ok": proc.returncode == 0,
        "returncode": proc.returncode,
        "stdout": proc.stdout or "",
        "stderr": (proc.stderr or "")[-_STDERR_TAIL:],
        "elapsed_ms": int((time.monotonic() - started) * 1000),
    }
    if proc.returncode != 0:
        if stdin is not None and "incorrect password" in result["stderr"].lower():
            result["error"] = "Wrong sudo password"
        else:
            result["error"] = f"{cmd[0]} exited with status {proc.returncode}"
        logger.debug("%s failed: %s", cmd[0], result["stderr"].strip()[-500:])
    return result
