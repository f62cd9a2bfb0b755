"""
L1 Domain — Repository descriptors and repo-line templates (pure).

APT descriptors read ``key_url|keyring_name|repo_line_template``. The
template may use ``%CODENAME%``, ``%ARCH%``, ``%DISTRO%`` and
``%KEYRING%``. DNF descriptors are a bare ``.repo`` URL.
No I/O, no subprocess.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

_TOKEN_RE = re.compile(r"%([A-Z_]+)%")


@dataclass(frozen=True)
class AptRepo:
    key_url: str
    keyring_name: str
    line_template: str

    @property
    def has_key(self) -> bool:
        return bool(self.key_url and self.keyring_name)


def parse_apt_repo(descriptor: str) -> AptRepo:
    """Split an APT descriptor.

    A descriptor without ``|`` is a bare repo line with no key. A
    keyring name of ``null`` (or empty) means no keyring.

    Raises:
        ValueError: If the descriptor has an empty repo line.
    """
    parts = [p.strip() for p in descriptor.split("|", 2)]
    if len(parts) == 1:
        key_url, keyring, line = "", "", parts[0]
    elif len(parts) == 2:
        raise ValueError(f"Incomplete apt descriptor: {descriptor!r}")
    else:
        key_url, keyring, line = parts
    if keyring == "null":
        keyring = ""
    if not line:
        raise ValueError(f"Empty repo line in apt descriptor: {descriptor!r}")
    return AptRepo(key_url=key_url, keyring_name=keyring, line_template=line)


def render_template(template: str, tokens: dict[str, str]) -> str:
    """Replace ``%TOKEN%`` placeholders; unknown tokens are left as-is."""
    return _TOKEN_RE.sub(
        lambda m: tokens.get(m.group(1), m.group(0)), template,
    )


def render_repo_line(template: str, tokens: dict[str, str], keyring_path: str = "") -> str:
    """Render an APT source line.

    When a keyring is in use and the template does not reference it,
    ``signed-by=`` is injected after ``deb``.
    """
    line = render_template(template, {**tokens, "KEYRING": keyring_path})
    if keyring_path and "signed-by=" not in line:
        if line.startswith("deb ["):
            line = line.replace("deb [", f"deb [signed-by={keyring_path} ", 1)
        elif line.startswith("deb "):
            line = line.replace("deb ", f"deb [signed-by={keyring_path}] ", 1)
    return line


def repo_filename(url: str) -> str:
    """Local file name of a ``.repo`` URL (its last path segment)."""
    path = urlparse(url).path or url
    name = path.rstrip("/").rsplit("/", 1)[-1]
    if not name:
        raise ValueError(f"Cannot derive a repo file name from {url!r}")
    return name
