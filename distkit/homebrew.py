"""Homebrew formula generation."""

from __future__ import annotations

import dataclasses
import hashlib
import re
from dataclasses import dataclass, field
from pathlib import Path

from .installers import ExecutableZipFragment, InstallerInfo
from .schema import DistManifest
from .templates import TEMPLATE_INSTALLER_RB, Templates

_SPECIAL = re.compile(r"[-_.][A-Za-z0-9]|@[0-9]|\+")

_PLATFORMS = ("arm64_macos", "x86_64_macos", "arm64_linux", "x86_64_linux")


@dataclass
class HomebrewInstallerInfo:
    """Info about a Homebrew formula."""

    name: str
    formula_class: str
    inner: InstallerInfo
    license: str | None = None
    homepage: str | None = None
    desc: str | None = None
    tap: str | None = None
    x86_64_macos: ExecutableZipFragment | None = None
    x86_64_macos_sha256: str | None = None
    arm64_macos: ExecutableZipFragment | None = None
    arm64_macos_sha256: str | None = None
    x86_64_linux: ExecutableZipFragment | None = None
    x86_64_linux_sha256: str | None = None
    arm64_linux: ExecutableZipFragment | None = None
    arm64_linux_sha256: str | None = None
    dependencies: list[str] = field(default_factory=list)


def to_class_case(app_name: str) -> str:
    """Turn an app name into the Ruby class name Homebrew expects for its formula.

    "-", "_" and "." are dropped and the following letter or digit uppercased,
    "+" becomes "x", and the first "@" followed by a digit becomes "AT".
    """
    if not app_name:
        return app_name

    first = app_name[0]
    if first.isascii():
        first = first.upper()
    text = first + app_name[1:]

    at_replaced = False

    def replace(match: re.Match[str]) -> str:
        nonlocal at_replaced
        found = match.group(0)
        if found == "+":
            return "x"
        if found[0] == "@":
            if at_replaced:
                return found
            at_replaced = True
            return "AT" + found[1]
        return found[1].upper()

    return _SPECIAL.sub(replace, text)


def _sha256_of(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def write_homebrew_formula(
    templates: Templates,
    dist_dir: str | Path,
    info: HomebrewInstallerInfo,
    manifest: DistManifest,
) -> None:
    """Render the formula to its destination, filling in checksums and dependencies.

    The given info is left unchanged. Checksums are only computed for
    archives that already exist under dist_dir.
    """
    detected = [
        lib.source
        for linkage in manifest.linkage
        for lib in linkage.homebrew
        if lib.source is not None
    ]
    filled = dataclasses.replace(info, dependencies=[*info.dependencies, *detected])

    for platform in _PLATFORMS:
        fragment = getattr(filled, platform)
        if fragment is None:
            continue
        path = Path(dist_dir) / fragment.id
        if path.exists():
            setattr(filled, f"{platform}_sha256", _sha256_of(path))

    script = templates.render_file_to_clean_string(TEMPLATE_INSTALLER_RB, filled)
    Path(filled.inner.dest_path).write_text(script, encoding="utf-8", newline="")