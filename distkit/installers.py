"""Installer descriptions and the writers for script and npm installers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .templates import (
    TEMPLATE_INSTALLER_NPM,
    TEMPLATE_INSTALLER_PS1,
    TEMPLATE_INSTALLER_SH,
    Templates,
)


@dataclass
class ExecutableZipFragment:
    """The part of an executable archive an installer needs to fetch it."""

    id: str
    target_triples: list[str] = field(default_factory=list)
    binaries: list[str] = field(default_factory=list)
    zip_style: str = ".tar.xz"


@dataclass
class InstallerInfo:
    """Generic info about an installer."""

    dest_path: Path
    app_name: str
    app_version: str
    base_url: str
    artifacts: list[ExecutableZipFragment]
    desc: str
    hint: str
    install_path: Any


@dataclass
class NpmInstallerInfo:
    """Info about an npm installer package."""

    npm_package_name: str
    npm_package_version: str
    bin: str
    package_dir: Path
    inner: InstallerInfo
    npm_package_desc: str | None = None
    npm_package_repository_url: str | None = None
    npm_package_homepage_url: str | None = None
    npm_package_authors: list[str] = field(default_factory=list)
    npm_package_license: str | None = None
    npm_package_keywords: list[str] | None = None


def _write(text: str, dest: Path, *, make_parents: bool = False) -> None:
    dest = Path(dest)
    if make_parents:
        dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(text, encoding="utf-8", newline="")


def write_install_sh_script(templates: Templates, info: InstallerInfo) -> None:
    """Render the shell installer to its destination path."""
    script = templates.render_file_to_clean_string(TEMPLATE_INSTALLER_SH, info)
    _write(script, info.dest_path)


def write_install_ps_script(templates: Templates, info: InstallerInfo) -> None:
    """Render the powershell installer to its destination path."""
    script = templates.render_file_to_clean_string(TEMPLATE_INSTALLER_PS1, info)
    _write(script, info.dest_path)


def write_npm_project(templates: Templates, info: NpmInstallerInfo) -> None:
    """Render the npm package templates into the package directory."""
    rendered = templates.render_dir_to_clean_strings(TEMPLATE_INSTALLER_NPM, info)
    for relpath, text in rendered.items():
        _write(text, Path(info.package_dir) / relpath, make_parents=True)