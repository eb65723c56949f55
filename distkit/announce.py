"""Announcement bodies for release hosts."""

from __future__ import annotations

import logging

from .schema import Artifact, ArtifactKind, DistManifest

logger = logging.getLogger(__name__)

_TRIPLE_DISPLAY_NAMES = {
    "aarch64-apple-darwin": "Apple Silicon macOS",
    "x86_64-apple-darwin": "Intel macOS",
    "i686-pc-windows-msvc": "x86 Windows",
    "x86_64-pc-windows-msvc": "x64 Windows",
    "aarch64-pc-windows-msvc": "ARM64 Windows",
    "i686-unknown-linux-gnu": "x86 Linux",
    "x86_64-unknown-linux-gnu": "x64 Linux",
    "aarch64-unknown-linux-gnu": "ARM64 Linux",
    "i686-unknown-linux-musl": "x86 MUSL Linux",
    "x86_64-unknown-linux-musl": "x64 MUSL Linux",
    "aarch64-unknown-linux-musl": "ARM64 MUSL Linux",
}


def _triple_display_name(triple: str) -> str | None:
    return _TRIPLE_DISPLAY_NAMES.get(triple)


def announcement_axodotdev(manifest: DistManifest) -> str:
    """The announcement body sent to Axo Releases."""
    title = manifest.announcement_title or ""
    body = manifest.announcement_changelog or ""
    return f"# {title}\n\n{body}"


def _download_row(artifact: Artifact, download_url: str) -> str | None:
    name = artifact.name
    # Artifacts without a name are not files and have install hints instead.
    if name is None:
        return None
    download = f"[{name}]({download_url}/{name})"
    checksum = (
        f"[checksum]({download_url}/{artifact.checksum})"
        if artifact.checksum is not None
        else ""
    )
    names = (_triple_display_name(t) for t in artifact.target_triples)
    triple = ", ".join(n for n in names if n is not None) or "Unknown"
    return f"| {download} | {triple} | {checksum} |\n"


def announcement_github(manifest: DistManifest) -> None:
    """Compute the GitHub Releases body and store it on the manifest.

    The body is only set when at least one release is hosted on GitHub.
    """
    parts: list[str] = []

    if manifest.announcement_changelog is not None:
        parts.append(f"## Release Notes\n\n{manifest.announcement_changelog}\n\n")

    announcing_github = False
    for release in manifest.releases:
        if release.hosting.github is None:
            continue
        announcing_github = True

        heading_suffix = f"{release.app_name} {release.app_version}"
        if len(manifest.releases) > 1:
            parts.append(f"# {heading_suffix}\n\n")

        global_installers: list[tuple[str, str]] = []
        local_installers: list[Artifact] = []
        bundles: list[Artifact] = []
        symbols: list[Artifact] = []

        for _artifact_id, artifact in manifest.artifacts_for_release(release):
            if artifact.kind is ArtifactKind.EXECUTABLE_ZIP:
                bundles.append(artifact)
            elif artifact.kind is ArtifactKind.SYMBOLS:
                symbols.append(artifact)
            elif artifact.kind is ArtifactKind.INSTALLER:
                if artifact.description is not None and artifact.install_hint is not None:
                    global_installers.append((artifact.description, artifact.install_hint))
                else:
                    local_installers.append(artifact)

        if global_installers:
            parts.append(f"## Install {heading_suffix}\n\n")
            for desc, hint in global_installers:
                parts.append(f"### {desc}\n\n")
                parts.append(f"```sh\n{hint}\n```\n\n")

        other_artifacts = [*bundles, *local_installers, *symbols]
        download_url = release.artifact_download_url()
        if other_artifacts and download_url is not None:
            parts.append(f"## Download {heading_suffix}\n\n")
            parts.append("|  File  | Platform | Checksum |\n")
            parts.append("|--------|----------|----------|\n")
            for artifact in other_artifacts:
                row = _download_row(artifact, download_url)
                if row is not None:
                    parts.append(row)
            parts.append("\n")

    if announcing_github:
        logger.info("successfully generated github release body!")
        manifest.announcement_github_body = "".join(parts)