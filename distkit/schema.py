"""Data model for dist-manifest.json, the report of releases and artifacts."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Iterator

import semver

#: The version of the manifest format this package writes.
SELF_VERSION = "0.5.0"
#: The last version of the first (unsupported) epoch.
DIST_EPOCH_1_MAX = "0.0.3-prerelease8"
#: The last version whose artifact names contained version numbers.
DIST_EPOCH_2_MAX = "0.0.6-prerelease6"


# ---------------------------------------------------------------------------
# parsing helpers


def _mapping(data: Any, owner: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{owner}: expected a JSON object")
    return data


def _require(data: dict, key: str, owner: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{owner}: missing field {key!r}") from None


def _opt_str(data: dict, key: str, owner: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{owner}: field {key!r} must be a string")
    return value


def _req_str(data: dict, key: str, owner: str) -> str:
    value = _require(data, key, owner)
    if not isinstance(value, str):
        raise ValueError(f"{owner}: field {key!r} must be a string")
    return value


def _bool(data: dict, key: str, owner: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ValueError(f"{owner}: field {key!r} must be a boolean")
    return value


def _list(data: dict, key: str, owner: str, *, required: bool = False) -> list:
    value = _require(data, key, owner) if required else data.get(key)
    if value is None and not required:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{owner}: field {key!r} must be a list")
    return value


def _str_list(values: list, key: str, owner: str) -> list[str]:
    if not all(isinstance(v, str) for v in values):
        raise ValueError(f"{owner}: field {key!r} must hold strings")
    return list(values)


def _drop_none(**pairs: Any) -> dict:
    return {key: value for key, value in pairs.items() if value is not None}


def _parse_version(version: semver.Version | str) -> semver.Version:
    if isinstance(version, semver.Version):
        return version
    return semver.Version.parse(version)


# ---------------------------------------------------------------------------
# enums


class PrRunMode(str, enum.Enum):
    """Type of job to run on pull request (the default is PLAN)."""

    SKIP = "skip"
    PLAN = "plan"
    UPLOAD = "upload"

    def __str__(self) -> str:
        return self.value


class Format(enum.IntEnum):
    """Coarse-grained periods of the manifest format."""

    EPOCH1 = 1
    EPOCH2 = 2
    EPOCH3 = 3
    FUTURE = 4

    def unsupported(self) -> bool:
        """Whether this format is too old to be supported."""
        return self <= Format.EPOCH1

    def artifact_names_contain_versions(self) -> bool:
        """Whether this format has version numbers in artifact names."""
        return self <= Format.EPOCH2


class ArtifactKind(str, enum.Enum):
    """A kind of artifact; unknown kinds read as UNKNOWN."""

    EXECUTABLE_ZIP = "executable-zip"
    SYMBOLS = "symbols"
    INSTALLER = "installer"
    CHECKSUM = "checksum"
    SOURCE_TARBALL = "source-tarball"
    EXTRA_ARTIFACT = "extra-artifact"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> ArtifactKind | None:
        return cls.UNKNOWN if isinstance(value, str) else None


class AssetKind(str, enum.Enum):
    """A kind of asset inside an artifact; unknown kinds read as UNKNOWN."""

    EXECUTABLE = "executable"
    README = "readme"
    LICENSE = "license"
    CHANGELOG = "changelog"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> AssetKind | None:
        return cls.UNKNOWN if isinstance(value, str) else None


# ---------------------------------------------------------------------------
# artifacts


@dataclass
class ExecutableAsset:
    """Extra details of an executable asset."""

    symbols_artifact: str | None = None


@dataclass
class Asset:
    """An asset contained in an artifact (executable, license, ...)."""

    kind: AssetKind = AssetKind.UNKNOWN
    name: str | None = None
    path: str | None = None
    executable: ExecutableAsset | None = None

    def __post_init__(self) -> None:
        if self.kind is AssetKind.EXECUTABLE:
            if self.executable is None:
                self.executable = ExecutableAsset()
        else:
            self.executable = None

    @classmethod
    def _from_dict(cls, data: Any) -> Asset:
        owner = "asset"
        data = _mapping(data, owner)
        kind = AssetKind(_require(data, "kind", owner))
        executable = None
        if kind is AssetKind.EXECUTABLE:
            executable = ExecutableAsset(
                symbols_artifact=_opt_str(data, "symbols_artifact", owner)
            )
        return cls(
            kind=kind,
            name=_opt_str(data, "name", owner),
            path=_opt_str(data, "path", owner),
            executable=executable,
        )

    def _to_dict(self) -> dict:
        out = _drop_none(name=self.name, path=self.path)
        out["kind"] = self.kind.value
        if self.executable is not None and self.executable.symbols_artifact is not None:
            out["symbols_artifact"] = self.executable.symbols_artifact
        return out


@dataclass
class Artifact:
    """A distributable artifact that is part of a release."""

    kind: ArtifactKind
    name: str | None = None
    target_triples: list[str] = field(default_factory=list)
    path: str | None = None
    assets: list[Asset] = field(default_factory=list)
    install_hint: str | None = None
    description: str | None = None
    checksum: str | None = None

    @classmethod
    def _from_dict(cls, data: Any) -> Artifact:
        owner = "artifact"
        data = _mapping(data, owner)
        return cls(
            kind=ArtifactKind(_require(data, "kind", owner)),
            name=_opt_str(data, "name", owner),
            target_triples=_str_list(
                _list(data, "target_triples", owner), "target_triples", owner
            ),
            path=_opt_str(data, "path", owner),
            assets=[Asset._from_dict(a) for a in _list(data, "assets", owner)],
            install_hint=_opt_str(data, "install_hint", owner),
            description=_opt_str(data, "description", owner),
            checksum=_opt_str(data, "checksum", owner),
        )

    def _to_dict(self) -> dict:
        out = _drop_none(name=self.name)
        out["kind"] = self.kind.value
        if self.target_triples:
            out["target_triples"] = list(self.target_triples)
        if self.path is not None:
            out["path"] = self.path
        if self.assets:
            out["assets"] = [a._to_dict() for a in self.assets]
        out.update(
            _drop_none(
                install_hint=self.install_hint,
                description=self.description,
                checksum=self.checksum,
            )
        )
        return out


# ---------------------------------------------------------------------------
# hosting and releases


@dataclass
class GithubHosting:
    """Hosting on GitHub Releases."""

    artifact_download_url: str

    @classmethod
    def _from_dict(cls, data: Any) -> GithubHosting:
        owner = "github hosting"
        data = _mapping(data, owner)
        return cls(_req_str(data, "artifact_download_url", owner))

    def _to_dict(self) -> dict:
        return {"artifact_download_url": self.artifact_download_url}


@dataclass
class AxodotdevHosting:
    """Hosting on Axo Releases; fields beyond the download URL are kept as-is."""

    set_download_url: str | None = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def _from_dict(cls, data: Any) -> AxodotdevHosting:
        owner = "axodotdev hosting"
        data = _mapping(data, owner)
        extra = {k: v for k, v in data.items() if k != "set_download_url"}
        return cls(_opt_str(data, "set_download_url", owner), extra)

    def _to_dict(self) -> dict:
        out = dict(self.extra)
        if self.set_download_url is not None:
            out["set_download_url"] = self.set_download_url
        return out


@dataclass
class Hosting:
    """The hosting providers of a release."""

    github: GithubHosting | None = None
    axodotdev: AxodotdevHosting | None = None

    def artifact_download_url(self) -> str | None:
        """Base URL to download artifacts from, preferring Axo over GitHub."""
        if self.axodotdev is not None:
            return self.axodotdev.set_download_url
        if self.github is not None:
            return self.github.artifact_download_url
        return None

    def is_empty(self) -> bool:
        """Whether there is no hosting at all."""
        return self.axodotdev is None and self.github is None

    @classmethod
    def _from_dict(cls, data: Any) -> Hosting:
        data = _mapping(data, "hosting")
        github = data.get("github")
        axo = data.get("axodotdev")
        return cls(
            github=None if github is None else GithubHosting._from_dict(github),
            axodotdev=None if axo is None else AxodotdevHosting._from_dict(axo),
        )

    def _to_dict(self) -> dict:
        out: dict = {}
        if self.github is not None:
            out["github"] = self.github._to_dict()
        if self.axodotdev is not None:
            out["axodotdev"] = self.axodotdev._to_dict()
        return out


@dataclass
class Release:
    """A release of an application."""

    app_name: str
    app_version: str
    artifacts: list[str] = field(default_factory=list)
    hosting: Hosting = field(default_factory=Hosting)

    def artifact_download_url(self) -> str | None:
        """Base URL that artifact names are appended to for downloading."""
        return self.hosting.artifact_download_url()

    @classmethod
    def _from_dict(cls, data: Any) -> Release:
        owner = "release"
        data = _mapping(data, owner)
        hosting = data.get("hosting")
        return cls(
            app_name=_req_str(data, "app_name", owner),
            app_version=_req_str(data, "app_version", owner),
            artifacts=_str_list(_list(data, "artifacts", owner), "artifacts", owner),
            hosting=Hosting() if hosting is None else Hosting._from_dict(hosting),
        )

    def _to_dict(self) -> dict:
        out: dict = {"app_name": self.app_name, "app_version": self.app_version}
        if self.artifacts:
            out["artifacts"] = list(self.artifacts)
        if not self.hosting.is_empty():
            out["hosting"] = self.hosting._to_dict()
        return out


# ---------------------------------------------------------------------------
# system and CI info


@dataclass
class SystemInfo:
    """Info about the toolchain of the machine that wrote the manifest."""

    cargo_version_line: str | None = None

    @classmethod
    def _from_dict(cls, data: Any) -> SystemInfo:
        data = _mapping(data, "system info")
        return cls(_opt_str(data, "cargo_version_line", "system info"))

    def _to_dict(self) -> dict:
        return {"cargo_version_line": self.cargo_version_line}


@dataclass
class GithubMatrixEntry:
    """One entry of a GitHub CI matrix."""

    targets: list[str] | None = None
    runner: str | None = None
    install_dist: str | None = None
    dist_args: str | None = None
    packages_install: str | None = None

    @classmethod
    def _from_dict(cls, data: Any) -> GithubMatrixEntry:
        owner = "matrix entry"
        data = _mapping(data, owner)
        targets = data.get("targets")
        if targets is not None:
            if not isinstance(targets, list):
                raise ValueError(f"{owner}: field 'targets' must be a list")
            targets = _str_list(targets, "targets", owner)
        return cls(
            targets=targets,
            runner=_opt_str(data, "runner", owner),
            install_dist=_opt_str(data, "install_dist", owner),
            dist_args=_opt_str(data, "dist_args", owner),
            packages_install=_opt_str(data, "packages_install", owner),
        )

    def _to_dict(self) -> dict:
        return _drop_none(
            targets=None if self.targets is None else list(self.targets),
            runner=self.runner,
            install_dist=self.install_dist,
            dist_args=self.dist_args,
            packages_install=self.packages_install,
        )


@dataclass
class GithubMatrix:
    """A GitHub CI matrix with explicitly listed entries."""

    include: list[GithubMatrixEntry] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Whether the matrix has no entries."""
        return not self.include

    @classmethod
    def _from_dict(cls, data: Any) -> GithubMatrix:
        data = _mapping(data, "matrix")
        return cls([GithubMatrixEntry._from_dict(e) for e in _list(data, "include", "matrix")])

    def _to_dict(self) -> dict:
        return {"include": [e._to_dict() for e in self.include]} if self.include else {}


@dataclass
class GithubCiInfo:
    """GitHub CI backend info."""

    artifacts_matrix: GithubMatrix | None = None
    pr_run_mode: PrRunMode | None = None

    @classmethod
    def _from_dict(cls, data: Any) -> GithubCiInfo:
        data = _mapping(data, "github ci")
        matrix = data.get("artifacts_matrix")
        mode = data.get("pr_run_mode")
        try:
            pr_run_mode = None if mode is None else PrRunMode(mode)
        except ValueError:
            raise ValueError(f"github ci: unknown pr_run_mode {mode!r}") from None
        return cls(
            artifacts_matrix=None if matrix is None else GithubMatrix._from_dict(matrix),
            pr_run_mode=pr_run_mode,
        )

    def _to_dict(self) -> dict:
        out: dict = {}
        if self.artifacts_matrix is not None:
            out["artifacts_matrix"] = self.artifacts_matrix._to_dict()
        if self.pr_run_mode is not None:
            out["pr_run_mode"] = self.pr_run_mode.value
        return out


@dataclass
class CiInfo:
    """CI backend info."""

    github: GithubCiInfo | None = None

    @classmethod
    def _from_dict(cls, data: Any) -> CiInfo:
        data = _mapping(data, "ci")
        github = data.get("github")
        return cls(None if github is None else GithubCiInfo._from_dict(github))

    def _to_dict(self) -> dict:
        return {} if self.github is None else {"github": self.github._to_dict()}


# ---------------------------------------------------------------------------
# linkage


@dataclass
class Library:
    """A dynamic library located somewhere on the system."""

    path: str
    source: str | None = None

    @classmethod
    def _from_dict(cls, data: Any) -> Library:
        data = _mapping(data, "library")
        return cls(_req_str(data, "path", "library"), _opt_str(data, "source", "library"))

    def _to_dict(self) -> dict:
        return _drop_none(path=self.path, source=self.source)


_LIBRARY_GROUPS = ("system", "homebrew", "public_unmanaged", "other", "frameworks")


@dataclass
class Linkage:
    """Dynamic libraries used by one binary."""

    binary: str
    target: str
    system: list[Library] = field(default_factory=list)
    homebrew: list[Library] = field(default_factory=list)
    public_unmanaged: list[Library] = field(default_factory=list)
    other: list[Library] = field(default_factory=list)
    frameworks: list[Library] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: Any) -> Linkage:
        owner = "linkage"
        data = _mapping(data, owner)
        groups = {
            name: [Library._from_dict(lib) for lib in _list(data, name, owner, required=True)]
            for name in _LIBRARY_GROUPS
        }
        return cls(
            binary=_req_str(data, "binary", owner),
            target=_req_str(data, "target", owner),
            **groups,
        )

    def _to_dict(self) -> dict:
        out: dict = {"binary": self.binary, "target": self.target}
        for name in _LIBRARY_GROUPS:
            out[name] = [lib._to_dict() for lib in getattr(self, name)]
        return out


# ---------------------------------------------------------------------------
# the manifest


@dataclass
class VersionInfo:
    """The version of a manifest and its format epoch."""

    version: semver.Version
    format: Format


@dataclass
class DistManifest:
    """A report of the releases and artifacts that were generated."""

    releases: list[Release] = field(default_factory=list)
    artifacts: dict[str, Artifact] = field(default_factory=dict)
    dist_version: str | None = None
    announcement_tag: str | None = None
    announcement_is_prerelease: bool = False
    announcement_title: str | None = None
    announcement_changelog: str | None = None
    announcement_github_body: str | None = None
    system_info: SystemInfo | None = None
    publish_prereleases: bool = False
    ci: CiInfo | None = None
    linkage: list[Linkage] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> DistManifest:
        """Build a manifest from decoded JSON; raises ValueError if malformed."""
        owner = "manifest"
        data = _mapping(data, owner)
        artifacts_raw = data.get("artifacts") or {}
        artifacts_raw = _mapping(artifacts_raw, "artifacts")
        system_info = data.get("system_info")
        ci = data.get("ci")
        return cls(
            releases=[Release._from_dict(r) for r in _list(data, "releases", owner)],
            artifacts={k: Artifact._from_dict(v) for k, v in artifacts_raw.items()},
            dist_version=_opt_str(data, "dist_version", owner),
            announcement_tag=_opt_str(data, "announcement_tag", owner),
            announcement_is_prerelease=_bool(data, "announcement_is_prerelease", owner),
            announcement_title=_opt_str(data, "announcement_title", owner),
            announcement_changelog=_opt_str(data, "announcement_changelog", owner),
            announcement_github_body=_opt_str(data, "announcement_github_body", owner),
            system_info=None if system_info is None else SystemInfo._from_dict(system_info),
            publish_prereleases=_bool(data, "publish_prereleases", owner),
            ci=None if ci is None else CiInfo._from_dict(ci),
            linkage=[Linkage._from_dict(l) for l in _list(data, "linkage", owner, required=True)],
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dict, omitting empty optional fields."""
        out = _drop_none(
            dist_version=self.dist_version,
            announcement_tag=self.announcement_tag,
        )
        out["announcement_is_prerelease"] = self.announcement_is_prerelease
        out.update(
            _drop_none(
                announcement_title=self.announcement_title,
                announcement_changelog=self.announcement_changelog,
                announcement_github_body=self.announcement_github_body,
            )
        )
        if self.system_info is not None:
            out["system_info"] = self.system_info._to_dict()
        if self.releases:
            out["releases"] = [r._to_dict() for r in self.releases]
        if self.artifacts:
            out["artifacts"] = {k: self.artifacts[k]._to_dict() for k in sorted(self.artifacts)}
        out["publish_prereleases"] = self.publish_prereleases
        if self.ci is not None:
            out["ci"] = self.ci._to_dict()
        out["linkage"] = [l._to_dict() for l in self.linkage]
        return out

    @classmethod
    def from_json(cls, text: str) -> DistManifest:
        """Parse a manifest from JSON text."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"manifest: invalid JSON: {exc}") from exc
        return cls.from_dict(data)

    def to_json(self) -> str:
        """Serialize the manifest as pretty-printed JSON."""
        return json.dumps(self.to_dict(), indent=2)

    def format(self) -> Format:
        """The format epoch of this manifest, FUTURE if the version is unreadable."""
        if self.dist_version is None:
            return Format.FUTURE
        try:
            return format_of_version(self.dist_version)
        except ValueError:
            return Format.FUTURE

    def artifacts_for_release(self, release: Release) -> Iterator[tuple[str, Artifact]]:
        """Yield (id, artifact) for each of the release's artifacts that exists."""
        for artifact_id in release.artifacts:
            artifact = self.artifacts.get(artifact_id)
            if artifact is not None:
                yield artifact_id, artifact

    def release_by_name(self, name: str) -> Release | None:
        """Look up a release by its app name."""
        return next((r for r in self.releases if r.app_name == name), None)

    def update_release_axodotdev_artifact_download_url(self, name: str, new_url: str) -> None:
        """Swap in a new Axo download URL and rewrite install hints that used the old one."""
        release = self.release_by_name(name)
        if release is None:
            return
        host = release.hosting.axodotdev
        if host is None:
            return
        old_url = host.set_download_url
        host.set_download_url = new_url
        if old_url is None:
            return
        for artifact_id in release.artifacts:
            try:
                artifact = self.artifacts[artifact_id]
            except KeyError:
                raise KeyError(
                    f"release referenced non-existent artifact {artifact_id!r}"
                ) from None
            if artifact.install_hint is not None:
                artifact.install_hint = artifact.install_hint.replace(old_url, new_url)

    def ensure_release(self, name: str, version: str) -> Release:
        """Get the release with this name, adding an empty one if absent."""
        release = self.release_by_name(name)
        if release is None:
            release = Release(app_name=name, app_version=version)
            self.releases.append(release)
        return release


def check_version(text: str) -> VersionInfo | None:
    """Minimally read the version info out of manifest JSON, or None."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    raw = data.get("dist_version")
    if not isinstance(raw, str):
        return None
    try:
        version = semver.Version.parse(raw)
    except ValueError:
        return None
    return VersionInfo(version=version, format=format_of_version(version))


def format_of_version(version: semver.Version | str) -> Format:
    """The format epoch a given version belongs to."""
    version = _parse_version(version)
    if version > semver.Version.parse(SELF_VERSION):
        return Format.FUTURE
    if version > semver.Version.parse(DIST_EPOCH_2_MAX):
        return Format.EPOCH3
    if version > semver.Version.parse(DIST_EPOCH_1_MAX):
        return Format.EPOCH2
    return Format.EPOCH1