"""Running `cargo build` for a target and collecting the binaries it produces."""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Iterable, Mapping, Sequence, Union

logger = logging.getLogger(__name__)

#: The cargo profile that release builds use.
PROFILE_DIST = "dist"

Command = Union[str, Path, Sequence[str]]


class BuildError(Exception):
    """A build step failed or did not produce what was expected."""


@dataclass
class CargoBuildStep:
    """One invocation of `cargo build` for a target triple.

    A package of None builds the whole workspace.
    """

    target_triple: str
    package: str | None = None
    features: list[str] = field(default_factory=list)
    all_features: bool = False
    default_features: bool = True
    rustflags: str = ""
    profile: str = PROFILE_DIST


@dataclass
class RustupStep:
    """Make sure rustup has the toolchain for a target installed."""

    rustup: str
    target: str


@dataclass
class ExpectedBinary:
    """A binary a build should produce, and where to copy it and its symbols."""

    package_id: str
    name: str
    copy_exe_to: list[Path] = field(default_factory=list)
    copy_symbols_to: list[Path] = field(default_factory=list)


def target_rustflags(target: str, base_rustflags: str, msvc_crt_static: bool) -> str:
    """RUSTFLAGS for a target: the base flags plus static-CRT flags where needed."""
    rustflags = base_rustflags
    # Static libc on windows is opt-in through the config.
    if msvc_crt_static and "windows-msvc" in target:
        rustflags += " -Ctarget-feature=+crt-static"
    # The musl default may change; pin it now.
    if target.endswith("linux-musl"):
        rustflags += " -Ctarget-feature=+crt-static -Clink-self-contained=yes"
    return rustflags


def needs_rustup(target: str, host_target: str) -> bool:
    """Whether building target on host_target needs rustup to add the toolchain."""
    if (
        target.endswith("apple-darwin")
        and host_target.endswith("apple-darwin")
        and target != host_target
    ):
        return True
    return target.endswith("linux-musl") and host_target.endswith("linux-gnu")


def cargo_build_args(step: CargoBuildStep) -> list[str]:
    """The arguments to pass to cargo for a build step."""
    args = [
        "build",
        "--profile",
        step.profile,
        "--message-format=json-render-diagnostics",
        "--target",
        step.target_triple,
    ]
    if not step.default_features:
        args.append("--no-default-features")
    if step.all_features:
        args.append("--all-features")
    else:
        # cargo wants one --features per feature
        for feature in step.features:
            args += ["--features", feature]
    if step.package is None:
        args.append("--workspace")
    else:
        args += ["--package", step.package]
    return args


def _parse_message(message: Any) -> Mapping | None:
    if isinstance(message, Mapping):
        return message
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    if not isinstance(message, str) or not message.strip():
        return None
    try:
        data = json.loads(message)
    except ValueError:
        logger.warning("failed to parse cargo json message: %r", message)
        return None
    return data if isinstance(data, dict) else None


def collect_outputs(
    messages: Iterable[Any], binaries: Iterable[ExpectedBinary]
) -> list[tuple[Path, Path]]:
    """Match cargo's JSON messages to the expected binaries.

    Returns (source, destination) pairs for every executable, then every
    symbol file, to copy. Messages that cannot be read are skipped; a
    binary or symbol file that never showed up raises BuildError.
    """
    binaries = list(binaries)
    exe_sources: dict[tuple[str, str], Path] = {}
    sym_sources: dict[tuple[str, str], Path] = {}

    for raw in messages:
        message = _parse_message(raw)
        if message is None or message.get("reason") != "compiler-artifact":
            continue
        executable = message.get("executable")
        if not executable:
            continue
        logger.info("got a new exe: %s", executable)
        key = (str(message.get("package_id")), PurePath(executable).stem)
        exe_sources[key] = Path(executable)
        for filename in message.get("filenames") or ():
            if PurePath(filename).suffix == ".pdb":
                sym_sources[key] = Path(filename)

    exe_copies: list[tuple[Path, Path]] = []
    sym_copies: list[tuple[Path, Path]] = []
    for binary in binaries:
        key = (binary.package_id, binary.name)
        if binary.copy_exe_to:
            src = exe_sources.get(key)
            if src is None:
                raise BuildError(
                    f"failed to find bin {binary.name} ({binary.package_id}) "
                    "-- did the cargo build above have errors?"
                )
            exe_copies += [(src, Path(dest)) for dest in binary.copy_exe_to]
        if binary.copy_symbols_to:
            src = sym_sources.get(key)
            if src is None:
                raise BuildError(
                    f"failed to find symbols for bin {binary.name} ({binary.package_id}) "
                    "-- did the cargo build above have errors?"
                )
            sym_copies += [(src, Path(dest)) for dest in binary.copy_symbols_to]
    return exe_copies + sym_copies


def _command(program: Command) -> list[str]:
    if isinstance(program, (str, Path)):
        return [str(program)]
    return [str(part) for part in program]


def _copy(src: Path, dest: Path) -> None:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
    except OSError as exc:
        raise BuildError(f"failed to copy {src} to {dest}") from exc


def build_cargo_target(
    cargo: Command, step: CargoBuildStep, binaries: Iterable[ExpectedBinary]
) -> None:
    """Run cargo for a build step and copy the produced binaries into place."""
    scope = "--workspace" if step.package is None else f"--package={step.package}"
    print(
        f"building cargo target ({step.target_triple}/{step.profile} {scope})",
        file=sys.stderr,
    )
    command = _command(cargo) + cargo_build_args(step)
    env = {**os.environ, "RUSTFLAGS": step.rustflags}
    logger.info("exec: %s", command)
    try:
        process = subprocess.Popen(
            command, stdout=subprocess.PIPE, env=env, text=True
        )
    except OSError as exc:
        raise BuildError(f"failed to exec cargo build: {command}") from exc

    with process:
        assert process.stdout is not None
        messages = list(process.stdout)

    for src, dest in collect_outputs(messages, binaries):
        _copy(src, dest)


def rustup_toolchain(rustup: Command, target: str) -> None:
    """Run `rustup target add` for a target; raises BuildError on failure."""
    print(f"running rustup to ensure you have {target} installed", file=sys.stderr)
    try:
        result = subprocess.run([*_command(rustup), "target", "add", target])
    except OSError as exc:
        raise BuildError("Failed to install rustup toolchain") from exc
    if result.returncode != 0:
        raise BuildError("Failed to install rustup toolchain")