import json
import sys
from pathlib import Path

import pytest

from distkit.cargo_build import (
    PROFILE_DIST,
    BuildError,
    CargoBuildStep,
    ExpectedBinary,
    RustupStep,
    build_cargo_target,
    cargo_build_args,
    collect_outputs,
    needs_rustup,
    rustup_toolchain,
    target_rustflags,
)


def test_msvc_crt_static_added():
    flags = target_rustflags("x86_64-pc-windows-msvc", "-Cbase", True)
    assert flags == "-Cbase -Ctarget-feature=+crt-static"


def test_msvc_crt_static_disabled_keeps_base():
    assert target_rustflags("x86_64-pc-windows-msvc", "-Cbase", False) == "-Cbase"
    assert target_rustflags("x86_64-unknown-linux-gnu", "-Cbase", True) == "-Cbase"


def test_musl_flags_added():
    flags = target_rustflags("x86_64-unknown-linux-musl", "", False)
    assert flags == " -Ctarget-feature=+crt-static -Clink-self-contained=yes"


@pytest.mark.parametrize(
    "target,host,expected",
    [
        ("aarch64-apple-darwin", "x86_64-apple-darwin", True),
        ("x86_64-apple-darwin", "x86_64-apple-darwin", False),
        ("aarch64-apple-darwin", "x86_64-unknown-linux-gnu", False),
        ("x86_64-unknown-linux-musl", "x86_64-unknown-linux-gnu", True),
        ("x86_64-unknown-linux-musl", "x86_64-apple-darwin", False),
        ("x86_64-pc-windows-msvc", "x86_64-unknown-linux-gnu", False),
    ],
)
def test_needs_rustup(target, host, expected):
    assert needs_rustup(target, host) is expected


def test_cargo_build_args_workspace_defaults():
    step = CargoBuildStep(target_triple="x86_64-unknown-linux-gnu")
    assert cargo_build_args(step) == [
        "build",
        "--profile",
        PROFILE_DIST,
        "--message-format=json-render-diagnostics",
        "--target",
        "x86_64-unknown-linux-gnu",
        "--workspace",
    ]


def test_cargo_build_args_package_and_features():
    step = CargoBuildStep(
        target_triple="x86_64-apple-darwin",
        package="app",
        features=["a", "b"],
        default_features=False,
    )
    args = cargo_build_args(step)
    assert args[6:] == [
        "--no-default-features",
        "--features",
        "a",
        "--features",
        "b",
        "--package",
        "app",
    ]


def test_cargo_build_args_all_features_ignores_list():
    step = CargoBuildStep(target_triple="t", features=["a"], all_features=True)
    args = cargo_build_args(step)
    assert "--all-features" in args
    assert "--features" not in args


def _artifact(package_id, exe, filenames=None):
    return {
        "reason": "compiler-artifact",
        "package_id": package_id,
        "executable": exe,
        "filenames": filenames if filenames is not None else [exe],
    }


def test_collect_outputs_exes_then_symbols(tmp_path):
    binary = ExpectedBinary(
        package_id="pkg",
        name="app",
        copy_exe_to=[tmp_path / "out" / "app.exe"],
        copy_symbols_to=[tmp_path / "out" / "app.pdb"],
    )
    messages = [
        {"reason": "build-script-executed"},
        _artifact("pkg", "/build/app.exe", ["/build/app.exe", "/build/app.pdb"]),
    ]
    copies = collect_outputs(messages, [binary])
    assert copies == [
        (Path("/build/app.exe"), tmp_path / "out" / "app.exe"),
        (Path("/build/app.pdb"), tmp_path / "out" / "app.pdb"),
    ]


def test_collect_outputs_skips_unreadable_lines(tmp_path):
    binary = ExpectedBinary("pkg", "app", copy_exe_to=[tmp_path / "a", tmp_path / "b"])
    messages = ["garbage", "", json.dumps(_artifact("pkg", "/build/app"))]
    copies = collect_outputs(messages, [binary])
    assert [dest for _, dest in copies] == [tmp_path / "a", tmp_path / "b"]
    assert all(src == Path("/build/app") for src, _ in copies)


def test_collect_outputs_wrong_package_is_missing(tmp_path):
    binary = ExpectedBinary("pkg", "app", copy_exe_to=[tmp_path / "a"])
    with pytest.raises(BuildError, match="failed to find bin app"):
        collect_outputs([_artifact("other", "/build/app")], [binary])


def test_collect_outputs_missing_symbols(tmp_path):
    binary = ExpectedBinary("pkg", "app", copy_symbols_to=[tmp_path / "a.pdb"])
    with pytest.raises(BuildError, match="failed to find symbols for bin app"):
        collect_outputs([_artifact("pkg", "/build/app")], [binary])


def test_collect_outputs_nothing_expected():
    binary = ExpectedBinary("pkg", "app")
    assert collect_outputs([], [binary]) == []


def _fake_cargo(tmp_path, exe):
    record = tmp_path / "record.json"
    script = tmp_path / "cargo.py"
    message = _artifact("pkg", str(exe))
    script.write_text(
        "import json, os, sys\n"
        "print('not json')\n"
        f"print(json.dumps({message!r}))\n"
        f"with open({str(record)!r}, 'w') as f:\n"
        "    json.dump({'argv': sys.argv[1:], 'rustflags': os.environ.get('RUSTFLAGS')}, f)\n"
    )
    return [sys.executable, str(script)], record


def test_build_cargo_target_copies_binary(tmp_path):
    exe = tmp_path / "target" / "app"
    exe.parent.mkdir()
    exe.write_bytes(b"binary")
    cargo, record = _fake_cargo(tmp_path, exe)
    dest = tmp_path / "dist" / "app"
    step = CargoBuildStep(target_triple="x86_64-unknown-linux-gnu", rustflags="-Cflag")

    build_cargo_target(cargo, step, [ExpectedBinary("pkg", "app", copy_exe_to=[dest])])

    assert dest.read_bytes() == b"binary"
    recorded = json.loads(record.read_text())
    assert recorded["argv"] == cargo_build_args(step)
    assert recorded["rustflags"] == "-Cflag"


def test_build_cargo_target_missing_binary(tmp_path):
    cargo, _ = _fake_cargo(tmp_path, tmp_path / "other")
    step = CargoBuildStep(target_triple="x86_64-unknown-linux-gnu")
    binary = ExpectedBinary("pkg", "app", copy_exe_to=[tmp_path / "dest"])
    with pytest.raises(BuildError):
        build_cargo_target(cargo, step, [binary])
    assert not (tmp_path / "dest").exists()


def test_build_cargo_target_unrunnable(tmp_path):
    step = CargoBuildStep(target_triple="t")
    with pytest.raises(BuildError, match="failed to exec cargo build"):
        build_cargo_target(tmp_path / "no-such-cargo", step, [])


def test_rustup_toolchain_passes_target(tmp_path):
    record = tmp_path / "args.json"
    script = tmp_path / "rustup.py"
    script.write_text(
        "import json, sys\n"
        f"open({str(record)!r}, 'w').write(json.dumps(sys.argv[1:]))\n"
    )
    step = RustupStep(rustup=sys.executable, target="aarch64-apple-darwin")
    rustup_toolchain([step.rustup, str(script)], step.target)
    assert json.loads(record.read_text()) == ["target", "add", "aarch64-apple-darwin"]


def test_rustup_toolchain_failure(tmp_path):
    script = tmp_path / "rustup.py"
    script.write_text("import sys\nsys.exit(1)\n")
    with pytest.raises(BuildError, match="Failed to install rustup toolchain"):
        rustup_toolchain([sys.executable, str(script)], "x86_64-unknown-linux-musl")


def test_rustup_toolchain_missing_program(tmp_path):
    with pytest.raises(BuildError):
        rustup_toolchain(tmp_path / "no-such-rustup", "x86_64-unknown-linux-musl")