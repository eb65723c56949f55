import pytest

from distkit.installers import (
    ExecutableZipFragment,
    InstallerInfo,
    NpmInstallerInfo,
    write_install_ps_script,
    write_install_sh_script,
    write_npm_project,
)
from distkit.templates import Templates


@pytest.fixture
def templates(tmp_path):
    root = tmp_path / "templates"
    (root / "installer" / "npm" / "bin").mkdir(parents=True)
    (root / "installer" / "installer.sh.j2").write_text(
        "#!/bin/sh\n{% for a in artifacts %}{{ base_url }}/{{ a.id }} {{ a.zip_style }}\n{% endfor %}",
        encoding="utf-8",
    )
    (root / "installer" / "installer.ps1.j2").write_text(
        "Write-Output '{{ app_name }} {{ app_version }}'\r\n", encoding="utf-8"
    )
    (root / "installer" / "npm" / "package.json.j2").write_text(
        '{"name": "{{ npm_package_name }}", "version": "{{ npm_package_version }}"}',
        encoding="utf-8",
    )
    (root / "installer" / "npm" / "bin" / "run.js.j2").write_text(
        "{{ bin }} {{ inner.app_name }}", encoding="utf-8"
    )
    return Templates(root)


def make_info(dest):
    return InstallerInfo(
        dest_path=dest,
        app_name="app",
        app_version="1.0.0",
        base_url="https://example.com/dl",
        artifacts=[
            ExecutableZipFragment(
                id="app-x86_64-unknown-linux-gnu.tar.xz",
                target_triples=["x86_64-unknown-linux-gnu"],
                binaries=["app"],
                zip_style=".tar.xz",
            )
        ],
        desc="Install prebuilt binaries via shell script",
        hint="sh installer.sh",
        install_path={"kind": "CargoHome"},
    )


def test_shell_script_written(templates, tmp_path):
    dest = tmp_path / "installer.sh"
    write_install_sh_script(templates, make_info(dest))
    text = dest.read_text(encoding="utf-8")
    assert text.startswith("#!/bin/sh\n")
    assert "https://example.com/dl/app-x86_64-unknown-linux-gnu.tar.xz .tar.xz\n" in text
    assert text.endswith("\n")


def test_powershell_script_written_with_unix_newlines(templates, tmp_path):
    dest = tmp_path / "installer.ps1"
    write_install_ps_script(templates, make_info(dest))
    data = dest.read_bytes()
    assert b"\r" not in data
    assert data.decode("utf-8").startswith("Write-Output 'app 1.0.0'")


def test_npm_project_written(templates, tmp_path):
    package_dir = tmp_path / "npm-pkg"
    info = NpmInstallerInfo(
        npm_package_name="app-npm",
        npm_package_version="1.0.0",
        bin="app",
        package_dir=package_dir,
        inner=make_info(tmp_path / "unused"),
    )
    write_npm_project(templates, info)
    assert (package_dir / "bin" / "run.js").read_text(encoding="utf-8") == "app app\n"
    package_json = (package_dir / "package.json").read_text(encoding="utf-8")
    assert '"name": "app-npm"' in package_json
    assert package_json.endswith("\n")


def test_missing_destination_dir_fails(templates, tmp_path):
    dest = tmp_path / "absent" / "installer.sh"
    with pytest.raises(FileNotFoundError):
        write_install_sh_script(templates, make_info(dest))