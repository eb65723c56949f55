# distkit

A library for shipping compiled applications. It reads and writes release
manifests, writes release announcements, renders installers from Jinja
templates and drives `cargo build` for a target.

## Installation

```
pip install distkit
```

With the test dependencies:

```
pip install "distkit[test]"
```

## Modules

- `distkit.schema`: the release manifest model (`DistManifest`, `Release`,
  `Artifact`, `Asset`, `Hosting`, `Linkage`, `Library`, `CiInfo`, ...).
  `DistManifest.from_json` / `DistManifest.to_json` and
  `from_dict` / `to_dict` convert to and from JSON; malformed input raises
  `ValueError`. Unknown artifact and asset kinds read as `UNKNOWN`.
  `check_version` reads just the `dist_version` out of manifest JSON, and
  `format_of_version` tells which `Format` epoch a version belongs to.
  The manifest also offers `release_by_name`, `ensure_release`,
  `artifacts_for_release` and
  `update_release_axodotdev_artifact_download_url`.
- `distkit.announce`: `announcement_github(manifest)` builds the GitHub
  release body (release notes, install commands and a download table with
  platforms and checksums) and stores it in
  `manifest.announcement_github_body` when at least one release is hosted on
  GitHub. `announcement_axodotdev(manifest)` returns `"# <title>\n\n<changelog>"`.
- `distkit.diffing`: `diff_files(path, contents)` raises
  `CheckFileMismatch` (carrying a unified diff) when the file on disk does
  not hold the given contents. A missing file counts as empty and CRLF/LF
  differences are ignored.
- `distkit.templates`: `Templates(root)` loads every `.j2` file under a
  directory; the key of a template is its relative path without `.j2`.
  Templates whose name ends in `.yml` use `{{{ }}}`, `{{% %}}` and
  `{{# #}}` delimiters so that GitHub expressions pass through. Rendering
  always ends in a newline and uses unix newlines; an `error(msg)`
  function is available inside templates to fail rendering.
- `distkit.installers`: `InstallerInfo`, `ExecutableZipFragment`,
  `NpmInstallerInfo`, and `write_install_sh_script`,
  `write_install_ps_script` and `write_npm_project`, which render the
  `installer/installer.sh`, `installer/installer.ps1` and `installer/npm`
  templates.
- `distkit.homebrew`: `to_class_case` turns an app name into Homebrew's
  formula class name; `write_homebrew_formula` renders
  `installer/homebrew.rb`, adding dependencies found in the manifest's
  linkage data and sha256 sums of archives that exist in the dist directory.
- `distkit.cargo_build`: `build_cargo_target` runs cargo for a
  `CargoBuildStep` and copies each `ExpectedBinary` (and its `.pdb`
  symbols) to where it is wanted, raising `BuildError` when something is
  missing. `cargo_build_args`, `collect_outputs`, `target_rustflags`,
  `needs_rustup` and `rustup_toolchain` are the pieces it is made of.

## Examples

```python
from distkit.schema import DistManifest
from distkit.announce import announcement_github

with open("dist-manifest.json") as fh:
    manifest = DistManifest.from_json(fh.read())

announcement_github(manifest)
print(manifest.announcement_github_body)
```

```python
from distkit.homebrew import to_class_case

to_class_case("openssl@3")   # "OpensslAT3"
to_class_case("last.fm")     # "LastFm"
```

## What it does not do

- There is no command-line program; everything is called from Python.
- It does not generate CI workflow files, pick CI runners or plan CI build
  matrices. The manifest model can hold a GitHub matrix, but nothing here
  computes one.
- It ships no templates of its own: `Templates` is pointed at a directory
  you provide.