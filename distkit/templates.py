"""Loading and rendering of the jinja2 templates used for generated files."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from pathlib import Path, PurePath, PurePosixPath
from typing import Any, Mapping, Union

import jinja2
from jinja2.exceptions import TemplateRuntimeError

TEMPLATE_INSTALLER_PS1 = "installer/installer.ps1"
TEMPLATE_INSTALLER_SH = "installer/installer.sh"
TEMPLATE_INSTALLER_RB = "installer/homebrew.rb"
TEMPLATE_INSTALLER_NPM = "installer/npm"
TEMPLATE_CI_GITHUB = "ci/github_ci.yml"

_ENV_MISC = "*"
# GitHub workflow files already use {{ }}, so yml templates get an extra brace.
_ENV_YAML = "yml"


@dataclass
class TemplateFile:
    """A template file; its path (without .j2) relative to the root is its id."""

    name: str
    path: PurePosixPath
    env: str

    def path_from_ancestor(self, ancestor: TemplateDir) -> PurePosixPath:
        """The path of this file relative to an enclosing directory."""
        try:
            return self.path.relative_to(ancestor.path)
        except ValueError:
            raise ValueError(
                f"template {self.path} is not nested under {ancestor.path}"
            ) from None


@dataclass
class TemplateDir:
    """A directory of templates; its path relative to the root is its id."""

    name: str
    path: PurePosixPath
    entries: dict[str, Union[TemplateDir, TemplateFile]] = field(default_factory=dict)


def _raise_error(details: str) -> str:
    raise TemplateRuntimeError(details)


def _serialize(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return _serialize(value.value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _serialize(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_serialize(v) for v in value]
    return value


def _context(val: Any) -> dict:
    context = _serialize(val)
    if not isinstance(context, dict):
        raise TypeError("template values must be a mapping or a dataclass")
    return context


def _clean(rendered: str) -> str:
    if not rendered.endswith("\n"):
        rendered += "\n"
    return rendered.replace("\r\n", "\n")


class Templates:
    """All the .j2 templates found under a root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        sources: dict[str, dict[str, str]] = {_ENV_MISC: {}, _ENV_YAML: {}}
        self.entries = TemplateDir(name="", path=PurePosixPath("."))
        self._load_files(self.root, PurePosixPath("."), self.entries, sources)

        self._envs = {
            _ENV_MISC: jinja2.Environment(loader=jinja2.DictLoader(sources[_ENV_MISC])),
            _ENV_YAML: jinja2.Environment(
                loader=jinja2.DictLoader(sources[_ENV_YAML]),
                block_start_string="{{%",
                block_end_string="%}}",
                variable_start_string="{{{",
                variable_end_string="}}}",
                comment_start_string="{{#",
                comment_end_string="#}}",
            ),
        }
        for env in self._envs.values():
            env.globals["error"] = _raise_error

    @classmethod
    def _load_files(
        cls,
        directory: Path,
        rel: PurePosixPath,
        parent: TemplateDir,
        sources: dict[str, dict[str, str]],
    ) -> None:
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            entry_rel = rel / entry.name
            if entry.is_dir():
                subdir = TemplateDir(name=entry.name, path=entry_rel)
                cls._load_files(entry, entry_rel, subdir, sources)
                parent.entries[entry.name] = subdir
            elif entry.suffix == ".j2":
                path = entry_rel.with_suffix("")
                env = _ENV_YAML if path.suffix == ".yml" else _ENV_MISC
                sources[env][str(path)] = entry.read_text(encoding="utf-8")
                parent.entries[path.name] = TemplateFile(name=path.name, path=path, env=env)
        parent.entries = dict(sorted(parent.entries.items()))

    def _get_entry(self, key: str) -> TemplateDir | TemplateFile:
        entry: TemplateDir | TemplateFile = self.entries
        for part in key.split("/"):
            if not isinstance(entry, TemplateDir) or part not in entry.entries:
                raise KeyError(f"invalid template key: {key}")
            entry = entry.entries[part]
        return entry

    def get_template_file(self, key: str) -> TemplateFile:
        """The template file with this key."""
        entry = self._get_entry(key)
        if not isinstance(entry, TemplateFile):
            raise ValueError(f"template key was not a file: {key}")
        return entry

    def get_template_dir(self, key: str) -> TemplateDir:
        """The template directory with this key."""
        entry = self._get_entry(key)
        if not isinstance(entry, TemplateDir):
            raise ValueError(f"template key was not a dir: {key}")
        return entry

    def _render(self, file: TemplateFile, context: dict) -> str:
        template = self._envs[file.env].get_template(str(file.path))
        return _clean(template.render(**context))

    def render_file_to_clean_string(self, key: str, val: Any) -> str:
        """Render one template, ending in a newline and with unix newlines."""
        return self._render(self.get_template_file(key), _context(val))

    def render_dir_to_clean_strings(self, key: str, val: Any) -> dict[PurePosixPath, str]:
        """Render every template under a directory, keyed by path relative to it."""
        root_dir = self.get_template_dir(key)
        context = _context(val)
        output: dict[PurePosixPath, str] = {}

        def walk(directory: TemplateDir) -> None:
            for entry in directory.entries.values():
                if isinstance(entry, TemplateDir):
                    walk(entry)
                else:
                    output[entry.path_from_ancestor(root_dir)] = self._render(entry, context)

        walk(root_dir)
        return output