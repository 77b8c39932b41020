"""Load and render the packaged ability/policy templates."""

from __future__ import annotations

import importlib.resources as resources
import json
import re
from dataclasses import dataclass, field
from functools import lru_cache
from importlib.resources.abc import Traversable
from typing import Any, Dict, Iterator, List, Mapping, Tuple

import yaml

from vincent_scaffold.exceptions import TemplateError

__all__ = [
    "MANIFEST_FILENAME",
    "TemplateType",
    "DefaultExample",
    "TemplateManifest",
    "templates_root",
    "walk_resources",
    "load_manifest",
    "validate_template_type",
    "to_camel_case",
    "substitute_variables",
    "template_files",
    "render_template",
]

MANIFEST_FILENAME = "manifest.yml"

_VARIABLE = re.compile(r"\{\{(\w+)\}\}")


@dataclass(frozen=True)
class TemplateType:
    name: str
    description: str
    implementation: str
    metadata_file: str


@dataclass(frozen=True)
class DefaultExample:
    type: str
    name: str
    summary: str = ""


@dataclass(frozen=True)
class TemplateManifest:
    types: Dict[str, TemplateType]
    required_files: List[str] = field(default_factory=list)
    shared: Dict[str, str] = field(default_factory=dict)
    renames: Dict[str, str] = field(default_factory=dict)
    skip: List[str] = field(default_factory=list)
    lit_actions: Dict[str, str] = field(default_factory=dict)
    default_policy: str = ""
    default_examples: List[DefaultExample] = field(default_factory=list)
    vincent_dependencies: List[str] = field(default_factory=list)
    env_sample: str = "env.sample"
    e2e_directory: str = "e2e"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TemplateManifest:
        types = {
            name: TemplateType(
                name=name,
                description=entry.get("description", ""),
                implementation=entry["implementation"],
                metadata_file=entry["metadata_file"],
            )
            for name, entry in (data.get("types") or {}).items()
        }
        return cls(
            types=types,
            required_files=list(data.get("required_files", [])),
            shared=dict(data.get("shared") or {}),
            renames=dict(data.get("renames") or {}),
            skip=list(data.get("skip", [])),
            lit_actions=dict(data.get("lit_actions") or {}),
            default_policy=data.get("default_policy", ""),
            default_examples=[DefaultExample(**example) for example in data.get("default_examples", [])],
            vincent_dependencies=list(data.get("vincent_dependencies", [])),
            env_sample=data.get("env_sample", "env.sample"),
            e2e_directory=data.get("e2e_directory", "e2e"),
        )


def templates_root() -> Traversable:
    return resources.files("vincent_scaffold.interfaces").joinpath("templates")


@lru_cache(maxsize=1)
def load_manifest() -> TemplateManifest:
    manifest = templates_root().joinpath(MANIFEST_FILENAME)
    if not manifest.is_file():
        raise TemplateError(f"Template manifest {MANIFEST_FILENAME} not found")
    data = yaml.safe_load(manifest.read_text(encoding="utf-8")) or {}
    return TemplateManifest.from_dict(data)


def validate_template_type(kind: str) -> TemplateType:
    manifest = load_manifest()
    try:
        return manifest.types[kind]
    except KeyError:
        available = ", ".join(sorted(manifest.types))
        raise TemplateError(f"Unknown template type '{kind}'. Available types: {available}") from None


def to_camel_case(name: str) -> str:
    """``hello-world`` -> ``helloWorld``."""
    return re.sub(r"-([a-z])", lambda m: m.group(1).upper(), name)


def substitute_variables(content: str, variables: Mapping[str, str]) -> str:
    """Replace ``{{key}}`` placeholders; unknown keys are left untouched."""

    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return _VARIABLE.sub(replace, content)


def walk_resources(node: Traversable, prefix: str = "") -> Iterator[Tuple[str, Traversable]]:
    for child in sorted(node.iterdir(), key=lambda entry: entry.name):
        relative = f"{prefix}{child.name}"
        if child.is_dir():
            yield from walk_resources(child, relative + "/")
        else:
            yield relative, child


def template_files(kind: str) -> Dict[str, str]:
    """Return ``{relative path: raw content}`` for a template type.

    Dot files are ignored except ``.gitignore`` (stored as ``gitignore``).
    Shared files from the templates root are added on top.
    """
    validate_template_type(kind)
    manifest = load_manifest()
    root = templates_root()
    directory = root.joinpath(kind)
    if not directory.is_dir():
        raise TemplateError(f"Template directory for '{kind}' not found")

    files: Dict[str, str] = {}
    for relative, entry in walk_resources(directory):
        parts = relative.split("/")
        name = parts[-1]
        if name.startswith(".") and name != ".gitignore":
            continue
        if name in manifest.skip:
            continue
        parts[-1] = manifest.renames.get(name, name)
        files["/".join(parts)] = entry.read_text(encoding="utf-8")

    for target, source in manifest.shared.items():
        shared = root.joinpath(source)
        if shared.is_file():
            files[target] = shared.read_text(encoding="utf-8")

    missing = [name for name in manifest.required_files if name not in files]
    if missing:
        raise TemplateError(f"Template '{kind}' is missing required files: {', '.join(missing)}")
    return files


def render_template(kind: str, variables: Mapping[str, str]) -> Dict[str, str]:
    rendered: Dict[str, str] = {}
    for relative, content in template_files(kind).items():
        text = substitute_variables(content, variables)
        if relative.endswith(".json"):
            try:
                text = json.dumps(json.loads(text), indent=2) + "\n"
            except json.JSONDecodeError as exc:
                raise TemplateError(f"Rendered {relative} is not valid JSON: {exc}") from exc
        rendered[relative] = text
    return rendered
