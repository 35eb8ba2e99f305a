"""Manifest discovery and file-map loading for the command line.

A manifest is either ``cpconfig.yaml`` (or ``.yml``) or a ``pyproject.toml``
carrying a ``[tool.cpconfig]`` table.  Its payload takes one of three forms:

- a bare map of ``path -> {contents, gitignore, mode, sentinel}``
- ``{files: <map>, options: {...}}``
- ``{module: <reference>, options: {...}}``, where the reference names a
  Python object (``pkg.mod:attr`` or ``tools/files.py:attr``) or a data
  file (``.yaml``, ``.yml``, ``.json``).  A callable object is invoked once
  with a :class:`ConfigContext` and must return a map or ``{files: <map>}``.
"""

from __future__ import annotations

import abc
import dataclasses
import importlib
import importlib.util
import json
import os
import sys
import tomllib
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from .core import logger
from .errors import ConfigSourceError, ConfigValidationError
from .models import ConfigEntry, SyncOptions
from .paths import resolve_gitignore_path

MANIFEST_NAMES = ("cpconfig.yaml", "cpconfig.yml")
PYPROJECT = "pyproject.toml"
DEFAULT_ATTRIBUTE = "files"

_DATA_SUFFIXES = {".yaml", ".yml", ".json"}


@dataclasses.dataclass(frozen=True)
class ConfigContext:
    """Arguments handed to a file-map factory."""

    root_dir: Path
    package_dir: Path
    manifest_path: Path
    dry_run: bool


@dataclasses.dataclass(frozen=True)
class LoadedConfig:
    files: dict[str, Any]
    options: SyncOptions
    package_dir: Path
    source: Path


# ── Module loader strategies ─────────────────────────────────────────


def _split_reference(reference: str) -> tuple[str, str]:
    """Split ``target:attr``; a colon that belongs to a drive or path is kept."""
    target, sep, attr = reference.rpartition(":")
    if sep and attr and "/" not in attr and "\\" not in attr and target:
        return target, attr
    return reference, DEFAULT_ATTRIBUTE


def _get_attribute(module: Any, attr: str, reference: str) -> Any:
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ConfigSourceError(f"Module {reference!r} has no attribute {attr!r}") from None


class ModuleLoader(abc.ABC):
    """Strategy for turning a ``module`` reference into a Python object."""

    name: str = ""

    @abc.abstractmethod
    def accepts(self, reference: str, base_dir: Path) -> bool:
        """Whether this loader handles *reference*, relative to *base_dir*."""

    @abc.abstractmethod
    def load(self, reference: str, base_dir: Path) -> Any:
        """Load *reference*, raising ``ConfigSourceError`` on failure."""


class PythonFileLoader(ModuleLoader):
    name = "python-file"

    def accepts(self, reference: str, base_dir: Path) -> bool:
        target, _ = _split_reference(reference)
        return target.endswith(".py")

    def load(self, reference: str, base_dir: Path) -> Any:
        target, attr = _split_reference(reference)
        path = Path(target)
        if not path.is_absolute():
            path = base_dir / path
        if not path.is_file():
            raise ConfigSourceError(f"Config module not found: {path}")

        module_name = f"_cpconfig_{path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ConfigSourceError(f"Cannot load config module {path}")
        module = importlib.util.module_from_spec(spec)
        # dataclasses and typing resolve names through sys.modules while the body runs
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise ConfigSourceError(f"Failed to load config module {path}: {exc}") from exc
        return _get_attribute(module, attr, reference)


class DataFileLoader(ModuleLoader):
    """A ``.yaml``/``.yml``/``.json`` path without an ``:attr`` suffix.

    A bare name such as ``mypkg.json`` is only taken as a data file when it
    exists; otherwise it is left to the dotted importer.
    """

    name = "data-file"

    def accepts(self, reference: str, base_dir: Path) -> bool:
        target, _ = _split_reference(reference)
        if target != reference or Path(reference).suffix.lower() not in _DATA_SUFFIXES:
            return False
        if "/" in reference or "\\" in reference or Path(reference).is_absolute():
            return True
        return (base_dir / reference).is_file()


class DottedModuleLoader(ModuleLoader):
    """Import ``pkg.mod[:attr]`` with the manifest directory importable."""

    name = "dotted-module"

    def accepts(self, reference: str, base_dir: Path) -> bool:
        target, _ = _split_reference(reference)
        return all(part.isidentifier() for part in target.split("."))

    def load(self, reference: str, base_dir: Path) -> Any:
        target, attr = _split_reference(reference)
        inserted = str(base_dir) not in sys.path
        if inserted:
            sys.path.insert(0, str(base_dir))
        importlib.invalidate_caches()
        try:
            module = importlib.import_module(target)
        except ImportError as exc:
            raise ConfigSourceError(f"Could not import config module {target!r}: {exc}") from exc
        except Exception as exc:
            raise ConfigSourceError(f"Failed to load config module {target!r}: {exc}") from exc
        finally:
            if inserted:
                sys.path.remove(str(base_dir))
        return _get_attribute(module, attr, reference)


DEFAULT_LOADERS: tuple[ModuleLoader, ...] = (
    PythonFileLoader(),
    DataFileLoader(),
    DottedModuleLoader(),
)


def load_module_reference(
    reference: str,
    base_dir: Path,
    loaders: Sequence[ModuleLoader] = DEFAULT_LOADERS,
) -> Any:
    """Load *reference* with the first loader that accepts it."""
    for loader in loaders:
        if loader.accepts(reference, base_dir):
            logger.debug(f"Loading {reference!r} with {loader.name} loader")
            return loader.load(reference, base_dir)
    raise ConfigSourceError(f"No loader accepts config module reference {reference!r}")


# ── Manifest reading ─────────────────────────────────────────────────


def read_data_file(path: Path) -> Any:
    """Parse a YAML, JSON or TOML file by suffix."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigSourceError(f"Cannot read {path}: {exc}") from exc

    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            return json.loads(text)
        if suffix == ".toml":
            return tomllib.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise ConfigSourceError(f"Failed to parse {path}: {exc}") from exc


def _pyproject_payload(path: Path) -> Any:
    data = read_data_file(path)
    tool = data.get("tool", {}) if isinstance(data, dict) else {}
    return tool.get("cpconfig") if isinstance(tool, dict) else None


def find_manifest(start: Path) -> Path:
    """Nearest manifest at or above *start*; ``cpconfig.yaml`` wins over pyproject.

    A ``pyproject.toml`` without a ``[tool.cpconfig]`` table is skipped.
    """
    current = Path(os.path.abspath(start))
    while True:
        for name in MANIFEST_NAMES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        candidate = current / PYPROJECT
        if candidate.is_file():
            if _pyproject_payload(candidate) is not None:
                return candidate
            logger.debug(f"Skipping {candidate}: no [tool.cpconfig] table")
        if current.parent == current:
            break
        current = current.parent
    raise ConfigSourceError(f"Unable to locate a cpconfig manifest starting from {start}")


def read_manifest(path: Path) -> Any:
    """Raw payload of a manifest file."""
    if path.name == PYPROJECT:
        payload = _pyproject_payload(path)
    else:
        payload = read_data_file(path)
    if payload is None:
        raise ConfigSourceError(f"No cpconfig definition found in {path}")
    return payload


# ── Payload parsing ──────────────────────────────────────────────────


def _to_file_map(value: Any, source: Path) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigSourceError(
            f"Invalid cpconfig definition in {source}. "
            "Expected an object of files or { files, options }."
        )
    entries: dict[str, Any] = {}
    for file_path, raw in value.items():
        if not isinstance(raw, ConfigEntry) and not (isinstance(raw, Mapping) and "contents" in raw):
            raise ConfigSourceError(
                f'Invalid entry for "{file_path}" in {source}. '
                "Each file must be an object with a contents property."
            )
        entries[file_path] = raw
    return entries


def _split_payload(payload: Any, source: Path) -> tuple[Any, str | None, Any]:
    """Return ``(files, module_reference, options)`` from a manifest payload."""
    if not isinstance(payload, Mapping):
        raise ConfigSourceError(
            f"Invalid cpconfig definition in {source}. "
            "Expected an object of files or { files, options }."
        )

    if "module" in payload:
        unknown = set(payload) - {"module", "options"}
        if unknown or not isinstance(payload["module"], str) or not payload["module"].strip():
            raise ConfigSourceError(
                f"Invalid cpconfig definition in {source}. "
                "Expected { module: <reference>, options }."
            )
        return None, payload["module"].strip(), payload.get("options")

    if "files" in payload:
        unknown = set(payload) - {"files", "options"}
        if unknown:
            raise ConfigSourceError(
                f"Invalid cpconfig definition in {source}: unknown keys {sorted(unknown)}"
            )
        return payload["files"], None, payload.get("options")

    return payload, None, None


def _unwrap_module_result(value: Any) -> Any:
    if isinstance(value, Mapping) and set(value) == {"files"}:
        return value["files"]
    return value


def load_config(
    cwd: Path,
    config_path: str | None = None,
    *,
    root_dir: str | None = None,
    gitignore_path: str | None = None,
    dry_run: bool = False,
    loaders: Sequence[ModuleLoader] = DEFAULT_LOADERS,
) -> LoadedConfig:
    """Locate and read the manifest, resolve options, and produce the file map.

    *root_dir* resolves from the manifest directory and wins over the
    manifest's own ``root_dir``.  *gitignore_path* resolves from the
    effective root.  *dry_run* can only switch dry-run mode on.
    """
    if config_path:
        source = Path(os.path.abspath(cwd / config_path))
        if not source.is_file():
            raise ConfigSourceError(f"Config file not found: {source}")
        payload = read_manifest(source)
    else:
        source = find_manifest(cwd)
        payload = read_manifest(source)

    package_dir = source.parent
    files, reference, raw_options = _split_payload(payload, source)

    if raw_options is not None and not isinstance(raw_options, Mapping):
        raise ConfigSourceError(f"Options in {source} must be an object")
    try:
        options = SyncOptions.from_mapping(raw_options)
    except ConfigValidationError as exc:
        raise ConfigSourceError(f"Invalid options in {source}: {exc}") from exc

    if root_dir:
        root = Path(os.path.abspath(package_dir / root_dir))
    elif options.root_dir:
        root = Path(os.path.abspath(package_dir / options.root_dir))
    else:
        root = package_dir

    ignore = options.gitignore_path
    if gitignore_path:
        ignore = resolve_gitignore_path(root, gitignore_path)

    options = dataclasses.replace(
        options,
        root_dir=root,
        gitignore_path=ignore,
        dry_run=dry_run or options.dry_run,
    )

    if reference is not None:
        loaded = load_module_reference(reference, package_dir, loaders)
        if callable(loaded):
            context = ConfigContext(
                root_dir=root,
                package_dir=package_dir,
                manifest_path=source,
                dry_run=options.dry_run,
            )
            try:
                loaded = loaded(context)
            except Exception as exc:
                raise ConfigSourceError(
                    f"Config factory {reference!r} raised: {exc}"
                ) from exc
        files = _unwrap_module_result(loaded)

    return LoadedConfig(
        files=_to_file_map(files, source),
        options=options,
        package_dir=package_dir,
        source=source,
    )
