# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
pyproject.toml `[build-system]` loader (PEP 517/518).

Only the `[build-system]` table is understood. Every other table is ignored,
so richer pyproject.toml files keep loading as the format grows.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from cargo_sdist.errors import NotFoundError, SchemaError

PYPROJECT_TOML = "pyproject.toml"


@dataclass(frozen=True)
class BuildSystem:
	"""The `[build-system]` section of a pyproject.toml as specified in PEP 517."""

	requires: list[str]
	build_backend: str

	def to_dict(self) -> dict[str, Any]:
		return {"requires": list(self.requires), "build-backend": self.build_backend}


@dataclass(frozen=True)
class PyProjectToml:
	"""The subset of a pyproject.toml this tooling understands."""

	build_system: BuildSystem

	def to_dict(self) -> dict[str, Any]:
		return {"build-system": self.build_system.to_dict()}


def _parse_build_system(raw: Any) -> BuildSystem:
	if raw is None:
		raise ValueError("missing field `build-system`")
	if not isinstance(raw, Mapping):
		raise ValueError("`build-system` must be a table")
	requires = raw.get("requires")
	if requires is None:
		raise ValueError("missing field `requires` in `build-system`")
	if not isinstance(requires, list) or any(not isinstance(r, str) for r in requires):
		raise ValueError("`build-system.requires` must be a list of strings")
	backend = raw.get("build-backend")
	if backend is None:
		raise ValueError("missing field `build-backend` in `build-system`")
	if not isinstance(backend, str):
		raise ValueError("`build-system.build-backend` must be a string")
	return BuildSystem(requires=list(requires), build_backend=backend)


def parse_pyproject_toml(text: str, *, path: Path | None = None) -> PyProjectToml:
	"""Parse pyproject.toml text, keeping only `[build-system]`."""
	try:
		data = tomllib.loads(text)
		build_system = _parse_build_system(data.get("build-system"))
	except (tomllib.TOMLDecodeError, ValueError) as err:
		raise SchemaError(
			message=f"pyproject.toml is not PEP 517 compliant: {err}",
			path=str(path) if path is not None else None,
		) from err
	return PyProjectToml(build_system=build_system)


def get_pyproject_toml(project_root: Path) -> PyProjectToml:
	"""
	Return the contents of a pyproject.toml with a `[build-system]` entry.

	Callers use this to decide whether to build a source distribution at all;
	whether the declared backend is one they can drive is up to them.
	"""
	path = Path(project_root) / PYPROJECT_TOML
	try:
		contents = path.read_text(encoding="utf-8")
	except (OSError, UnicodeDecodeError) as err:
		raise NotFoundError(message=f"Couldn't find pyproject.toml at {path}", path=str(path)) from err
	return parse_pyproject_toml(contents, path=path)
