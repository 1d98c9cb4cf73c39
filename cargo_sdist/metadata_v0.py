# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Python core metadata (version 2.1), as embedded in an sdist's PKG-INFO.

Metadata is collected from the crate's Cargo.toml `[package]` table, with the
`[project]` table of the sibling pyproject.toml taking precedence where both
declare a field.
"""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from cargo_sdist.errors import NotFoundError, SchemaError
from cargo_sdist.pyproject_v0 import PYPROJECT_TOML


@dataclass(frozen=True)
class Metadata21:
	name: str
	version: str
	metadata_version: str = "2.1"
	summary: str | None = None
	description: str | None = None
	description_content_type: str | None = None
	keywords: str | None = None
	home_page: str | None = None
	author: str | None = None
	author_email: str | None = None
	license: str | None = None
	requires_python: str | None = None
	requires_dist: list[str] = field(default_factory=list)
	classifiers: list[str] = field(default_factory=list)
	project_url: dict[str, str] = field(default_factory=dict)

	def get_distribution_escaped(self) -> str:
		"""Distribution name with runs of separators collapsed to `_` (PEP 427)."""
		return re.sub(r"[^\w\d.]+", "_", self.name, flags=re.UNICODE)

	def get_version_escaped(self) -> str:
		return self.version.replace("-", "_")

	def to_file_contents(self) -> str:
		"""Render PKG-INFO: RFC 822 style headers, long description as the body."""
		fields: list[tuple[str, str]] = [
			("Metadata-Version", self.metadata_version),
			("Name", self.name),
			("Version", self.version),
		]
		optional = [
			("Summary", self.summary),
			("Keywords", self.keywords),
			("Home-Page", self.home_page),
			("Author", self.author),
			("Author-email", self.author_email),
			("License", self.license),
			("Requires-Python", self.requires_python),
		]
		fields.extend((k, v) for k, v in optional if v is not None)
		fields.extend(("Classifier", c) for c in self.classifiers)
		fields.extend(("Requires-Dist", r) for r in self.requires_dist)
		fields.extend(("Project-URL", f"{label}, {url}") for label, url in self.project_url.items())
		if self.description_content_type is not None:
			fields.append(("Description-Content-Type", self.description_content_type))

		out = "".join(f"{k}: {_header_value(v)}\n" for k, v in fields)
		if self.description is not None:
			out += "\n" + self.description + "\n"
		return out


def _header_value(value: str) -> str:
	# A newline inside a value would end the header and start a forged one.
	return " ".join(value.split())


def _read_toml(path: Path) -> dict[str, Any]:
	try:
		text = path.read_text(encoding="utf-8")
	except (OSError, UnicodeDecodeError) as err:
		raise NotFoundError(message=f"Couldn't read {path.name} at {path}", path=str(path)) from err
	try:
		return tomllib.loads(text)
	except tomllib.TOMLDecodeError as err:
		raise SchemaError(message=f"{path.name} is not valid TOML: {err}", path=str(path)) from err


def _split_author(author: str) -> tuple[str | None, str | None]:
	"""Split cargo's `Name <email>` author form."""
	m = re.fullmatch(r"\s*(.*?)\s*<([^>]*)>\s*", author)
	if m is None:
		return author.strip() or None, None
	return m.group(1) or None, m.group(2) or None


def _readme_content_type(readme: Path) -> str:
	suffix = readme.suffix.lower()
	if suffix in (".md", ".markdown"):
		return "text/markdown; charset=UTF-8; variant=GFM"
	if suffix == ".rst":
		return "text/x-rst; charset=UTF-8"
	return "text/plain; charset=UTF-8"


def _read_readme(path: Path) -> str:
	try:
		return path.read_text(encoding="utf-8")
	except (OSError, UnicodeDecodeError) as err:
		raise NotFoundError(message=f"Couldn't read readme at {path}", path=str(path)) from err


def _project_readme(raw: Any, *, manifest_dir: Path) -> tuple[str, str]:
	"""
	Resolve `[project] readme` (PEP 621): either a path, or a table with
	`file` or `text` plus an explicit `content-type`.
	"""
	if isinstance(raw, str):
		path = manifest_dir / raw
		return _read_readme(path), _readme_content_type(path)
	if not isinstance(raw, Mapping):
		raise ValueError("project.readme must be a string or a table")
	content_type = raw.get("content-type")
	if not isinstance(content_type, str) or not content_type:
		raise ValueError("project.readme.content-type must be a string")
	file = raw.get("file")
	text = raw.get("text")
	if (file is None) == (text is None):
		raise ValueError("project.readme must set exactly one of `file` or `text`")
	if file is not None:
		if not isinstance(file, str):
			raise ValueError("project.readme.file must be a string")
		return _read_readme(manifest_dir / file), content_type
	if not isinstance(text, str):
		raise ValueError("project.readme.text must be a string")
	return text, content_type


def _str_or_none(raw: Mapping[str, Any], key: str, *, what: str) -> str | None:
	v = raw.get(key)
	if v is None:
		return None
	if not isinstance(v, str):
		raise ValueError(f"{what}.{key} must be a string")
	return v


def _str_list(raw: Mapping[str, Any], key: str, *, what: str) -> list[str]:
	v = raw.get(key)
	if v is None:
		return []
	if not isinstance(v, list) or any(not isinstance(x, str) for x in v):
		raise ValueError(f"{what}.{key} must be a list of strings")
	return list(v)


def _from_tables(package: Mapping[str, Any], project: Mapping[str, Any], *, manifest_dir: Path) -> Metadata21:
	name = _str_or_none(project, "name", what="project") or _str_or_none(package, "name", what="package")
	version = _str_or_none(project, "version", what="project") or _str_or_none(package, "version", what="package")
	if not name:
		raise ValueError("missing package name")
	if not version:
		raise ValueError("missing package version")

	author: str | None = None
	author_email: str | None = None
	authors = _str_list(package, "authors", what="package")
	if authors:
		# Only the first author makes it into the single-valued fields.
		author, author_email = _split_author(authors[0])

	description: str | None = None
	content_type: str | None = None
	if project.get("readme") is not None:
		description, content_type = _project_readme(project["readme"], manifest_dir=manifest_dir)
	else:
		readme = _str_or_none(package, "readme", what="package")
		if readme is not None:
			readme_path = manifest_dir / readme
			description = _read_readme(readme_path)
			content_type = _readme_content_type(readme_path)

	urls: dict[str, str] = {}
	repository = _str_or_none(package, "repository", what="package")
	if repository is not None:
		urls["Source Code"] = repository
	raw_urls = project.get("urls") or {}
	if not isinstance(raw_urls, Mapping):
		raise ValueError("project.urls must be a table")
	for label, url in raw_urls.items():
		if not isinstance(url, str):
			raise ValueError(f"project.urls.{label} must be a string")
		urls[label] = url

	keywords = _str_list(package, "keywords", what="package")
	return Metadata21(
		name=name,
		version=version,
		summary=_str_or_none(project, "description", what="project") or _str_or_none(package, "description", what="package"),
		description=description,
		description_content_type=content_type,
		keywords=",".join(keywords) if keywords else None,
		home_page=_str_or_none(package, "homepage", what="package"),
		author=author,
		author_email=author_email,
		license=_str_or_none(package, "license", what="package"),
		requires_python=_str_or_none(project, "requires-python", what="project"),
		requires_dist=_str_list(project, "dependencies", what="project"),
		classifiers=_str_list(project, "classifiers", what="project"),
		project_url=urls,
	)


def metadata_from_cargo_toml(manifest_path: Path) -> Metadata21:
	"""
	Build core metadata for the crate at `manifest_path`.

	The pyproject.toml next to the manifest is optional here; sdist builds
	validate its presence separately.
	"""
	manifest_path = Path(manifest_path)
	cargo = _read_toml(manifest_path)
	package = cargo.get("package") or {}
	if not isinstance(package, Mapping):
		raise SchemaError(message="Cargo.toml `package` must be a table", path=str(manifest_path))

	project: Mapping[str, Any] = {}
	pyproject_path = manifest_path.parent / PYPROJECT_TOML
	if pyproject_path.exists():
		raw_project = _read_toml(pyproject_path).get("project") or {}
		if not isinstance(raw_project, Mapping):
			raise SchemaError(message="pyproject.toml `project` must be a table", path=str(pyproject_path))
		project = raw_project

	try:
		return _from_tables(package, project, manifest_dir=manifest_path.parent)
	except ValueError as err:
		raise SchemaError(message=f"invalid package metadata: {err}", path=str(manifest_path)) from err
