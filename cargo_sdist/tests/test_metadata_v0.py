# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from email.parser import Parser
from pathlib import Path

import pytest

from cargo_sdist.errors import NotFoundError, SchemaError
from cargo_sdist.metadata_v0 import Metadata21, metadata_from_cargo_toml


def _write_file(path: Path, text: str) -> None:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(text, encoding="utf-8")


def test_pkg_info_minimal() -> None:
	assert Metadata21(name="demo", version="0.1.0").to_file_contents() == (
		"Metadata-Version: 2.1\nName: demo\nVersion: 0.1.0\n"
	)


def test_pkg_info_full() -> None:
	meta = Metadata21(
		name="demo",
		version="0.1.0",
		summary="A demo",
		keywords="a,b",
		author="Jane",
		author_email="jane@example.com",
		license="MIT",
		requires_python=">=3.8",
		requires_dist=["cffi>=1.0"],
		classifiers=["Programming Language :: Rust"],
		project_url={"Source Code": "https://example.com/demo"},
		description="# Demo\n",
		description_content_type="text/markdown; charset=UTF-8; variant=GFM",
	)
	assert meta.to_file_contents() == (
		"Metadata-Version: 2.1\n"
		"Name: demo\n"
		"Version: 0.1.0\n"
		"Summary: A demo\n"
		"Keywords: a,b\n"
		"Author: Jane\n"
		"Author-email: jane@example.com\n"
		"License: MIT\n"
		"Requires-Python: >=3.8\n"
		"Classifier: Programming Language :: Rust\n"
		"Requires-Dist: cffi>=1.0\n"
		"Project-URL: Source Code, https://example.com/demo\n"
		"Description-Content-Type: text/markdown; charset=UTF-8; variant=GFM\n"
		"\n"
		"# Demo\n\n"
	)


def test_escaped_names() -> None:
	meta = Metadata21(name="my-crate.ext", version="0.1.0-alpha.1")
	assert meta.get_distribution_escaped() == "my_crate.ext"
	assert meta.get_version_escaped() == "0.1.0_alpha.1"


def test_from_cargo_toml(tmp_path: Path) -> None:
	_write_file(
		tmp_path / "Cargo.toml",
		"""
[package]
name = "demo-crate"
version = "0.2.0"
description = "Cargo description"
authors = ["Jane Doe <jane@example.com>", "John"]
license = "MIT OR Apache-2.0"
homepage = "https://example.com"
repository = "https://example.com/repo"
keywords = ["python", "ffi"]
readme = "README.md"

[dependencies]
pyo3 = "0.11"
""".lstrip(),
	)
	_write_file(tmp_path / "README.md", "# Demo crate\n")
	meta = metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert meta.name == "demo-crate"
	assert meta.version == "0.2.0"
	assert meta.summary == "Cargo description"
	assert meta.author == "Jane Doe"
	assert meta.author_email == "jane@example.com"
	assert meta.license == "MIT OR Apache-2.0"
	assert meta.home_page == "https://example.com"
	assert meta.keywords == "python,ffi"
	assert meta.description == "# Demo crate\n"
	assert meta.description_content_type == "text/markdown; charset=UTF-8; variant=GFM"
	assert meta.project_url == {"Source Code": "https://example.com/repo"}


def test_pyproject_project_table_takes_precedence(tmp_path: Path) -> None:
	_write_file(tmp_path / "Cargo.toml", '[package]\nname = "demo_rs"\nversion = "0.2.0"\ndescription = "rs"\n')
	_write_file(
		tmp_path / "pyproject.toml",
		"""
[project]
name = "demo"
description = "py"
requires-python = ">=3.7"
dependencies = ["cffi"]
classifiers = ["Programming Language :: Rust"]

[project.urls]
Docs = "https://example.com/docs"

[build-system]
requires = ["maturin"]
build-backend = "maturin"
""".lstrip(),
	)
	meta = metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert meta.name == "demo"
	assert meta.version == "0.2.0"
	assert meta.summary == "py"
	assert meta.requires_python == ">=3.7"
	assert meta.requires_dist == ["cffi"]
	assert meta.classifiers == ["Programming Language :: Rust"]
	assert meta.project_url == {"Docs": "https://example.com/docs"}


def test_missing_version_is_schema_error(tmp_path: Path) -> None:
	_write_file(tmp_path / "Cargo.toml", '[package]\nname = "demo"\n')
	with pytest.raises(SchemaError) as excinfo:
		metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert "missing package version" in excinfo.value.message


def test_workspace_inherited_version_is_schema_error(tmp_path: Path) -> None:
	_write_file(tmp_path / "Cargo.toml", '[package]\nname = "demo"\nversion.workspace = true\n')
	with pytest.raises(SchemaError):
		metadata_from_cargo_toml(tmp_path / "Cargo.toml")


def test_missing_cargo_toml_is_not_found(tmp_path: Path) -> None:
	with pytest.raises(NotFoundError) as excinfo:
		metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert excinfo.value.path == str(tmp_path / "Cargo.toml")


def test_missing_readme_is_not_found(tmp_path: Path) -> None:
	_write_file(tmp_path / "Cargo.toml", '[package]\nname = "demo"\nversion = "0.1.0"\nreadme = "README.rst"\n')
	with pytest.raises(NotFoundError) as excinfo:
		metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert excinfo.value.path == str(tmp_path / "README.rst")


def test_multiline_description_stays_one_header(tmp_path: Path) -> None:
	_write_file(
		tmp_path / "Cargo.toml",
		'[package]\nname = "demo"\nversion = "0.1.0"\nlicense = "MIT"\ndescription = """\nFast bindings.\nLicense: GPL\n"""\n',
	)
	meta = metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	msg = Parser().parsestr(meta.to_file_contents())
	assert msg["Summary"] == "Fast bindings. License: GPL"
	assert msg.get_all("License") == ["MIT"]
	assert msg.get_payload() == ""


def test_header_values_are_collapsed_to_one_line() -> None:
	meta = Metadata21(name="demo", version="0.1.0", author="Jane\n  Doe", project_url={"Docs": "https://example.com\nClassifier: x"})
	msg = Parser().parsestr(meta.to_file_contents())
	assert msg["Author"] == "Jane Doe"
	assert msg["Project-URL"] == "Docs, https://example.com Classifier: x"
	assert msg.get_all("Classifier") is None


def test_project_readme_path_overrides_cargo_readme(tmp_path: Path) -> None:
	_write_file(tmp_path / "Cargo.toml", '[package]\nname = "demo"\nversion = "0.1.0"\nreadme = "README.md"\n')
	_write_file(tmp_path / "README.md", "# Cargo readme\n")
	_write_file(tmp_path / "PYTHON.rst", "Python readme\n")
	_write_file(tmp_path / "pyproject.toml", '[project]\nname = "demo"\nreadme = "PYTHON.rst"\n')
	meta = metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert meta.description == "Python readme\n"
	assert meta.description_content_type == "text/x-rst; charset=UTF-8"


def test_project_readme_table_forms(tmp_path: Path) -> None:
	_write_file(tmp_path / "Cargo.toml", '[package]\nname = "demo"\nversion = "0.1.0"\n')
	_write_file(tmp_path / "pyproject.toml", '[project]\nreadme = {text = "Inline", content-type = "text/plain"}\n')
	meta = metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert (meta.description, meta.description_content_type) == ("Inline", "text/plain")

	_write_file(tmp_path / "docs" / "index.md", "# Docs\n")
	_write_file(tmp_path / "pyproject.toml", '[project]\nreadme = {file = "docs/index.md", content-type = "text/markdown"}\n')
	meta = metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert (meta.description, meta.description_content_type) == ("# Docs\n", "text/markdown")


@pytest.mark.parametrize(
	"readme",
	[
		'{text = "x"}',
		'{file = "a.md", text = "x", content-type = "text/plain"}',
		'{content-type = "text/plain"}',
		"1",
	],
)
def test_malformed_project_readme_is_schema_error(tmp_path: Path, readme: str) -> None:
	_write_file(tmp_path / "Cargo.toml", '[package]\nname = "demo"\nversion = "0.1.0"\n')
	_write_file(tmp_path / "pyproject.toml", f"[project]\nreadme = {readme}\n")
	with pytest.raises(SchemaError) as excinfo:
		metadata_from_cargo_toml(tmp_path / "Cargo.toml")
	assert "project.readme" in excinfo.value.message
