# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source distribution assembly for cargo-based Python packages.

The file list comes from `cargo package --list`, so the sdist contains exactly
what `cargo package` would publish. The one thing we insist on is that
pyproject.toml is among those files: without it a PEP 517 frontend cannot
rebuild the package from the sdist.

Known limitation: the cargo subprocess runs without a timeout; a hung cargo
hangs the build.
"""

from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Protocol

from cargo_sdist.errors import EncodingError, MissingBuildDescriptorError, ToolExecutionError, ToolInvocationError
from cargo_sdist.metadata_v0 import Metadata21, metadata_from_cargo_toml
from cargo_sdist.pyproject_v0 import PYPROJECT_TOML, get_pyproject_toml
from cargo_sdist.sdist_writer_v0 import SDistWriter

PKG_INFO = "PKG-INFO"
KNOWN_BUILD_BACKENDS = frozenset({"maturin"})


@dataclass(frozen=True)
class ManifestEntry:
	"""`target` is the path inside the archive; `source` is where the bytes live on disk."""

	target: Path
	source: Path


class ManifestSource(Protocol):
	def list_files(self, manifest_path: Path) -> list[str]:
		...


def _split_lines(text: str) -> list[str]:
	out: list[str] = []
	for line in text.split("\n"):
		if line.endswith("\r"):
			line = line[:-1]
		if line:
			out.append(line)
	return out


@dataclass(frozen=True)
class CargoPackageList:
	"""Asks cargo which files `cargo package` would include."""

	cargo: str = "cargo"

	def argv(self, manifest_path: Path) -> list[str]:
		return [self.cargo, "package", "--list", "--allow-dirty", "--manifest-path", str(manifest_path)]

	def list_files(self, manifest_path: Path) -> list[str]:
		argv = self.argv(manifest_path)
		try:
			cp = subprocess.run(argv, capture_output=True, check=False)
		except OSError as err:
			raise ToolInvocationError(message="Failed to run cargo", program=self.cargo) from err
		if cp.returncode != 0:
			raise ToolExecutionError(
				message="Failed to query file list from cargo",
				path=str(manifest_path),
				status=cp.returncode,
				stdout=cp.stdout.decode("utf-8", errors="replace"),
				stderr=cp.stderr.decode("utf-8", errors="replace"),
			)
		try:
			text = cp.stdout.decode("utf-8")
		except UnicodeDecodeError as err:
			raise EncodingError(message="Cargo printed invalid utf-8", path=str(manifest_path)) from err
		return _split_lines(text)


def resolve_manifest(manifest_path: Path, files: Iterable[str]) -> list[ManifestEntry]:
	"""
	Pair each path (relative to the manifest's directory) with its location on disk.

	Pure path arithmetic: nothing is checked against the filesystem, so
	missing files surface later, when the writer reads them.
	"""
	manifest_path = Path(manifest_path)
	if not manifest_path.name:
		raise ValueError(f"manifest path has no parent directory: {manifest_path}")
	manifest_dir = manifest_path.parent
	return [ManifestEntry(target=Path(rel), source=manifest_dir / rel) for rel in files]


def contains_target(manifest: Iterable[ManifestEntry], name: str) -> bool:
	wanted = Path(name)
	return any(entry.target == wanted for entry in manifest)


def source_distribution_v0(
	output_dir: Path,
	metadata: Metadata21,
	manifest_path: Path,
	*,
	source: ManifestSource | None = None,
	writer_factory: Callable[[Path, Metadata21], SDistWriter] = SDistWriter,
	quiet: bool = False,
) -> Path:
	"""
	Create a source distribution for the crate at `manifest_path` in `output_dir`.

	Returns the path of the written archive. Nothing is written unless the cargo
	file list includes pyproject.toml.
	"""
	if source is None:
		source = CargoPackageList()
	manifest_path = Path(manifest_path)
	manifest = resolve_manifest(manifest_path, source.list_files(manifest_path))

	if not contains_target(manifest, PYPROJECT_TOML):
		raise MissingBuildDescriptorError(
			message=(
				"pyproject.toml was not included by `cargo package`. "
				"Please make sure pyproject.toml is not excluded by `package.exclude`/`package.include` in Cargo.toml"
			),
			path=str(manifest_path),
		)

	with writer_factory(Path(output_dir), metadata) as writer:
		for entry in manifest:
			writer.add_file(entry.target, entry.source)
		writer.add_bytes(PKG_INFO, metadata.to_file_contents().encode("utf-8"))
		sdist_path = writer.finish()

	if not quiet:
		print(f"Built source distribution to {sdist_path}", flush=True)
	return sdist_path


@dataclass(frozen=True)
class SdistOptions:
	manifest_path: Path = Path("Cargo.toml")
	out_dir: Path = Path("target") / "wheels"
	cargo: str = "cargo"
	json: bool = False


def build_sdist_v0(opts: SdistOptions) -> Path:
	"""
	Validate the project's pyproject.toml, then build its source distribution.

	Raises `NotFoundError`/`SchemaError` before cargo is ever run when the
	project has no usable `[build-system]`.
	"""
	pyproject = get_pyproject_toml(opts.manifest_path.parent)
	backend = pyproject.build_system.build_backend
	if backend not in KNOWN_BUILD_BACKENDS:
		print(
			f"warning: pyproject.toml declares build-backend {backend!r}; "
			f"the sdist may not be buildable by {', '.join(sorted(KNOWN_BUILD_BACKENDS))}",
			file=sys.stderr,
			flush=True,
		)
	metadata = metadata_from_cargo_toml(opts.manifest_path)
	return source_distribution_v0(
		opts.out_dir,
		metadata,
		opts.manifest_path,
		source=CargoPackageList(cargo=opts.cargo),
		quiet=opts.json,
	)
