# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source distribution writer (`<name>-<version>.tar.gz`).

Members live under a single `<name>-<version>/` directory as PEP 517
`build_sdist` requires. The archive is streamed into a temporary file next to
the destination and only renamed into place by `finish()`, so a failed build
never leaves a partial archive at the final path.
"""

from __future__ import annotations

import gzip
import io
import itertools
import os
import stat
import sys
import tarfile
import time
from pathlib import Path, PurePosixPath

from cargo_sdist.errors import ArchiveWriteError
from cargo_sdist.metadata_v0 import Metadata21


_tmp_counter = itertools.count()


def _source_date_epoch() -> int | None:
	v = os.environ.get("SOURCE_DATE_EPOCH", "").strip()
	if not v:
		return None
	try:
		return int(v)
	except ValueError:
		print(
			f"warning: ignoring SOURCE_DATE_EPOCH={v!r} (not an integer); archive timestamps will not be reproducible",
			file=sys.stderr,
			flush=True,
		)
		return None


def _normalize_member_path(path_str: str) -> str:
	p = PurePosixPath(path_str.replace("\\", "/"))
	if p.is_absolute():
		raise ValueError(f"archive member must be a relative path, got: {path_str}")
	if not p.parts or str(p) == ".":
		raise ValueError(f"archive member must be non-empty, got: {path_str}")
	if any(part == ".." for part in p.parts):
		raise ValueError(f"archive member must not contain '..', got: {path_str}")
	return str(p)


class SDistWriter:
	"""
	A writer session for one source distribution.

	Use as a context manager: leaving the block without `finish()` (for example
	because an exception is propagating) aborts the session and removes the
	temporary file.
	"""

	def __init__(self, output_dir: Path, metadata: Metadata21) -> None:
		self.output_dir = Path(output_dir)
		base = f"{metadata.get_distribution_escaped()}-{metadata.get_version_escaped()}"
		self.prefix = base
		self.path = self.output_dir / f"{base}.tar.gz"
		self._tmp_path = self.path.with_name(self.path.name + f".tmp.{os.getpid()}.{next(_tmp_counter)}")
		self._mtime = _source_date_epoch()
		self._finished = False
		try:
			self.output_dir.mkdir(parents=True, exist_ok=True)
			self._raw = open(self._tmp_path, "xb")
		except OSError as err:
			raise ArchiveWriteError(message=f"failed to create source distribution in {self.output_dir}", path=str(self.path)) from err
		# Fixed gzip header mtime keeps the archive reproducible under SOURCE_DATE_EPOCH.
		self._gz = gzip.GzipFile(filename="", mode="wb", fileobj=self._raw, mtime=self._mtime or 0)
		self._tar = tarfile.open(fileobj=self._gz, mode="w|", format=tarfile.PAX_FORMAT)

	def __enter__(self) -> SDistWriter:
		return self

	def __exit__(self, exc_type, exc, tb) -> bool:
		if not self._finished:
			self.abort()
		return False

	def _member(self, name: str, size: int, mode: int, mtime: float) -> tarfile.TarInfo:
		try:
			rel = _normalize_member_path(name)
		except ValueError as err:
			raise ArchiveWriteError(message=str(err), path=name) from err
		ti = tarfile.TarInfo(f"{self.prefix}/{rel}")
		ti.size = size
		ti.mode = mode
		ti.mtime = int(self._mtime if self._mtime is not None else mtime)
		ti.uid = 0
		ti.gid = 0
		ti.uname = ""
		ti.gname = ""
		return ti

	def _write(self, ti: tarfile.TarInfo, data: bytes) -> None:
		if self._finished:
			raise ArchiveWriteError(message="source distribution writer is already closed", path=str(self.path))
		try:
			self._tar.addfile(ti, io.BytesIO(data))
		except OSError as err:
			raise ArchiveWriteError(message=f"failed to write {ti.name}", path=str(self.path)) from err

	def add_file(self, target: Path | str, source: Path | str) -> None:
		"""Copy `source` into the archive as `target`."""
		source = Path(source)
		try:
			st = source.stat()
			data = source.read_bytes()
		except OSError as err:
			raise ArchiveWriteError(message=f"failed to read {source} for {target}", path=str(source)) from err
		mode = 0o755 if st.st_mode & stat.S_IXUSR else 0o644
		self._write(self._member(str(target), len(data), mode, st.st_mtime), data)

	def add_bytes(self, name: str, data: bytes) -> None:
		"""Write generated content (not copied from disk) as `name`."""
		self._write(self._member(name, len(data), 0o644, time.time()), data)

	def finish(self) -> Path:
		"""Close the archive and move it to its final path."""
		if self._finished:
			raise ArchiveWriteError(message="source distribution writer is already closed", path=str(self.path))
		try:
			self._tar.close()
			self._gz.close()
			self._raw.close()
			os.replace(self._tmp_path, self.path)
		except OSError as err:
			self.abort()
			raise ArchiveWriteError(message="failed to finalize source distribution", path=str(self.path)) from err
		self._finished = True
		return self.path

	def abort(self) -> None:
		"""Drop the session; nothing is left at the final path."""
		self._finished = True
		for closer in (self._tar.close, self._gz.close, self._raw.close):
			try:
				closer()
			except OSError:
				pass
		self._tmp_path.unlink(missing_ok=True)
