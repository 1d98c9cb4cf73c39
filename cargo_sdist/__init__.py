# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
cargo_sdist: source distributions for cargo-based Python packages.

Modules:
  pyproject_v0: `[build-system]` loading from pyproject.toml
  sdist_v0: cargo file listing, manifest resolution, sdist assembly
  sdist_writer_v0: the .tar.gz writer
  metadata_v0: PKG-INFO rendering
"""

__all__ = ["pyproject_v0", "sdist_v0", "sdist_writer_v0", "metadata_v0"]
