# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from cargo_sdist.errors import SdistError
from cargo_sdist.pyproject_v0 import get_pyproject_toml
from cargo_sdist.sdist_v0 import SdistOptions, build_sdist_v0


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="cargo-sdist", description="Source distributions for cargo-based Python packages")
	sub = p.add_subparsers(dest="cmd", required=True)

	sdist = sub.add_parser("sdist", help="Build a source distribution from the files `cargo package` would publish")
	sdist.add_argument(
		"-m",
		"--manifest-path",
		type=Path,
		default=Path("Cargo.toml"),
		help="Path to Cargo.toml; pyproject.toml must sit next to it (default: ./Cargo.toml)",
	)
	sdist.add_argument(
		"-o",
		"--out",
		type=Path,
		default=Path("target") / "wheels",
		help="Output directory for the .tar.gz (default: ./target/wheels)",
	)
	sdist.add_argument(
		"--cargo",
		type=str,
		default=os.environ.get("CARGO") or "cargo",
		help="cargo executable (default: $CARGO or cargo)",
	)
	sdist.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

	check = sub.add_parser("check-pyproject", help="Validate the [build-system] section of pyproject.toml")
	check.add_argument(
		"project_root",
		nargs="?",
		type=Path,
		default=Path("."),
		help="Directory containing pyproject.toml (default: .)",
	)
	check.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
	return p


def _emit_error(err: SdistError, *, as_json: bool) -> None:
	if as_json:
		print(json.dumps({"ok": False, "error": err.to_dict()}, sort_keys=True, separators=(",", ":")))
		return
	print(f"error: {err.format_human()}", file=sys.stderr, flush=True)


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)

	if args.cmd == "sdist":
		opts = SdistOptions(
			manifest_path=args.manifest_path,
			out_dir=args.out,
			cargo=args.cargo,
			json=bool(args.json),
		)
		try:
			sdist_path = build_sdist_v0(opts)
		except SdistError as err:
			_emit_error(err, as_json=opts.json)
			return 2
		if opts.json:
			print(json.dumps({"ok": True, "sdist_path": str(sdist_path)}, sort_keys=True, separators=(",", ":")))
		return 0

	if args.cmd == "check-pyproject":
		try:
			pyproject = get_pyproject_toml(args.project_root)
		except SdistError as err:
			_emit_error(err, as_json=bool(args.json))
			return 2
		if args.json:
			print(json.dumps({"ok": True, **pyproject.to_dict()}, sort_keys=True, separators=(",", ":")))
			return 0
		bs = pyproject.build_system
		print(f"build-backend: {bs.build_backend}")
		print(f"requires: {', '.join(bs.requires) if bs.requires else '(none)'}")
		return 0

	raise AssertionError("unreachable")
