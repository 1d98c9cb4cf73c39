# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SdistError(Exception):
	"""
	A structured, serializable error for sdist tooling.

	Every failure of the sdist pipeline is terminal for the call; subclasses
	carry whatever context is needed to render an actionable message.
	"""

	message: str
	reason_code: str = "SDIST_ERROR"
	path: str | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"path": self.path,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.path:
			parts.append(f"path={self.path}")
		if self.__cause__ is not None:
			parts.append(f"cause={self.__cause__}")
		return " ".join(parts)


@dataclass(frozen=True)
class ToolInvocationError(SdistError):
	"""The external packaging tool could not be started."""

	reason_code: str = "TOOL_INVOCATION_FAILED"
	program: str | None = None

	def to_dict(self) -> dict[str, Any]:
		out = super().to_dict()
		out["program"] = self.program
		return out


@dataclass(frozen=True)
class ToolExecutionError(SdistError):
	"""The external packaging tool ran but exited unsuccessfully."""

	reason_code: str = "TOOL_EXECUTION_FAILED"
	status: int | None = None
	stdout: str = ""
	stderr: str = ""

	def to_dict(self) -> dict[str, Any]:
		out = super().to_dict()
		out["status"] = self.status
		out["stdout"] = self.stdout
		out["stderr"] = self.stderr
		return out

	def format_human(self) -> str:
		return f"{super().format_human()}: exit status {self.status}\n--- Stdout:\n{self.stdout}\n--- Stderr:\n{self.stderr}"


@dataclass(frozen=True)
class EncodingError(SdistError):
	"""The external packaging tool printed something that is not UTF-8."""

	reason_code: str = "TOOL_OUTPUT_NOT_UTF8"


@dataclass(frozen=True)
class MissingBuildDescriptorError(SdistError):
	reason_code: str = "MISSING_BUILD_DESCRIPTOR"


@dataclass(frozen=True)
class ArchiveWriteError(SdistError):
	reason_code: str = "ARCHIVE_WRITE_FAILED"


@dataclass(frozen=True)
class NotFoundError(SdistError):
	reason_code: str = "PYPROJECT_NOT_FOUND"


@dataclass(frozen=True)
class SchemaError(SdistError):
	reason_code: str = "PYPROJECT_SCHEMA"
