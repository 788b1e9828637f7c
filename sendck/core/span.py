# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lightweight source span representation used by diagnostics.

A Span carries best-effort file/line/column info for an IR operation. The
`.sir` parser fills it from lark token positions; IR built directly in Python
(tests, embedding front-ends) may leave it as the unknown sentinel `Span()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (best-effort file/line/column plus raw parser loc)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None
	raw: Any = None

	@classmethod
	def from_loc(cls, loc: Any, *, file: Optional[str] = None) -> "Span":
		"""
		Construct a Span from a lark `Token` or tree `Meta` object.

		If `loc` is already a Span, it is returned unchanged. Missing attributes
		degrade to None rather than failing, since tree metas of empty rules
		carry no positions.
		"""
		if loc is None:
			return cls(file=file)
		if isinstance(loc, cls):
			return loc
		return cls(
			file=file or getattr(loc, "file", None),
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			end_line=getattr(loc, "end_line", None),
			end_column=getattr(loc, "end_column", None),
		)

	def is_known(self) -> bool:
		return self.line is not None

	def __str__(self) -> str:
		file = self.file or "<unknown>"
		if self.line is None:
			return file
		if self.column is None:
			return f"{file}:{self.line}"
		return f"{file}:{self.line}:{self.column}"


__all__ = ["Span"]
