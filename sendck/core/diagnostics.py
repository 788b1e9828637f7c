# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Common diagnostic structure for the sendability checker and its driver.

A diagnostic is a message anchored at a primary span, plus secondary notes
that carry their own spans. The checker anchors the primary span at the call
that transfers a region; each note points at an access that could race with
it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .span import Span


@dataclass(frozen=True)
class Note:
	"""Secondary message attached to a diagnostic, with its own location."""

	message: str
	span: Span = field(default_factory=Span)


@dataclass
class Diagnostic:
	"""Represents a checker diagnostic (error/warning/etc.)."""

	message: str
	code: str | None = None
	# Diagnostic phase label (parser, ir, sendcheck). The driver uses it to
	# render JSON output; passes set it explicitly so tests can match on it.
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)  # Source location (Span() denotes unknown).
	notes: list[Note] = field(default_factory=list)

	def __post_init__(self) -> None:
		# Normalize missing spans to the sentinel Span() so downstream tooling
		# can rely on a structured object instead of None.
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()


def has_errors(diagnostics: list[Diagnostic]) -> bool:
	"""Return True if any diagnostic is error-severity."""
	return any(d.severity == "error" for d in diagnostics)


__all__ = ["Diagnostic", "Note", "has_errors"]
