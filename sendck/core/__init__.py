"""
sendck.core: shared diagnostics and source-location types used across the checker.

Modules:
  - diagnostics: Diagnostic / Note records
  - span: best-effort source spans
"""

from .diagnostics import Diagnostic, Note, has_errors
from .span import Span

__all__ = [
	"Diagnostic",
	"Note",
	"Span",
	"has_errors",
]
