# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Textual front-end for the sendability checker.

Parses `.sir` source (see grammar.lark) into `sendck.ir` modules so the
checker can run from files and tests can describe CFGs as text.
"""

from .parser import CLOSURE_TYPE, SirParseError, parse_file, parse_module

__all__ = ["CLOSURE_TYPE", "SirParseError", "parse_file", "parse_module"]
