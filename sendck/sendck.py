# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: sendck maintainers; created: 2026-10-03
"""
Command-line driver: parse `.sir` files, run the sendability check, report.

Exit code is 1 when any error-severity diagnostic was produced (including
parse and IR-validation errors), 0 otherwise.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from sendck import ir
from sendck.checker import SendabilityChecker
from sendck.config import SEVERITIES, CheckerConfig, ConfigError, load_config
from sendck.core.diagnostics import Diagnostic, has_errors
from sendck.core.span import Span
from sendck.fixpoint import FixpointDivergenceError
from sendck.parser import SirParseError, parse_file

logger = logging.getLogger(__name__)


def _diag_to_json(diag: Diagnostic, source: Path) -> dict:
	"""Render a Diagnostic to a structured JSON-friendly dict."""
	file = diag.span.file or str(source)
	return {
		"phase": diag.phase,
		"code": diag.code,
		"message": diag.message,
		"severity": diag.severity,
		"file": file,
		"line": diag.span.line,
		"column": diag.span.column,
		"notes": [{"message": n.message, "line": n.span.line, "column": n.span.column} for n in diag.notes],
	}


def _format_human(diag: Diagnostic, source: Path) -> str:
	span = diag.span if diag.span.file else Span(file=str(source), line=diag.span.line, column=diag.span.column)
	lines = [f"{span}: {diag.severity}: {diag.message}"]
	for note in diag.notes:
		nspan = note.span if note.span.file else Span(file=str(source), line=note.span.line, column=note.span.column)
		lines.append(f"  {nspan}: note: {note.message}")
	return "\n".join(lines)


def check_path(path: Path, checker: SendabilityChecker) -> List[Diagnostic]:
	"""Parse and check one file, converting front-end failures into diagnostics."""
	try:
		module = parse_file(path)
	except OSError as err:
		return [Diagnostic(message=f"cannot read '{path}': {err}", phase="parser", span=Span(file=str(path)))]
	except SirParseError as err:
		return [Diagnostic(message=str(err), phase="parser", span=err.span)]
	diagnostics: List[Diagnostic] = []
	for func in module.functions:
		try:
			diagnostics.extend(checker.check_function(func).diagnostics)
		except ir.IRValidationError as err:
			diagnostics.append(Diagnostic(message=f"in function '{func.name}': {err}", phase="ir", span=err.span))
		except FixpointDivergenceError as err:
			diagnostics.append(Diagnostic(message=str(err), phase="sendcheck", span=func.loc))
	return diagnostics


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="sendck", description="Region-based sendability checker for .sir files")
	p.add_argument("source", type=Path, nargs="+", help="Path(s) to .sir file(s)")
	p.add_argument("--json", action="store_true", help="Emit diagnostics as JSON on stdout")
	p.add_argument("--config", type=Path, default=None, help="JSON configuration file ({\"enabled\": ..., \"severity\": ...})")
	p.add_argument("--disable", action="store_true", help="Disable the sendability pass (files are still parsed)")
	p.add_argument("--severity", choices=SEVERITIES, default=None, help="Severity of race diagnostics (overrides --config)")
	p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
	return p


def _resolve_config(args: argparse.Namespace) -> CheckerConfig:
	config = load_config(args.config) if args.config is not None else CheckerConfig()
	return config.with_overrides(enabled=False if args.disable else None, severity=args.severity)


def main(argv: list[str] | None = None) -> int:
	"""
	Parse each source file, check every function, and report.

	With --json, prints `{"exit_code": n, "diagnostics": [...]}`; otherwise
	prints human-readable messages to stderr.
	"""
	args = _build_parser().parse_args(argv)
	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

	try:
		config = _resolve_config(args)
	except ConfigError as err:
		diag = Diagnostic(message=str(err), phase="config", span=Span(file=str(args.config)))
		if args.json:
			print(json.dumps({"exit_code": 1, "diagnostics": [_diag_to_json(diag, args.config)]}))
		else:
			print(_format_human(diag, args.config), file=sys.stderr)
		return 1

	checker = SendabilityChecker(config=config)
	results: List[Tuple[Path, Diagnostic]] = []
	for source in args.source:
		logger.debug("checking %s", source)
		results.extend((source, d) for d in check_path(source, checker))

	exit_code = 1 if has_errors([d for _, d in results]) else 0
	if args.json:
		payload = {
			"exit_code": exit_code,
			"diagnostics": [_diag_to_json(d, src) for src, d in results],
		}
		print(json.dumps(payload))
	else:
		for src, d in results:
			print(_format_human(d, src), file=sys.stderr)
	return exit_code


def run(argv: Optional[list[str]] = None) -> None:
	"""Console-script entry point."""
	sys.exit(main(argv))


__all__ = ["check_path", "main", "run"]
