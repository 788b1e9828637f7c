# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Sendability check pass: validate, run the fixpoint, synthesize diagnostics.

Functions are analyzed independently; no state is shared between them, so
`check_module` is a plain loop and callers are free to fan functions out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sendck import ir
from sendck.config import CheckerConfig
from sendck.core.diagnostics import Diagnostic
from sendck.fixpoint import FixpointDriver, FixpointResult
from sendck.isolation import AnnotatedClassifier, IsolationClassifier
from sendck.regions import ProgramPoint
from sendck.synthesis import group_accesses, synthesize

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
	"""Diagnostics for one function plus the converged analysis they came from."""

	function: str
	diagnostics: List[Diagnostic] = field(default_factory=list)
	by_site: Dict[ProgramPoint, Diagnostic] = field(default_factory=dict)
	analysis: Optional[FixpointResult] = None


@dataclass
class SendabilityChecker:
	"""
	Entry point for checking functions.

	Inputs:
	- classifier: answers same-domain / actor-entering / task-spawning per call.
	- config: enable flag and diagnostic severity.
	"""

	classifier: IsolationClassifier = field(default_factory=AnnotatedClassifier)
	config: CheckerConfig = field(default_factory=CheckerConfig)

	def check_function(self, function: ir.Function) -> CheckResult:
		"""Check one function body. Raises IRValidationError for malformed IR."""
		if not self.config.enabled:
			return CheckResult(function=function.name)
		ir.validate_function(function)
		analysis = FixpointDriver(function, self.classifier).run()
		diagnostics = synthesize(analysis.accesses, severity=self.config.severity)
		sites = list(group_accesses(analysis.accesses))
		by_site = {site.point: diag for site, diag in zip(sites, diagnostics)}
		logger.debug("sendcheck: %s -> %d diagnostic(s)", function.name, len(diagnostics))
		return CheckResult(function=function.name, diagnostics=diagnostics, by_site=by_site, analysis=analysis)

	def check_module(self, module: ir.Module) -> List[Diagnostic]:
		"""Check every function in `module`; diagnostics are concatenated in function order."""
		if not self.config.enabled:
			logger.debug("sendcheck: disabled, skipping %d function(s)", len(module.functions))
			return []
		diagnostics: List[Diagnostic] = []
		for func in module.functions:
			diagnostics.extend(self.check_function(func).diagnostics)
		return diagnostics


def check_function(function: ir.Function, classifier: IsolationClassifier | None = None) -> List[Diagnostic]:
	"""Shorthand used by tests and embedders: diagnostics for one function."""
	checker = SendabilityChecker(classifier=classifier or AnnotatedClassifier())
	return checker.check_function(function).diagnostics


__all__ = ["CheckResult", "SendabilityChecker", "check_function"]
