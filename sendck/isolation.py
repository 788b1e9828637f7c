# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Isolation classification for call sites.

The checker asks a classifier one question per call: does this call stay in
the caller's isolation domain, enter another actor's domain, or spawn a task
that runs concurrently with the caller? The classifier is the only source of
that fact; there is no list of well-known task-spawning APIs in the core.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Mapping, Optional, Protocol

from sendck.ir import Call, Function


class CrossingKind(Enum):
	"""How a call relates to the caller's isolation domain."""

	SAME_DOMAIN = auto()
	ACTOR_ENTERING = auto()
	TASK_SPAWNING = auto()

	@property
	def transfers(self) -> bool:
		"""True if the call hands its non-sendable operands to another domain."""
		return self is not CrossingKind.SAME_DOMAIN


class IsolationClassifier(Protocol):
	"""Interface consumed by the transfer functions."""

	def classify(self, call: Call, function: Function) -> CrossingKind:
		...


class AnnotatedClassifier:
	"""
	Classify a call from the annotations the front-end attached to it.

	Task spawning wins over the domain comparison: a spawned closure runs
	concurrently with the caller's continuation even when it is nominally in
	the same domain.
	"""

	def classify(self, call: Call, function: Function) -> CrossingKind:
		if call.spawns_task:
			return CrossingKind.TASK_SPAWNING
		if call.callee_domain is None or call.callee_domain == function.domain:
			return CrossingKind.SAME_DOMAIN
		return CrossingKind.ACTOR_ENTERING


@dataclass
class TableClassifier:
	"""
	Classify by callee name from a precomputed table.

	Front-ends that resolve isolation out of band (e.g. from declaration
	metadata) can hand the result over as a mapping. Callees missing from the
	table fall back to `fallback`.
	"""

	table: Mapping[str, CrossingKind] = field(default_factory=dict)
	fallback: IsolationClassifier = field(default_factory=AnnotatedClassifier)

	def classify(self, call: Call, function: Function) -> CrossingKind:
		kind = self.table.get(call.callee)
		if kind is not None:
			return kind
		return self.fallback.classify(call, function)


def target_domain(call: Call, kind: CrossingKind) -> Optional[str]:
	"""Best-effort name of the domain a crossing call hands values to."""
	if kind is CrossingKind.SAME_DOMAIN:
		return None
	return call.callee_domain


__all__ = [
	"CrossingKind",
	"IsolationClassifier",
	"AnnotatedClassifier",
	"TableClassifier",
	"target_domain",
]
