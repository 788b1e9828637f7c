# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: sendck maintainers; created: 2026-09-29
"""
Per-operation transfer functions for the region checker.

Each rule takes the state before an operation and mutates it into the state
after. Sendable operands are invisible here: they are never tracked and never
produce accesses.

Every rule follows the same two steps:
  1. Access check: each tracked operand whose region is already transferred
     is reported through `on_access` (the state is left untouched; accesses
     never heal a transferred region).
  2. Region update: unions per operation kind, then `mark_transferred` for
     calls the classifier reports as crossing.

A definition of a name that already has a region starts a new region for
it; the previous definition's region is left to its other members.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from sendck import ir
from sendck.isolation import AnnotatedClassifier, IsolationClassifier, target_domain
from sendck.regions import AccessSite, ProgramPoint, TransferSite, TransferState

AccessSink = Callable[[AccessSite], None]


class TransferFunctions:
	"""Transfer rules for one function, bound to the classifier that resolves calls."""

	def __init__(self, function: ir.Function, classifier: IsolationClassifier | None = None) -> None:
		self.function = function
		self.classifier = classifier if classifier is not None else AnnotatedClassifier()

	def entry_state(self) -> TransferState:
		"""
		State at function entry.

		All non-sendable parameters share one region: a caller may pass the same
		object (or objects referencing each other) for several parameters.
		Parameters are not transferred at entry.
		"""
		state = TransferState()
		params = [p.name for p in self.function.params if not p.sendable]
		for name in params:
			state.track(name)
		if len(params) > 1:
			state.union(params[0], *params[1:])
		return state

	def _tracked(self, state: TransferState, values: List[ir.Value]) -> List[str]:
		"""Names of the non-sendable values in `values` that have a region here (first-seen order)."""
		out: List[str] = []
		for val in values:
			if val.sendable or not state.is_tracked(val.name) or val.name in out:
				continue
			out.append(val.name)
		return out

	def _check_accesses(self, state: TransferState, node: ir.Op | ir.Terminator, point: ProgramPoint, on_access: Optional[AccessSink]) -> None:
		if on_access is None:
			return
		for val, kind in ir.operands_of(node):
			if val.sendable or not state.is_transferred(val.name):
				continue
			on_access(
				AccessSite(
					point=point,
					value=val.name,
					type_name=val.type_name,
					kind=kind,
					sites=state.sites_for(val.name),
					span=node.loc,
				)
			)

	def _define(self, state: TransferState, dest: Optional[ir.Value], region_of: List[str]) -> None:
		"""
		Place `dest` into the region formed by `region_of`, or a fresh region if
		that list is empty.

		Defining a name that already has a region (a reassignment, or the same
		op reached again around a loop) starts a new definition: the old region
		stays with its other members. When the new value is built from the old
		one (`x = copy x`, `x = load x.f`), it stays where the old one was.
		"""
		if dest is None or dest.sendable:
			return
		if dest.name not in region_of:
			state.redefine(dest.name)
		if region_of:
			state.union(dest.name, *region_of)

	def apply_op(self, state: TransferState, op: ir.Op, point: ProgramPoint, on_access: Optional[AccessSink] = None) -> None:
		"""Apply the rule for a single operation to `state` in place."""
		self._check_accesses(state, op, point, on_access)
		if isinstance(op, ir.Init):
			args = self._tracked(state, op.args)
			if len(args) > 1:
				state.union(args[0], *args[1:])
			self._define(state, op.dest, args)
			return
		if isinstance(op, ir.FieldRead):
			self._define(state, op.dest, self._tracked(state, [op.base]))
			return
		if isinstance(op, ir.Alias):
			self._define(state, op.dest, self._tracked(state, [op.src]))
			return
		if isinstance(op, ir.FieldWrite):
			both = self._tracked(state, [op.base, op.value])
			if len(both) > 1:
				state.union(both[0], *both[1:])
			return
		if isinstance(op, ir.Closure):
			caps = self._tracked(state, op.captures)
			if len(caps) > 1:
				state.union(caps[0], *caps[1:])
			self._define(state, op.dest, caps)
			return
		if isinstance(op, ir.Call):
			self._apply_call(state, op, point)
			return
		# Use: access only.

	def _apply_call(self, state: TransferState, call: ir.Call, point: ProgramPoint) -> None:
		operands = [call.receiver] if call.receiver is not None else []
		operands.extend(call.args)
		tracked = self._tracked(state, operands)
		if len(tracked) > 1:
			state.union(tracked[0], *tracked[1:])
		self._define(state, call.dest, tracked)
		kind = self.classifier.classify(call, self.function)
		if not kind.transfers or not tracked:
			return
		by_name = {v.name: v for v in operands}
		type_names: List[str] = []
		for name in tracked:
			ty = by_name[name].type_name
			if ty not in type_names:
				type_names.append(ty)
		site = TransferSite(
			point=point,
			callee=call.callee,
			kind=kind,
			values=tuple(tracked),
			type_names=tuple(type_names),
			from_domain=self.function.domain,
			to_domain=target_domain(call, kind),
			span=call.loc,
		)
		state.mark_transferred(tracked[0], site)

	def apply_terminator(self, state: TransferState, term: ir.Terminator, point: ProgramPoint, on_access: Optional[AccessSink] = None) -> None:
		"""Terminators only access their operands (branch condition, returned/thrown value)."""
		self._check_accesses(state, term, point, on_access)

	def apply_block(self, state: TransferState, block: ir.BasicBlock, block_index: int, on_access: Optional[AccessSink] = None) -> TransferState:
		"""Run every op of `block` and its terminator over `state` (mutated and returned)."""
		for idx, op in enumerate(block.ops):
			self.apply_op(state, op, ProgramPoint(block_index, idx, block.name), on_access)
		if block.terminator is not None:
			self.apply_terminator(state, block.terminator, ProgramPoint(block_index, len(block.ops), block.name), on_access)
		return state


__all__ = ["AccessSink", "TransferFunctions"]
