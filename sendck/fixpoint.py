# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: sendck maintainers; created: 2026-09-30
"""
Worklist fixpoint over a function's CFG.

Algorithm (forward dataflow):
  - the entry block starts from the parameter state; every other block
    starts unset (bottom) and is only evaluated once some predecessor reached it;
  - a block's exit state is its entry state run through the transfer functions;
  - a successor's entry state is the join of all evaluated predecessors' exit
    states; the successor is re-enqueued only when that join changes.

The lattice has finite height (partitions only coarsen, transfer-site sets
only grow), so the queue drains. Once converged, one final evaluation pass
over every reached block records the access sites used for diagnostics.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set

from sendck import ir
from sendck.isolation import IsolationClassifier
from sendck.regions import AccessSite, TransferState
from sendck.transfer import TransferFunctions

logger = logging.getLogger(__name__)


class FixpointDivergenceError(RuntimeError):
	"""Raised when the worklist exceeds the bound implied by the lattice height."""


@dataclass
class FixpointResult:
	"""Converged per-block states plus the access sites found by the final pass."""

	entry_states: Dict[ir.BlockName, TransferState] = field(default_factory=dict)
	exit_states: Dict[ir.BlockName, TransferState] = field(default_factory=dict)
	accesses: List[AccessSite] = field(default_factory=list)
	iterations: int = 0

	def reached(self, block: ir.BlockName) -> bool:
		return block in self.entry_states


class FixpointDriver:
	"""
	Run the region analysis for one function.

	A driver owns its states exclusively; analyze separate functions with
	separate drivers.
	"""

	def __init__(self, function: ir.Function, classifier: IsolationClassifier | None = None) -> None:
		self.function = function
		self.transfer = TransferFunctions(function, classifier)
		self._order = function.block_order()
		self._preds = ir.predecessors(function)

	def iteration_bound(self) -> int:
		"""
		Upper bound on block evaluations for a well-formed input.

		Each block's entry state can change at most once per value added, per
		merge, and per transfer site gained by a region.
		"""
		values = {v.name for v in ir.iter_values(self.function) if not v.sendable}
		calls = sum(1 for b in self.function.blocks.values() for op in b.ops if isinstance(op, ir.Call))
		height = 2 * len(values) + calls * max(len(values), 1) + 1
		return len(self.function.blocks) * (height + 1)

	def _entry_for(self, name: ir.BlockName, exits: Dict[ir.BlockName, TransferState], initial: TransferState) -> Optional[TransferState]:
		incoming = [exits[p] for p in self._preds[name] if p in exits]
		if name == self.function.entry:
			incoming.insert(0, initial)
		return TransferState.join_all(incoming)

	def run(self) -> FixpointResult:
		func = self.function
		logger.debug("fixpoint: start %s (%d blocks)", func.name, len(func.blocks))
		initial = self.transfer.entry_state()
		entries: Dict[ir.BlockName, TransferState] = {func.entry: initial.copy()}
		exits: Dict[ir.BlockName, TransferState] = {}
		worklist: Deque[ir.BlockName] = deque([func.entry])
		queued: Set[ir.BlockName] = {func.entry}
		bound = self.iteration_bound()
		iterations = 0
		while worklist:
			name = worklist.popleft()
			queued.discard(name)
			iterations += 1
			if iterations > bound:
				logger.error("fixpoint: %s exceeded %d block evaluations", func.name, bound)
				raise FixpointDivergenceError(f"region analysis of '{func.name}' did not converge after {bound} block evaluations")
			block = func.blocks[name]
			exits[name] = self.transfer.apply_block(entries[name].copy(), block, self._order[name])
			for succ in ir.successors(block.terminator):
				new_entry = self._entry_for(succ, exits, initial)
				if new_entry is None or new_entry == entries.get(succ):
					continue
				entries[succ] = new_entry
				if succ not in queued:
					worklist.append(succ)
					queued.add(succ)
		logger.debug("fixpoint: %s converged after %d block evaluations", func.name, iterations)

		accesses: List[AccessSite] = []
		for name, block in func.blocks.items():
			if name not in entries:
				continue
			self.transfer.apply_block(entries[name].copy(), block, self._order[name], on_access=accesses.append)
		return FixpointResult(entry_states=entries, exit_states=exits, accesses=accesses, iterations=iterations)


def analyze_function(function: ir.Function, classifier: IsolationClassifier | None = None) -> FixpointResult:
	"""Convenience wrapper: build a driver and run it."""
	return FixpointDriver(function, classifier).run()


__all__ = ["FixpointDivergenceError", "FixpointResult", "FixpointDriver", "analyze_function"]
