# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: sendck maintainers; created: 2026-09-28
"""
Region partition and transfer state.

A region is an equivalence class of non-sendable values that may alias or
reference one another. Merges only ever coarsen the partition; the one way a
value leaves its region is a new definition of that value name, which starts
it in a fresh region and leaves the old one (and its transfer record) to the
remaining members. Each region carries a transfer record listing the call
sites that handed it to another domain; the record lives on the union-find
representative and is merged on union.

State model per program point:
  RegionPartition  value -> representative (union-find, path compression)
  TransferState    partition + {representative: TransferRecord}

`TransferState.join` is the control-flow join: the finest partition that
coarsens both inputs, with transfer records unioned per merged region.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from sendck.core.span import Span
from sendck.ir import AccessKind, ValueName
from sendck.isolation import CrossingKind


@dataclass(frozen=True, order=True)
class ProgramPoint:
	"""
	Position of an operation: block ordinal in program order plus the op index
	within the block. The terminator sits at index `len(block.ops)`.
	"""

	block_index: int
	op_index: int
	block: str = field(default="", compare=False)

	def __str__(self) -> str:
		return f"{self.block}#{self.op_index}"


@dataclass(frozen=True)
class TransferSite:
	"""
	A crossing call and the values it transferred.

	A site is identified by its call's program point. The operand set of one
	call can grow across fixpoint iterations (a back edge brings in another
	definition); `merged` folds such versions into one site.
	"""

	point: ProgramPoint
	callee: str
	kind: CrossingKind
	values: Tuple[ValueName, ...] = field(compare=False)
	type_names: Tuple[str, ...] = field(compare=False)
	from_domain: str
	to_domain: Optional[str] = field(default=None, compare=False)
	span: Span = field(default_factory=Span, compare=False)

	def details(self) -> Tuple[Tuple[ValueName, ...], Tuple[str, ...]]:
		return (self.values, self.type_names)

	def merged(self, other: "TransferSite") -> "TransferSite":
		"""Union of the values (and their types) seen for the same call."""
		if other.details() == self.details():
			return self
		values = self.values + tuple(v for v in other.values if v not in self.values)
		type_names = self.type_names + tuple(t for t in other.type_names if t not in self.type_names)
		return replace(self, values=values, type_names=type_names)


@dataclass(frozen=True)
class AccessSite:
	"""A use of a value whose region is transferred at that point."""

	point: ProgramPoint
	value: ValueName
	type_name: str
	kind: AccessKind
	sites: Tuple[TransferSite, ...]
	span: Span = field(default_factory=Span, compare=False)


def _site_key(site: TransferSite) -> ProgramPoint:
	return site.point


@dataclass(frozen=True)
class TransferRecord:
	"""Transfer sites of one region, ordered by program point, one per call."""

	sites: Tuple[TransferSite, ...] = ()

	@property
	def transferred(self) -> bool:
		return bool(self.sites)

	def with_site(self, site: TransferSite) -> "TransferRecord":
		return self.merge(TransferRecord((site,)))

	def merge(self, other: "TransferRecord") -> "TransferRecord":
		if not other.sites:
			return self
		if not self.sites:
			return other
		by_point: Dict[ProgramPoint, TransferSite] = {s.point: s for s in self.sites}
		for site in other.sites:
			prev = by_point.get(site.point)
			by_point[site.point] = site if prev is None else prev.merged(site)
		return TransferRecord(tuple(sorted(by_point.values(), key=_site_key)))


_EMPTY_RECORD = TransferRecord()


class RegionPartition:
	"""
	Union-find over value names with path compression and union by size.

	Only tracked (non-sendable, defined) values are members; `find` on a
	non-member is a caller error.
	"""

	__slots__ = ("parents", "weights")

	def __init__(self) -> None:
		self.parents: Dict[ValueName, ValueName] = {}
		self.weights: Dict[ValueName, int] = {}

	def __contains__(self, value: ValueName) -> bool:
		return value in self.parents

	def __iter__(self) -> Iterator[ValueName]:
		return iter(self.parents)

	def __len__(self) -> int:
		return len(self.parents)

	def add(self, value: ValueName) -> bool:
		"""Track `value` in a fresh singleton region. Returns False if already tracked."""
		if value in self.parents:
			return False
		self.parents[value] = value
		self.weights[value] = 1
		return True

	def find(self, value: ValueName) -> ValueName:
		root = value
		while self.parents[root] != root:
			root = self.parents[root]
		# Path compression.
		while self.parents[value] != root:
			nxt = self.parents[value]
			self.parents[value] = root
			value = nxt
		return root

	def union(self, first: ValueName, *others: ValueName) -> ValueName:
		"""Merge the regions of all given values; return the surviving representative."""
		biggest = self.find(first)
		roots = {biggest}
		for other in others:
			root = self.find(other)
			if root in roots:
				continue
			# Tie-break on name so the representative does not depend on call order.
			if (self.weights[root], biggest) > (self.weights[biggest], root):
				biggest = root
			roots.add(root)
		if len(roots) > 1:
			weight = 0
			for root in roots:
				self.parents[root] = biggest
				weight += self.weights.pop(root)
			self.weights[biggest] = weight
		return biggest

	def same_region(self, a: ValueName, b: ValueName) -> bool:
		return self.find(a) == self.find(b)

	def classes(self) -> Dict[ValueName, FrozenSet[ValueName]]:
		"""Map each representative to the members of its region."""
		groups: Dict[ValueName, List[ValueName]] = {}
		for value in self.parents:
			groups.setdefault(self.find(value), []).append(value)
		return {root: frozenset(members) for root, members in groups.items()}

	def detach(self, value: ValueName) -> Tuple[ValueName, Optional[ValueName]]:
		"""
		Move `value` into a fresh singleton region.

		The rest of its old class is rebuilt under one representative. Returns
		the old representative and the representative of the remaining
		members (None when `value` was alone).
		"""
		old_root = self.find(value)
		rest = [v for v in self.parents if v != value and self.find(v) == old_root]
		del self.weights[old_root]
		self.parents[value] = value
		self.weights[value] = 1
		if not rest:
			return old_root, None
		new_root = old_root if old_root != value else min(rest)
		for v in rest:
			self.parents[v] = new_root
		self.weights[new_root] = len(rest)
		return old_root, new_root

	def copy(self) -> "RegionPartition":
		out = RegionPartition()
		out.parents.update(self.parents)
		out.weights.update(self.weights)
		return out


class TransferState:
	"""Region partition plus per-region transfer records at one program point."""

	__slots__ = ("partition", "records")

	def __init__(self, partition: RegionPartition | None = None, records: Dict[ValueName, TransferRecord] | None = None) -> None:
		self.partition = partition if partition is not None else RegionPartition()
		self.records: Dict[ValueName, TransferRecord] = records if records is not None else {}

	def copy(self) -> "TransferState":
		return TransferState(self.partition.copy(), dict(self.records))

	# -- queries ---------------------------------------------------------

	def is_tracked(self, value: ValueName) -> bool:
		return value in self.partition

	def find(self, value: ValueName) -> ValueName:
		return self.partition.find(value)

	def record_for(self, value: ValueName) -> TransferRecord:
		return self.records.get(self.partition.find(value), _EMPTY_RECORD)

	def is_transferred(self, value: ValueName) -> bool:
		return self.is_tracked(value) and self.record_for(value).transferred

	def sites_for(self, value: ValueName) -> Tuple[TransferSite, ...]:
		if not self.is_tracked(value):
			return ()
		return self.record_for(value).sites

	# -- updates ---------------------------------------------------------

	def track(self, value: ValueName) -> None:
		"""Give `value` a fresh region unless it already has one."""
		self.partition.add(value)

	def redefine(self, value: ValueName) -> None:
		"""
		Start a new definition of `value` in a fresh region.

		The previous definition's region keeps its other members and its
		transfer record; the new definition shares neither.
		"""
		if not self.is_tracked(value):
			self.partition.add(value)
			return
		old_root, rest_root = self.partition.detach(value)
		rec = self.records.pop(old_root, None)
		if rec is not None and rest_root is not None:
			self.records[rest_root] = rec

	def union(self, first: ValueName, *others: ValueName) -> ValueName:
		"""Merge regions, combining their transfer records on the new representative."""
		old_roots = {self.partition.find(first)}
		old_roots.update(self.partition.find(o) for o in others)
		root = self.partition.union(first, *others)
		merged = _EMPTY_RECORD
		for old in sorted(old_roots):
			rec = self.records.pop(old, None)
			if rec is not None:
				merged = merged.merge(rec)
		if merged.transferred:
			self.records[root] = merged
		return root

	def mark_transferred(self, value: ValueName, site: TransferSite) -> None:
		"""Mark the region of `value` transferred at `site` (additive on re-transfer)."""
		root = self.partition.find(value)
		self.records[root] = self.records.get(root, _EMPTY_RECORD).with_site(site)

	# -- lattice ---------------------------------------------------------

	def join(self, other: "TransferState") -> "TransferState":
		"""
		Control-flow join of two states reaching the same point.

		Any pair unioned in either input is unioned in the result; a merged
		region is transferred if any contributing region was, with the union
		of sites.
		"""
		out = TransferState()
		for state in (self, other):
			for value in state.partition:
				out.partition.add(value)
		for state in (self, other):
			for value in state.partition:
				root = state.partition.find(value)
				if root != value:
					out.partition.union(value, root)
		for state in (self, other):
			for root, rec in state.records.items():
				if not rec.transferred:
					continue
				new_root = out.partition.find(root)
				out.records[new_root] = out.records.get(new_root, _EMPTY_RECORD).merge(rec)
		return out

	@staticmethod
	def join_all(states: Iterable["TransferState"]) -> Optional["TransferState"]:
		"""Pairwise join of all given states; None when there are none."""
		result: Optional[TransferState] = None
		for state in states:
			result = state.copy() if result is None else result.join(state)
		return result

	def canonical(self) -> FrozenSet[Tuple[FrozenSet[ValueName], FrozenSet[Tuple[TransferSite, FrozenSet[str]]]]]:
		"""Representative-independent form used for equality (site operand sets included)."""
		out = set()
		for root, members in self.partition.classes().items():
			sites = self.records.get(root, _EMPTY_RECORD).sites
			out.add((members, frozenset((s, frozenset(s.values)) for s in sites)))
		return frozenset(out)

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, TransferState):
			return NotImplemented
		return self.canonical() == other.canonical()

	__hash__ = None  # type: ignore[assignment]

	def __repr__(self) -> str:
		parts = []
		for root, members in sorted(self.partition.classes().items()):
			rec = self.records.get(root, _EMPTY_RECORD)
			tag = f" transferred@{','.join(str(s.point) for s in rec.sites)}" if rec.transferred else ""
			parts.append("{" + ", ".join(sorted(members)) + "}" + tag)
		return f"TransferState({' '.join(parts)})"


__all__ = [
	"ProgramPoint",
	"TransferSite",
	"AccessSite",
	"TransferRecord",
	"RegionPartition",
	"TransferState",
]
