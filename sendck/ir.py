# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Sendability IR: the typed CFG consumed by the region checker.

Pipeline placement:
  front-end (out of tree) / `.sir` text (sendck.parser) → IR (this file) → fixpoint → diagnostics

The IR is deliberately small. Each function is a set of basic blocks; each
block is a list of operations followed by a single terminator. Values are
static definitions (SSA-like names) carrying their type name and whether that
type is sendable. Operations carry the isolation annotations the front-end
resolved for them; the checker never inspects callee names itself.

There are **no semantics** baked in here; region rules live in
`sendck.transfer`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional, Tuple

from sendck.core.span import Span


ValueName = str
BlockName = str


class IRValidationError(ValueError):
	"""
	Raised when a function body is structurally malformed.

	Malformed IR is a bug in whatever produced it, not a finding about the
	analyzed program; the driver reports it as an `ir`-phase error.
	"""

	def __init__(self, message: str, *, function: str | None = None, span: Span | None = None) -> None:
		super().__init__(message)
		self.function = function
		self.span = span or Span()


@dataclass(frozen=True)
class TypeInfo:
	"""A named type and whether its values may be shared across domains."""

	name: str
	sendable: bool = False


@dataclass(frozen=True)
class Value:
	"""
	A single static definition inside one function body.

	Identity is the name: the IR guarantees names are unique per function.
	"""

	name: ValueName
	type: TypeInfo

	@property
	def sendable(self) -> bool:
		return self.type.sendable

	@property
	def type_name(self) -> str:
		return self.type.name

	def __str__(self) -> str:
		return self.name


class AccessKind(Enum):
	"""How an operation uses one of its operands."""

	READ = auto()
	WRITE = auto()
	ARGUMENT = auto()
	CAPTURE = auto()
	RETURN = auto()
	THROW = auto()
	CONDITION = auto()

	def describe(self) -> str:
		return _ACCESS_WORDS[self]


_ACCESS_WORDS = {
	AccessKind.READ: "read",
	AccessKind.WRITE: "write",
	AccessKind.ARGUMENT: "use as call argument",
	AccessKind.CAPTURE: "closure capture",
	AccessKind.RETURN: "return",
	AccessKind.THROW: "throw",
	AccessKind.CONDITION: "branch on value",
}


class Op:
	"""Base class for IR operations (non-terminators)."""

	loc: Span

	def defines(self) -> Optional[Value]:
		return getattr(self, "dest", None)


class Terminator:
	"""Base class for IR terminators (end of a basic block)."""

	loc: Span


# Operations

@dataclass
class Init(Op):
	"""dest = T(args...): construct a value; non-sendable args may be referenced by it."""
	dest: Value
	args: List[Value] = field(default_factory=list)
	loc: Span = field(default_factory=Span)


@dataclass
class FieldRead(Op):
	"""dest = base.field"""
	dest: Value
	base: Value
	field_name: str
	loc: Span = field(default_factory=Span)


@dataclass
class Alias(Op):
	"""dest = src"""
	dest: Value
	src: Value
	loc: Span = field(default_factory=Span)


@dataclass
class FieldWrite(Op):
	"""base.field = value"""
	base: Value
	field_name: str
	value: Value
	loc: Span = field(default_factory=Span)


@dataclass
class Closure(Op):
	"""dest = closure capturing `captures`."""
	dest: Value
	captures: List[Value] = field(default_factory=list)
	loc: Span = field(default_factory=Span)


@dataclass
class Call(Op):
	"""
	[dest =] [receiver.]callee(args...)

	`callee_domain` is the isolation domain the callee runs in (None means the
	caller's own domain). `spawns_task` marks calls whose effect is to schedule
	a closure for concurrent execution; it is independent of the domain.
	"""
	callee: str
	args: List[Value] = field(default_factory=list)
	dest: Optional[Value] = None
	receiver: Optional[Value] = None
	callee_domain: Optional[str] = None
	spawns_task: bool = False
	loc: Span = field(default_factory=Span)


@dataclass
class Use(Op):
	"""A plain access of a value (read or write) with no other effect."""
	value: Value
	kind: AccessKind = AccessKind.READ
	loc: Span = field(default_factory=Span)


# Terminators

@dataclass
class Goto(Terminator):
	"""Unconditional jump."""
	target: BlockName
	loc: Span = field(default_factory=Span)


@dataclass
class Branch(Terminator):
	"""Multi-way branch; `cond` is the (optional) value the branch inspects."""
	targets: List[BlockName]
	cond: Optional[Value] = None
	loc: Span = field(default_factory=Span)


@dataclass
class Return(Terminator):
	"""Return from the function, optionally escaping a value."""
	value: Optional[Value] = None
	loc: Span = field(default_factory=Span)


@dataclass
class Throw(Terminator):
	"""
	Exception-like early exit.

	When `handler` is set, control continues at that block; otherwise the
	function exits.
	"""
	value: Optional[Value] = None
	handler: Optional[BlockName] = None
	loc: Span = field(default_factory=Span)


@dataclass
class Unreachable(Terminator):
	"""Marks the end of a block control never leaves normally."""
	loc: Span = field(default_factory=Span)


@dataclass
class BasicBlock:
	"""
	Basic block: a list of operations followed by a single terminator.

	No control flow leaves this block except via the terminator.
	"""
	name: BlockName
	ops: List[Op] = field(default_factory=list)
	terminator: Optional[Terminator] = None


@dataclass
class Function:
	"""
	One function body: parameters, the isolation domain it executes in, and
	its blocks keyed by name. `entry` names the entry block; dict order is the
	program order used for deterministic output.
	"""
	name: str
	params: List[Value] = field(default_factory=list)
	domain: str = "nonisolated"
	blocks: Dict[BlockName, BasicBlock] = field(default_factory=dict)
	entry: BlockName = "entry"
	loc: Span = field(default_factory=Span)

	def block_order(self) -> Dict[BlockName, int]:
		return {name: idx for idx, name in enumerate(self.blocks)}


@dataclass
class Module:
	"""A set of independently analyzable functions plus the declared types."""
	functions: List[Function] = field(default_factory=list)
	types: Dict[str, TypeInfo] = field(default_factory=dict)
	path: Optional[str] = None


def successors(term: Optional[Terminator]) -> List[BlockName]:
	"""Return the CFG successors named by a terminator (in declaration order)."""
	if isinstance(term, Goto):
		return [term.target]
	if isinstance(term, Branch):
		return list(term.targets)
	if isinstance(term, Throw) and term.handler is not None:
		return [term.handler]
	return []


def predecessors(func: Function) -> Dict[BlockName, List[BlockName]]:
	"""Map each block to the blocks that can jump to it (program order, no duplicates)."""
	preds: Dict[BlockName, List[BlockName]] = {name: [] for name in func.blocks}
	for name, block in func.blocks.items():
		for succ in successors(block.terminator):
			if succ in preds and name not in preds[succ]:
				preds[succ].append(name)
	return preds


def operands_of(node: Op | Terminator) -> List[Tuple[Value, AccessKind]]:
	"""
	List the values an operation or terminator uses, with the access kind.

	Definitions (`dest`) are not operands.
	"""
	if isinstance(node, Init):
		return [(a, AccessKind.ARGUMENT) for a in node.args]
	if isinstance(node, FieldRead):
		return [(node.base, AccessKind.READ)]
	if isinstance(node, Alias):
		return [(node.src, AccessKind.READ)]
	if isinstance(node, FieldWrite):
		return [(node.base, AccessKind.WRITE), (node.value, AccessKind.READ)]
	if isinstance(node, Closure):
		return [(c, AccessKind.CAPTURE) for c in node.captures]
	if isinstance(node, Call):
		out: List[Tuple[Value, AccessKind]] = []
		if node.receiver is not None:
			out.append((node.receiver, AccessKind.ARGUMENT))
		out.extend((a, AccessKind.ARGUMENT) for a in node.args)
		return out
	if isinstance(node, Use):
		return [(node.value, node.kind)]
	if isinstance(node, Branch):
		return [(node.cond, AccessKind.CONDITION)] if node.cond is not None else []
	if isinstance(node, Return):
		return [(node.value, AccessKind.RETURN)] if node.value is not None else []
	if isinstance(node, Throw):
		return [(node.value, AccessKind.THROW)] if node.value is not None else []
	return []


def iter_values(func: Function) -> Iterator[Value]:
	"""Yield every value defined in `func` (parameters first, then op results)."""
	yield from func.params
	for block in func.blocks.values():
		for op in block.ops:
			dest = op.defines()
			if dest is not None:
				yield dest


def validate_function(func: Function) -> None:
	"""
	Check the structural preconditions the checker relies on.

	Raises IRValidationError on: missing entry block, missing terminator,
	branch to an unknown block, use of a value never defined in the function,
	or one name defined with two different types.
	"""
	if func.entry not in func.blocks:
		raise IRValidationError(f"function '{func.name}' has no entry block '{func.entry}'", function=func.name, span=func.loc)
	defined: Dict[ValueName, TypeInfo] = {}
	for val in iter_values(func):
		prev = defined.get(val.name)
		if prev is not None and prev != val.type:
			raise IRValidationError(
				f"value '{val.name}' defined with conflicting types '{prev.name}' and '{val.type_name}'",
				function=func.name,
				span=func.loc,
			)
		defined[val.name] = val.type
	for name, block in func.blocks.items():
		if block.name != name:
			raise IRValidationError(f"block '{block.name}' registered under name '{name}'", function=func.name)
		if block.terminator is None:
			raise IRValidationError(f"block '{name}' has no terminator", function=func.name, span=func.loc)
		for node in [*block.ops, block.terminator]:
			for val, _kind in operands_of(node):
				if val.name not in defined:
					raise IRValidationError(
						f"use of undefined value '{val.name}' in block '{name}'",
						function=func.name,
						span=getattr(node, "loc", None),
					)
		for succ in successors(block.terminator):
			if succ not in func.blocks:
				raise IRValidationError(
					f"block '{name}' jumps to unknown block '{succ}'",
					function=func.name,
					span=getattr(block.terminator, "loc", None),
				)


__all__ = [
	"ValueName",
	"BlockName",
	"IRValidationError",
	"TypeInfo",
	"Value",
	"AccessKind",
	"Op",
	"Terminator",
	"Init",
	"FieldRead",
	"Alias",
	"FieldWrite",
	"Closure",
	"Call",
	"Use",
	"Goto",
	"Branch",
	"Return",
	"Throw",
	"Unreachable",
	"BasicBlock",
	"Function",
	"Module",
	"successors",
	"predecessors",
	"operands_of",
	"iter_values",
	"validate_function",
]
