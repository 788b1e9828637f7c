# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Shared helpers for tests that build checker inputs.

`FunctionBuilder` spells IR functions without repeating Value/TypeInfo/Block
boilerplate, and `parse_one` turns a `.sir` snippet into its single function.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from sendck import ir
from sendck.parser import parse_module

NS = ir.TypeInfo("Box")  # non-sendable
SENDABLE_INT = ir.TypeInfo("Int", sendable=True)


class FunctionBuilder:
	"""
	Incremental builder for `ir.Function`.

	Ops go to the current block; `block(name)` switches (creating the block on
	first use). The first block created is the entry.
	"""

	def __init__(self, name: str = "f", *, domain: str = "main", params: Sequence[ir.Value] = ()) -> None:
		self.func = ir.Function(name=name, params=list(params), domain=domain)
		self._current: Optional[ir.BasicBlock] = None
		self.values: Dict[str, ir.Value] = {p.name: p for p in params}
		self.block("entry")

	def block(self, name: str) -> "FunctionBuilder":
		if name not in self.func.blocks:
			self.func.blocks[name] = ir.BasicBlock(name=name)
			if len(self.func.blocks) == 1:
				self.func.entry = name
		self._current = self.func.blocks[name]
		return self

	def _val(self, name: str, ty: ir.TypeInfo) -> ir.Value:
		val = ir.Value(name, ty)
		self.values[name] = val
		return val

	def _emit(self, op: ir.Op) -> None:
		assert self._current is not None
		self._current.ops.append(op)

	def init(self, name: str, *args: ir.Value, ty: ir.TypeInfo = NS) -> ir.Value:
		dest = self._val(name, ty)
		self._emit(ir.Init(dest=dest, args=list(args)))
		return dest

	def load(self, name: str, base: ir.Value, field_name: str = "f", ty: ir.TypeInfo = NS) -> ir.Value:
		dest = self._val(name, ty)
		self._emit(ir.FieldRead(dest=dest, base=base, field_name=field_name))
		return dest

	def alias(self, name: str, src: ir.Value) -> ir.Value:
		dest = self._val(name, src.type)
		self._emit(ir.Alias(dest=dest, src=src))
		return dest

	def store(self, base: ir.Value, value: ir.Value, field_name: str = "f") -> None:
		self._emit(ir.FieldWrite(base=base, field_name=field_name, value=value))

	def closure(self, name: str, *captures: ir.Value, ty: ir.TypeInfo = ir.TypeInfo("Closure")) -> ir.Value:
		dest = self._val(name, ty)
		self._emit(ir.Closure(dest=dest, captures=list(captures)))
		return dest

	def call(
		self,
		callee: str,
		*args: ir.Value,
		result: Optional[str] = None,
		result_ty: ir.TypeInfo = NS,
		receiver: Optional[ir.Value] = None,
		on: Optional[str] = None,
		spawn: bool = False,
	) -> Optional[ir.Value]:
		dest = self._val(result, result_ty) if result is not None else None
		self._emit(ir.Call(callee=callee, args=list(args), dest=dest, receiver=receiver, callee_domain=on, spawns_task=spawn))
		return dest

	def use(self, value: ir.Value, kind: ir.AccessKind = ir.AccessKind.READ) -> None:
		self._emit(ir.Use(value=value, kind=kind))

	def _terminate(self, term: ir.Terminator) -> None:
		assert self._current is not None
		self._current.terminator = term

	def goto(self, target: str) -> None:
		self._terminate(ir.Goto(target=target))

	def branch(self, *targets: str, cond: Optional[ir.Value] = None) -> None:
		self._terminate(ir.Branch(targets=list(targets), cond=cond))

	def ret(self, value: Optional[ir.Value] = None) -> None:
		self._terminate(ir.Return(value=value))

	def throw(self, value: Optional[ir.Value] = None, handler: Optional[str] = None) -> None:
		self._terminate(ir.Throw(value=value, handler=handler))

	def build(self) -> ir.Function:
		for block in self.func.blocks.values():
			if block.terminator is None:
				block.terminator = ir.Return()
		return self.func


def parse_one(source: str) -> ir.Function:
	"""Parse a `.sir` snippet that declares exactly one function."""
	module = parse_module(source)
	assert len(module.functions) == 1, f"expected one function, got {len(module.functions)}"
	return module.functions[0]


def note_lines(diag) -> List[int]:
	"""Source lines of a diagnostic's notes (None for unknown spans)."""
	return [n.span.line for n in diag.notes]


__all__ = ["NS", "SENDABLE_INT", "FunctionBuilder", "parse_one", "note_lines"]
