# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: sendck maintainers; created: 2026-10-02
"""
`.sir` parser: lark grammar → sendck.ir objects.

Functions are built in two passes: the first collects every value definition
(parameters and op results) with its type, the second builds operations, so a
value may be used textually before its definition (loop back-edges).
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput

from sendck import ir
from sendck.core.span import Span

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

CLOSURE_TYPE = "Closure"


class SirParseError(ValueError):
	"""User-facing parse error pinned to a source span."""

	def __init__(self, message: str, *, span: Span | None = None) -> None:
		super().__init__(message)
		self.span = span or Span()


_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
)


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)


def _tokens(tree: Tree, kind: str = "NAME") -> List[Token]:
	return [c for c in tree.children if isinstance(c, Token) and c.type == kind]


def _subtree(tree: Tree, kind: str) -> Optional[Tree]:
	return next((c for c in tree.children if isinstance(c, Tree) and _name(c) == kind), None)


def _names(tree: Optional[Tree]) -> List[Token]:
	if tree is None:
		return []
	return _tokens(tree)


def _label(tok: Token) -> str:
	return tok.value[1:]


class _ModuleBuilder:
	def __init__(self, file: Optional[str]) -> None:
		self.file = file
		self.types: Dict[str, ir.TypeInfo] = {}

	def span(self, node: Tree | Token) -> Span:
		if isinstance(node, Tree):
			meta = node.meta
			if getattr(meta, "empty", True):
				return Span(file=self.file)
			return Span.from_loc(meta, file=self.file)
		return Span(file=self.file, line=node.line, column=node.column, end_line=node.end_line, end_column=node.end_column)

	def error(self, message: str, node: Tree | Token) -> SirParseError:
		return SirParseError(message, span=self.span(node))

	def type_info(self, name: str) -> ir.TypeInfo:
		# Undeclared types are treated as non-sendable.
		return self.types.get(name) or ir.TypeInfo(name)

	def build(self, tree: Tree) -> ir.Module:
		for child in tree.children:
			if _name(child) == "type_decl":
				name_tok = _tokens(child)[0]
				if name_tok.value in self.types:
					raise self.error(f"duplicate type declaration '{name_tok.value}'", name_tok)
				self.types[name_tok.value] = ir.TypeInfo(name_tok.value, sendable=bool(_tokens(child, "SENDABLE")))
		module = ir.Module(types=dict(self.types), path=self.file)
		seen: set[str] = set()
		for child in tree.children:
			if _name(child) != "func_def":
				continue
			func = _FunctionBuilder(self, child).build()
			if func.name in seen:
				raise self.error(f"duplicate function '{func.name}'", child)
			seen.add(func.name)
			module.functions.append(func)
		return module


class _FunctionBuilder:
	def __init__(self, module: _ModuleBuilder, tree: Tree) -> None:
		self.module = module
		self.tree = tree
		self.values: Dict[str, ir.Value] = {}

	def error(self, message: str, node: Tree | Token) -> SirParseError:
		return self.module.error(message, node)

	def _define(self, tok: Token, ty: ir.TypeInfo) -> None:
		prev = self.values.get(tok.value)
		if prev is not None and prev.type != ty:
			raise self.error(f"value '{tok.value}' redefined with type '{ty.name}' (was '{prev.type_name}')", tok)
		self.values[tok.value] = ir.Value(tok.value, ty)

	def value(self, tok: Token) -> ir.Value:
		val = self.values.get(tok.value)
		if val is None:
			raise self.error(f"use of undefined value '{tok.value}'", tok)
		return val

	def _collect_definitions(self, blocks: List[Tree]) -> None:
		pending_copies: List[tuple[Token, Token]] = []
		for block in blocks:
			for op in block.children:
				if not isinstance(op, Tree) or _name(op) != "assign":
					continue
				head = _tokens(op)
				dest = head[0]
				annotated = self.module.type_info(head[1].value) if len(head) > 1 else None
				rhs = op.children[-1]
				kind = _name(rhs)
				if kind == "init_rhs":
					ty = self.module.type_info(_tokens(rhs)[0].value)
					if annotated is not None and annotated != ty:
						raise self.error(f"'{dest.value}' annotated as '{annotated.name}' but initialized as '{ty.name}'", dest)
					self._define(dest, ty)
				elif kind == "copy_rhs":
					if annotated is not None:
						self._define(dest, annotated)
					else:
						pending_copies.append((dest, _tokens(rhs)[0]))
				elif kind == "closure_rhs":
					self._define(dest, annotated or self.module.type_info(CLOSURE_TYPE))
				elif annotated is not None:
					self._define(dest, annotated)
				else:
					what = "field read" if kind == "load_rhs" else "call result"
					raise self.error(f"{what} '{dest.value}' needs a type annotation", dest)
		# Copies take the type of their source; resolve chains until no progress.
		while pending_copies:
			progress = False
			rest: List[tuple[Token, Token]] = []
			for dest, src in pending_copies:
				if src.value in self.values:
					self._define(dest, self.values[src.value].type)
					progress = True
				else:
					rest.append((dest, src))
			if not progress:
				dest, src = rest[0]
				raise self.error(f"cannot infer type of '{dest.value}': '{src.value}' is undefined", src)
			pending_copies = rest

	def build(self) -> ir.Function:
		head = _tokens(self.tree)
		name_tok, domain_tok = head[0], head[-1]
		params_tree = _subtree(self.tree, "params")
		params: List[ir.Value] = []
		if params_tree is not None:
			for p in params_tree.children:
				p_name, p_type = _tokens(p)
				if p_name.value in self.values:
					raise self.error(f"duplicate parameter '{p_name.value}'", p_name)
				self._define(p_name, self.module.type_info(p_type.value))
				params.append(self.values[p_name.value])
		blocks = [c for c in self.tree.children if isinstance(c, Tree) and _name(c) == "block"]
		self._collect_definitions(blocks)
		func = ir.Function(
			name=name_tok.value,
			params=params,
			domain=domain_tok.value,
			entry=_label(_tokens(blocks[0], "LABEL")[0]),
			loc=self.module.span(self.tree),
		)
		for block in blocks:
			label_tok = _tokens(block, "LABEL")[0]
			label = _label(label_tok)
			if label in func.blocks:
				raise self.error(f"duplicate block '@{label}' in function '{func.name}'", label_tok)
			bb = ir.BasicBlock(name=label)
			for child in block.children[1:-1]:
				bb.ops.append(self._build_op(child))
			bb.terminator = self._build_terminator(block.children[-1])
			func.blocks[label] = bb
		return func

	def _build_call(self, expr: Tree, dest: Optional[ir.Value], loc: Span) -> ir.Call:
		dotted = _tokens(_subtree(expr, "dotted"))
		callee = ".".join(t.value for t in dotted)
		receiver: Optional[ir.Value] = None
		if len(dotted) > 1 and dotted[0].value in self.values:
			receiver = self.values[dotted[0].value]
		args = [self.value(t) for t in _names(_subtree(expr, "names"))]
		call = ir.Call(callee=callee, args=args, dest=dest, receiver=receiver, loc=loc)
		for attr in expr.children:
			if not isinstance(attr, Tree):
				continue
			if _name(attr) == "on_attr":
				call.callee_domain = _tokens(attr)[0].value
			elif _name(attr) == "spawn_attr":
				call.spawns_task = True
		return call

	def _build_op(self, node: Tree) -> ir.Op:
		kind = _name(node)
		loc = self.module.span(node)
		if kind == "assign":
			dest = self.value(_tokens(node)[0])
			rhs = node.children[-1]
			rkind = _name(rhs)
			if rkind == "init_rhs":
				return ir.Init(dest=dest, args=[self.value(t) for t in _names(_subtree(rhs, "names"))], loc=loc)
			if rkind == "load_rhs":
				base, field_name = _tokens(rhs)
				return ir.FieldRead(dest=dest, base=self.value(base), field_name=field_name.value, loc=loc)
			if rkind == "copy_rhs":
				return ir.Alias(dest=dest, src=self.value(_tokens(rhs)[0]), loc=loc)
			if rkind == "closure_rhs":
				return ir.Closure(dest=dest, captures=[self.value(t) for t in _names(_subtree(rhs, "names"))], loc=loc)
			return self._build_call(rhs, dest, loc)
		if kind == "store":
			base, field_name, value = _tokens(node)
			return ir.FieldWrite(base=self.value(base), field_name=field_name.value, value=self.value(value), loc=loc)
		if kind == "call_stmt":
			return self._build_call(node.children[0], None, loc)
		if kind == "use":
			return ir.Use(value=self.value(_tokens(node)[0]), kind=ir.AccessKind.READ, loc=loc)
		if kind == "write":
			return ir.Use(value=self.value(_tokens(node)[0]), kind=ir.AccessKind.WRITE, loc=loc)
		raise self.error(f"unexpected operation '{kind}'", node)

	def _build_terminator(self, node: Tree) -> ir.Terminator:
		kind = _name(node)
		loc = self.module.span(node)
		names = _tokens(node)
		labels = [_label(t) for t in _tokens(node, "LABEL")]
		if kind == "goto":
			return ir.Goto(target=labels[0], loc=loc)
		if kind == "branch":
			cond = self.value(names[0]) if names else None
			return ir.Branch(targets=labels, cond=cond, loc=loc)
		if kind == "ret":
			return ir.Return(value=self.value(names[0]) if names else None, loc=loc)
		if kind == "throw":
			return ir.Throw(value=self.value(names[0]) if names else None, handler=labels[0] if labels else None, loc=loc)
		return ir.Unreachable(loc=loc)


def parse_module(source: str, *, file: Optional[str] = None) -> ir.Module:
	"""
	Parse `.sir` source into an IR module.

	Raises SirParseError for syntax errors and for semantic errors the parser
	can pin to a token (undefined values, duplicate blocks, missing types).
	"""
	try:
		tree = _PARSER.parse(source)
	except UnexpectedInput as err:
		span = Span(file=file, line=getattr(err, "line", None), column=getattr(err, "column", None))
		raise SirParseError(str(err).strip(), span=span) from err
	return _ModuleBuilder(file).build(tree)


def parse_file(path: Path) -> ir.Module:
	"""Read and parse a `.sir` file; spans carry the file path."""
	return parse_module(path.read_text(encoding="utf-8"), file=str(path))


__all__ = ["SirParseError", "parse_module", "parse_file", "CLOSURE_TYPE"]
