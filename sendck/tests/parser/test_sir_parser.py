#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""`.sir` parser tests: module shape, op forms, spans, and error reporting."""

import pytest

from sendck import ir
from sendck.checker import check_function
from sendck.parser import CLOSURE_TYPE, SirParseError, parse_file, parse_module
from sendck.test_support import note_lines, parse_one

SAMPLE = "\n".join(
	[
		"type Box",
		"type Int sendable",
		"",
		"func work(p: Box, n: Int) in main {",
		"@entry:",
		"  x = init Box(p)",
		"  y: Box = load x.next",
		"  z = copy y",
		"  store x.next = z",
		"  c = closure [x, y]",
		"  r: Box = call Counter.add(x, n) on Counter",
		"  call Task.detached(c) spawn",
		"  br n ? @loop, @done",
		"@loop:",
		"  write y",
		"  goto @entry",
		"@done:",
		"  use x",
		"  return r",
		"}",
	]
)


def test_module_declares_types_and_functions():
	module = parse_module(SAMPLE)
	assert module.types["Int"].sendable
	assert not module.types["Box"].sendable
	(func,) = module.functions
	assert func.name == "work"
	assert func.domain == "main"
	assert func.entry == "entry"
	assert list(func.blocks) == ["entry", "loop", "done"]
	assert [p.name for p in func.params] == ["p", "n"]
	assert func.params[1].sendable


def test_operation_forms():
	func = parse_module(SAMPLE).functions[0]
	ops = func.blocks["entry"].ops
	assert [type(op) for op in ops] == [ir.Init, ir.FieldRead, ir.Alias, ir.FieldWrite, ir.Closure, ir.Call, ir.Call]
	init, load, copy, store, closure, send, spawn = ops
	assert [a.name for a in init.args] == ["p"]
	assert load.field_name == "next" and load.base.name == "x"
	assert copy.dest.type_name == "Box"
	assert store.base.name == "x" and store.value.name == "z"
	assert closure.dest.type_name == CLOSURE_TYPE
	assert [c.name for c in closure.captures] == ["x", "y"]
	assert send.callee == "Counter.add"
	assert send.callee_domain == "Counter"
	assert send.receiver is None
	assert send.dest.name == "r"
	assert spawn.spawns_task and spawn.dest is None


def test_terminator_forms():
	func = parse_module(SAMPLE).functions[0]
	branch = func.blocks["entry"].terminator
	assert isinstance(branch, ir.Branch)
	assert branch.targets == ["loop", "done"]
	assert branch.cond.name == "n"
	assert isinstance(func.blocks["loop"].terminator, ir.Goto)
	assert func.blocks["loop"].ops[0].kind is ir.AccessKind.WRITE
	ret = func.blocks["done"].terminator
	assert isinstance(ret, ir.Return) and ret.value.name == "r"


def test_op_spans_follow_source_lines():
	func = parse_module(SAMPLE, file="sample.sir").functions[0]
	entry = func.blocks["entry"]
	assert [op.loc.line for op in entry.ops] == [6, 7, 8, 9, 10, 11, 12]
	assert entry.ops[0].loc.file == "sample.sir"
	assert entry.terminator.loc.line == 13
	assert func.loc.line == 4


def test_dotted_callee_on_a_value_sets_receiver():
	func = parse_one(
		"func f() in main {\n"
		"@entry:\n"
		"  r = init Box()\n"
		"  a = init Box()\n"
		"  call r.push(a)\n"
		"  return\n"
		"}\n"
	)
	call = func.blocks["entry"].ops[2]
	assert call.callee == "r.push"
	assert call.receiver.name == "r"
	assert [a.name for a in call.args] == ["a"]


def test_comments_and_value_less_terminators():
	func = parse_one(
		"# leading comment\n"
		"func f() in main { // trailing\n"
		"@entry:\n"
		"  x = init Box() # fresh\n"
		"  throw to @handler\n"
		"@handler:\n"
		"  use x\n"
		"  unreachable\n"
		"}\n"
	)
	throw = func.blocks["entry"].terminator
	assert isinstance(throw, ir.Throw)
	assert throw.handler == "handler" and throw.value is None
	assert isinstance(func.blocks["handler"].terminator, ir.Unreachable)


def test_value_may_be_used_before_its_textual_definition():
	func = parse_one(
		"func f() in main {\n"
		"@entry:\n"
		"  goto @body\n"
		"@use:\n"
		"  use x\n"
		"  return\n"
		"@body:\n"
		"  x = init Box()\n"
		"  goto @use\n"
		"}\n"
	)
	assert func.blocks["use"].ops[0].value.name == "x"


def test_copy_chains_infer_types():
	func = parse_one(
		"type Int sendable\n"
		"func f() in main {\n"
		"@entry:\n"
		"  b = copy a\n"
		"  a = copy n\n"
		"  n = init Int()\n"
		"  return\n"
		"}\n"
	)
	ops = func.blocks["entry"].ops
	assert ops[0].dest.sendable and ops[1].dest.sendable


def test_undefined_value_is_reported_with_span():
	with pytest.raises(SirParseError) as info:
		parse_module("func f() in main {\n@entry:\n  use ghost\n  return\n}\n", file="bad.sir")
	assert "undefined value 'ghost'" in str(info.value)
	assert info.value.span.line == 3
	assert info.value.span.file == "bad.sir"


def test_field_read_needs_annotation():
	with pytest.raises(SirParseError, match="needs a type annotation"):
		parse_module("func f() in main {\n@entry:\n  x = init Box()\n  y = load x.f\n  return\n}\n")


def test_conflicting_redefinition_is_rejected():
	with pytest.raises(SirParseError, match="redefined"):
		parse_module("type Int sendable\nfunc f() in main {\n@entry:\n  x = init Box()\n  x = init Int()\n  return\n}\n")


def test_syntax_error_carries_position():
	with pytest.raises(SirParseError) as info:
		parse_module("func f() in main {\n@entry:\n  x = = init Box()\n  return\n}\n")
	assert info.value.span.line == 3


def test_duplicate_block_is_rejected():
	with pytest.raises(SirParseError, match="duplicate block '@entry'"):
		parse_module("func f() in main {\n@entry:\n  goto @entry\n@entry:\n  return\n}\n")


def test_duplicate_function_is_rejected():
	src = "func f() in main {\n@entry:\n  return\n}\n"
	with pytest.raises(SirParseError, match="duplicate function 'f'"):
		parse_module(src + src)


def test_parsed_function_checks_with_source_locations(tmp_path):
	path = tmp_path / "race.sir"
	path.write_text(
		"func f() in main {\n"
		"@entry:\n"
		"  x = init Box()\n"
		"  call Counter.add(x) on Counter\n"
		"  use x\n"
		"  return x\n"
		"}\n"
	)
	(func,) = parse_file(path).functions
	(diag,) = check_function(func)
	assert diag.span.line == 4
	assert diag.span.file == str(path)
	assert note_lines(diag) == [5, 6]
