# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
sendck: region-based sendability checking for typed CFGs.

Modules:
  ir         typed CFG consumed by the checker
  regions    region partition (union-find) and transfer state
  isolation  call-site isolation classifiers
  transfer   per-operation transfer functions
  fixpoint   worklist dataflow driver
  synthesis  diagnostics anchored at transfer sites
  checker    pass entry point
  config     enable flag and severity (JSON file)
  parser     `.sir` text front-end
  sendck     command-line driver (`python -m sendck`)
"""

__all__ = [
	"ir",
	"regions",
	"isolation",
	"transfer",
	"fixpoint",
	"synthesis",
	"checker",
	"config",
	"parser",
]
