#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Union-find partition and transfer-state lattice tests."""

from sendck.isolation import CrossingKind
from sendck.regions import ProgramPoint, RegionPartition, TransferRecord, TransferSite, TransferState


def _site(block_index: int, op_index: int, value: str = "x") -> TransferSite:
	return TransferSite(
		point=ProgramPoint(block_index, op_index, f"b{block_index}"),
		callee=f"send{block_index}_{op_index}",
		kind=CrossingKind.ACTOR_ENTERING,
		values=(value,),
		type_names=("Box",),
		from_domain="main",
		to_domain="Counter",
	)


def _state(*values: str) -> TransferState:
	state = TransferState()
	for v in values:
		state.track(v)
	return state


def test_union_find_basics():
	"""Fresh values are singletons; union merges; repeated union is a no-op."""
	part = RegionPartition()
	for v in ("a", "b", "c"):
		assert part.add(v)
	assert not part.add("a")
	assert not part.same_region("a", "b")
	root = part.union("a", "b")
	assert part.find("a") == part.find("b") == root
	assert part.union("b", "a") == root
	assert not part.same_region("a", "c")
	assert set(part.classes().values()) == {frozenset({"a", "b"}), frozenset({"c"})}


def test_partition_copy_is_independent():
	"""Unions on a copy must not leak into the original."""
	part = RegionPartition()
	for v in ("a", "b"):
		part.add(v)
	other = part.copy()
	other.union("a", "b")
	assert not part.same_region("a", "b")
	assert other.same_region("a", "b")


def test_mark_transferred_is_additive():
	"""Re-transferring a region appends the new site instead of failing or replacing."""
	state = _state("x")
	first, second = _site(0, 1), _site(2, 0)
	state.mark_transferred("x", second)
	state.mark_transferred("x", first)
	state.mark_transferred("x", first)
	assert state.is_transferred("x")
	assert state.sites_for("x") == (first, second)


def test_union_merges_transfer_records():
	"""Merging a transferred region with a fresh one yields a transferred region."""
	state = _state("x", "y", "z")
	site = _site(0, 0)
	state.mark_transferred("x", site)
	assert not state.is_transferred("y")
	state.union("y", "x")
	assert state.is_transferred("y")
	assert state.sites_for("y") == (site,)
	assert not state.is_transferred("z")


def test_union_of_two_transferred_regions_keeps_both_sites():
	state = _state("x", "y")
	s1, s2 = _site(0, 0, "x"), _site(1, 0, "y")
	state.mark_transferred("x", s1)
	state.mark_transferred("y", s2)
	state.union("x", "y")
	assert state.sites_for("x") == (s1, s2)
	assert len(state.records) == 1


def test_join_is_finest_common_coarsening():
	"""Any pair unioned in either input is unioned in the result, nothing more."""
	a = _state("a", "b", "c", "d")
	a.union("a", "b")
	b = _state("a", "b", "c", "d")
	b.union("b", "c")
	joined = a.join(b)
	classes = set(joined.partition.classes().values())
	assert classes == {frozenset({"a", "b", "c"}), frozenset({"d"})}


def test_join_transferred_if_either_side_was():
	"""The join over-approximates: a region transferred on one path is transferred after the merge."""
	site = _site(1, 0)
	left = _state("x", "y")
	left.mark_transferred("x", site)
	right = _state("x", "y")
	right.union("x", "y")
	joined = left.join(right)
	assert joined.is_transferred("y")
	assert joined.sites_for("y") == (site,)


def test_join_keeps_values_known_on_one_side_only():
	left = _state("x")
	right = _state("x", "only_right")
	joined = left.join(right)
	assert joined.is_tracked("only_right")
	assert not joined.partition.same_region("x", "only_right")


def test_join_is_idempotent_and_commutative():
	"""join(S, S) == S and join(A, B) == join(B, A)."""
	s = _state("a", "b", "c")
	s.union("a", "b")
	s.mark_transferred("a", _site(0, 2))
	assert s.join(s) == s

	other = _state("b", "c", "e")
	other.union("c", "e")
	other.mark_transferred("e", _site(3, 1, "e"))
	assert s.join(other) == other.join(s)


def test_join_is_associative():
	a = _state("a", "b", "c")
	a.union("a", "b")
	b = _state("a", "b", "c")
	b.mark_transferred("c", _site(0, 0, "c"))
	c = _state("a", "b", "c")
	c.union("b", "c")
	assert a.join(b).join(c) == a.join(b.join(c))


def test_equality_ignores_representative_choice():
	"""Two states with the same classes and sites compare equal regardless of union order."""
	one = _state("a", "b", "c")
	one.union("a", "b")
	one.union("b", "c")
	two = _state("a", "b", "c")
	two.union("c", "a")
	two.union("b", "a")
	assert one == two


def test_join_all_of_nothing_is_none():
	assert TransferState.join_all([]) is None
	only = _state("x")
	joined = TransferState.join_all([only])
	assert joined == only
	assert joined is not only


def test_transfer_record_merge_orders_by_point():
	s1, s2, s3 = _site(0, 0), _site(0, 3), _site(2, 1)
	left = TransferRecord((s1, s3))
	right = TransferRecord((s2,))
	assert left.merge(right).sites == (s1, s2, s3)
	assert right.merge(left).sites == (s1, s2, s3)
	assert TransferRecord().merge(right) == right


def test_detach_rebuilds_the_remaining_class():
	part = RegionPartition()
	for v in ("a", "b", "c", "d"):
		part.add(v)
	root = part.union("a", "b", "c")
	old_root, rest_root = part.detach(root)
	assert old_root == root
	assert rest_root is not None and rest_root != root
	assert set(part.classes().values()) == {frozenset({"a", "b", "c"}) - {root}, frozenset({root}), frozenset({"d"})}
	assert part.detach("d") == ("d", None)


def test_redefine_leaves_transfer_with_old_members():
	"""A new definition of x starts fresh; x's old aliases stay transferred."""
	state = _state("x", "y", "z")
	site = _site(0, 1)
	state.union("x", "y")
	state.mark_transferred("x", site)
	state.redefine("x")
	assert not state.is_transferred("x")
	assert state.is_transferred("y")
	assert state.sites_for("y") == (site,)
	assert not state.partition.same_region("x", "y")
	state.redefine("z")
	assert state.is_tracked("z") and not state.is_transferred("z")


def test_redefine_of_lone_transferred_value_drops_the_record():
	state = _state("x")
	state.mark_transferred("x", _site(0, 0))
	state.redefine("x")
	assert not state.is_transferred("x")
	assert state.records == {}


def test_redefine_tracks_unknown_value():
	state = TransferState()
	state.redefine("x")
	assert state.is_tracked("x")


def test_sites_of_one_call_merge_their_values():
	"""One call recorded with a grown operand set stays a single site."""
	first = _site(0, 2, "p")
	grown = TransferSite(
		point=first.point,
		callee=first.callee,
		kind=first.kind,
		values=("p", "x"),
		type_names=("Box", "Node"),
		from_domain="main",
		to_domain="Counter",
	)
	rec = TransferRecord((first,)).with_site(grown)
	(site,) = rec.sites
	assert site.values == ("p", "x")
	assert site.type_names == ("Box", "Node")
	assert TransferRecord((grown,)).merge(TransferRecord((first,))).sites[0].values == ("p", "x")


def test_state_equality_sees_grown_site_operands():
	left = _state("p")
	left.mark_transferred("p", _site(0, 2, "p"))
	site = _site(0, 2, "p")
	grown = TransferSite(
		point=site.point,
		callee=site.callee,
		kind=site.kind,
		values=("p", "x"),
		type_names=("Box",),
		from_domain="main",
		to_domain="Counter",
	)
	right = left.copy()
	right.mark_transferred("p", grown)
	assert left != right
	assert left.join(right) == right
