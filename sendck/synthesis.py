# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Diagnostic synthesis: turn access sites into one diagnostic per transfer site.

The primary location is always the crossing call (the cause); each access
made unsafe by that call becomes a note (the symptoms). An access whose
region was transferred by several calls is listed under every one of them.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from sendck.core.diagnostics import Diagnostic, Note
from sendck.isolation import CrossingKind
from sendck.regions import AccessSite, ProgramPoint, TransferSite

SEND_RISKS_RACE = "E_SEND_RISKS_RACE"
PHASE = "sendcheck"


def _quoted(names: Iterable[str]) -> str:
	return ", ".join(f"'{n}'" for n in names)


def primary_message(site: TransferSite) -> str:
	"""Message for the crossing call itself."""
	noun = "value" if len(site.values) == 1 else "values"
	types = _quoted(site.type_names)
	type_word = "type" if len(site.type_names) == 1 else "types"
	if site.kind is CrossingKind.TASK_SPAWNING:
		return (
			f"passing {noun} {_quoted(site.values)} of non-sendable {type_word} {types} "
			f"to task-spawning call '{site.callee}' from '{site.from_domain}' risks causing data races"
		)
	target = f"'{site.to_domain}'" if site.to_domain else "another isolation domain"
	return (
		f"sending {noun} {_quoted(site.values)} of non-sendable {type_word} {types} "
		f"from '{site.from_domain}' to {target} via '{site.callee}' risks causing data races"
	)


def note_message(access: AccessSite, site: TransferSite) -> str:
	"""Message for one access grouped under `site`."""
	msg = f"{access.kind.describe()} of '{access.value}' here could race with the use in '{site.callee}'"
	if access.value not in site.values:
		msg += f" ('{access.value}' shares a region with {_quoted(site.values)})"
	return msg


def group_accesses(accesses: Iterable[AccessSite]) -> Dict[TransferSite, List[AccessSite]]:
	"""
	Group accesses by every transfer site recorded for their region.

	Sites are keyed by the call's program point, so one call yields one group
	even if different accesses saw different operand sets for it. Within a
	group, accesses are ordered by program point and de-duplicated per
	(point, value).
	"""
	sites: Dict[ProgramPoint, TransferSite] = {}
	groups: Dict[ProgramPoint, Dict[Tuple[ProgramPoint, str], AccessSite]] = {}
	for access in accesses:
		for site in access.sites:
			prev = sites.get(site.point)
			sites[site.point] = site if prev is None else prev.merged(site)
			groups.setdefault(site.point, {}).setdefault((access.point, access.value), access)
	return {
		sites[point]: [bucket[key] for key in sorted(bucket)]
		for point, bucket in sorted(groups.items())
	}


def synthesize(accesses: Iterable[AccessSite], *, severity: str = "error") -> List[Diagnostic]:
	"""Build diagnostics ordered by transfer-site position."""
	diagnostics: List[Diagnostic] = []
	for site, grouped in group_accesses(accesses).items():
		diagnostics.append(
			Diagnostic(
				message=primary_message(site),
				code=SEND_RISKS_RACE,
				phase=PHASE,
				severity=severity,
				span=site.span,
				notes=[Note(note_message(acc, site), acc.span) for acc in grouped],
			)
		)
	return diagnostics


__all__ = [
	"SEND_RISKS_RACE",
	"PHASE",
	"primary_message",
	"note_message",
	"group_accesses",
	"synthesize",
]
