# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Checker configuration.

The checker itself owns no configuration surface; it consumes:
  - `enabled`: turn the whole pass on/off;
  - `severity`: severity of emitted race diagnostics ("error" or "warning").

Configuration can come from a JSON file (`{"enabled": true, "severity": "warning"}`)
and is then overridden by driver flags.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

SEVERITIES = ("error", "warning")


class ConfigError(ValueError):
	"""Invalid configuration file or value."""


@dataclass(frozen=True)
class CheckerConfig:
	enabled: bool = True
	severity: str = "error"

	def __post_init__(self) -> None:
		if not isinstance(self.enabled, bool):
			raise ConfigError(f"'enabled' must be a boolean, got {self.enabled!r}")
		if self.severity not in SEVERITIES:
			raise ConfigError(f"'severity' must be one of {', '.join(SEVERITIES)}, got {self.severity!r}")

	def with_overrides(self, *, enabled: Optional[bool] = None, severity: Optional[str] = None) -> "CheckerConfig":
		"""Return a copy with the given non-None fields replaced."""
		changes: dict[str, Any] = {}
		if enabled is not None:
			changes["enabled"] = enabled
		if severity is not None:
			changes["severity"] = severity
		return replace(self, **changes) if changes else self


def config_from_mapping(obj: Mapping[str, Any]) -> CheckerConfig:
	"""Build a config from a decoded JSON object, rejecting unknown keys."""
	if not isinstance(obj, Mapping):
		raise ConfigError("configuration must be a JSON object")
	known = {"enabled", "severity"}
	unknown = sorted(set(obj) - known)
	if unknown:
		raise ConfigError(f"unknown configuration key(s): {', '.join(unknown)}")
	return CheckerConfig(**dict(obj))


def load_config(path: Path) -> CheckerConfig:
	"""Read a JSON configuration file."""
	try:
		raw = json.loads(path.read_text(encoding="utf-8"))
	except OSError as err:
		raise ConfigError(f"cannot read configuration '{path}': {err}") from err
	except json.JSONDecodeError as err:
		raise ConfigError(f"invalid JSON in configuration '{path}': {err}") from err
	return config_from_mapping(raw)


__all__ = ["SEVERITIES", "ConfigError", "CheckerConfig", "config_from_mapping", "load_config"]
