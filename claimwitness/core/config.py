"""
ClaimWitness verifier configuration.

Default: superset quorum (every expected witness must have signed; extra
valid signatures from other addresses are ignored) and epoch windows
enforced.

Strict: the recovered signer set must equal the expected set exactly.
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml

from claimwitness.core.exceptions import InvalidConfigurationError


ENV_STRICT         = "CLAIMWITNESS_STRICT"
ENV_EPOCH_WINDOW   = "CLAIMWITNESS_ENFORCE_EPOCH_WINDOW"

_TRUE  = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise InvalidConfigurationError(
        f"{name} must be a boolean flag", {"value": raw}
    )


@dataclass(frozen=True)
class VerifierConfig:
    strict_witness_set:   bool = False
    enforce_epoch_window: bool = True

    @classmethod
    def from_env(cls) -> "VerifierConfig":
        """Read CLAIMWITNESS_* env vars. Unset vars keep their defaults."""
        kwargs: Dict[str, Any] = {}
        if ENV_STRICT in os.environ:
            kwargs["strict_witness_set"] = _parse_bool(ENV_STRICT, os.environ[ENV_STRICT])
        if ENV_EPOCH_WINDOW in os.environ:
            kwargs["enforce_epoch_window"] = _parse_bool(
                ENV_EPOCH_WINDOW, os.environ[ENV_EPOCH_WINDOW]
            )
        return cls(**kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerifierConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfigurationError(
                "unknown verifier config keys", {"keys": sorted(unknown)}
            )
        for key, value in data.items():
            if not isinstance(value, bool):
                raise InvalidConfigurationError(
                    f"{key} must be a boolean", {"value": value}
                )
        return cls(**data)

    @classmethod
    def from_yaml(cls, config_file: Path) -> "VerifierConfig":
        """
        Load from a YAML mapping. Keys may sit at top level or under
        a `verifier:` section.
        """
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise InvalidConfigurationError(
                f"config file {config_file} must hold a mapping"
            )
        section = data["verifier"] if "verifier" in data else data
        if not isinstance(section, dict):
            raise InvalidConfigurationError(
                f"verifier section in {config_file} must be a mapping"
            )
        return cls.from_dict(section)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
