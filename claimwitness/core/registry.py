"""
claimwitness/core/registry.py

Witness Registry — append-only epoch history.

Registry Contract — add_epoch() MUST, in this exact order:
  1. Reject callers other than the admin       (AuthorizationError)
  2. Validate witnesses and threshold          (InvalidConfigurationError)
  3. Acquire lock
  4. Check valid_from is not before the previous epoch's valid_from
  5. Publish a NEW tuple of epochs             (single reference rebind)
  6. Return the new epoch id

Readers never take the lock. They read whichever tuple is bound at the
time and therefore never observe a half-appended epoch.

Validity window:
    epoch k is valid for  valid_from(k) <= t < valid_from(k + 1)
    the newest epoch is open-ended
Epochs are never rewritten. valid_until on a returned Epoch is derived
from its successor at read time.
"""

import dataclasses
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from claimwitness.core.canonical import canonical_hash
from claimwitness.core.crypto import normalize_address
from claimwitness.core.exceptions import (
    AuthorizationError,
    InvalidConfigurationError,
    RegistryError,
    ValidationError,
)
from claimwitness.core.models import Epoch, SchemaValidationResult, Witness
from claimwitness.core.time import unix_timestamp


logger = logging.getLogger(__name__)

FIRST_EPOCH_ID = 1

WitnessLike = Union[Witness, Dict[str, Any], Tuple[str, str]]


def _coerce_witness(value: WitnessLike) -> Witness:
    if isinstance(value, Witness):
        return Witness.create(value.address, value.host)
    if isinstance(value, dict):
        return Witness.from_dict(value)
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return Witness.create(value[0], value[1])
    raise ValidationError(f"cannot interpret witness entry: {value!r}")


def check_epoch_config(witnesses: Tuple[Witness, ...], required_signatures: int) -> None:
    """
    Raise InvalidConfigurationError unless the witness set and threshold
    can drive selection: non-empty, unique addresses, 1 <= threshold <= N.
    """
    if not witnesses:
        raise InvalidConfigurationError("epoch must contain at least one witness")

    seen = set()
    for w in witnesses:
        if w.address in seen:
            raise InvalidConfigurationError(
                "duplicate witness address in epoch", {"address": w.address}
            )
        seen.add(w.address)

    if (
        isinstance(required_signatures, bool)
        or not isinstance(required_signatures, int)
        or required_signatures <= 0
    ):
        raise InvalidConfigurationError(
            "requiredSignatures must be a positive int",
            {"requiredSignatures": required_signatures},
        )
    if required_signatures > len(witnesses):
        raise InvalidConfigurationError(
            "requiredSignatures exceeds witness count",
            {"requiredSignatures": required_signatures, "witnesses": len(witnesses)},
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_epoch(epoch: Epoch) -> None:
    """
    check_epoch_config() plus the window bounds of a fetched epoch.

    Epochs loaded from files are never checked on load; the verifier runs
    this before interpreting any field of the epoch a claim names.
    """
    check_epoch_config(tuple(epoch.witnesses), epoch.required_signatures)
    if not _is_int(epoch.valid_from) or epoch.valid_from < 0:
        raise InvalidConfigurationError(
            "validFrom must be a non-negative int", {"validFrom": epoch.valid_from}
        )
    if epoch.valid_until is not None and not _is_int(epoch.valid_until):
        raise InvalidConfigurationError(
            "validFrom of the next epoch must be an int",
            {"validUntil": epoch.valid_until},
        )


class WitnessRegistry:
    """
    Owner of the epoch history.

    Thread-safe for one writer authority and any number of readers
    (single-process only).
    """

    def __init__(self, admin: str, epochs: Iterable[Epoch] = ()) -> None:
        self.admin = normalize_address(admin)

        self._lock:   threading.Lock    = threading.Lock()
        self._epochs: Tuple[Epoch, ...] = tuple(
            dataclasses.replace(e, valid_until=None) for e in epochs
        )

        for position, epoch in enumerate(self._epochs):
            if epoch.id != FIRST_EPOCH_ID + position:
                raise RegistryError(
                    "epoch ids must be contiguous from 1",
                    {"position": position, "id": epoch.id},
                )

    # ── Administration ────────────────────────────────────────

    def add_epoch(
        self,
        witnesses:           Iterable[WitnessLike],
        required_signatures: int,
        *,
        caller:              str,
        valid_from:          Optional[int] = None,
    ) -> int:
        """
        Append a new epoch and make it current.

        Args:
            witnesses:           Witness values, {"addr", "host"} dicts or
                                 (address, host) pairs. Order is kept.
            required_signatures: Signatures needed per claim.
            caller:              Identity performing the append.
            valid_from:          Unix seconds the epoch starts. Defaults to now.

        Returns:
            The new epoch id.
        """
        try:
            caller_address = normalize_address(caller)
        except ValidationError as exc:
            raise AuthorizationError(f"invalid caller identity: {exc}") from exc
        if caller_address != self.admin:
            raise AuthorizationError(
                "only the registry admin may add epochs",
                {"caller": caller_address},
            )

        try:
            members = tuple(_coerce_witness(w) for w in witnesses)
        except (ValidationError, KeyError) as exc:
            raise InvalidConfigurationError(f"invalid witness entry: {exc}") from exc
        check_epoch_config(members, required_signatures)

        with self._lock:
            start = unix_timestamp() if valid_from is None else valid_from
            if isinstance(start, bool) or not isinstance(start, int) or start < 0:
                raise InvalidConfigurationError(
                    f"valid_from must be a non-negative int, got {start!r}"
                )
            if self._epochs and start < self._epochs[-1].valid_from:
                raise InvalidConfigurationError(
                    "valid_from precedes the current epoch's start",
                    {"valid_from": start, "current_start": self._epochs[-1].valid_from},
                )

            epoch = Epoch(
                id=                  FIRST_EPOCH_ID + len(self._epochs),
                witnesses=           members,
                required_signatures= required_signatures,
                valid_from=          start,
            )
            self._epochs = self._epochs + (epoch,)

        logger.info(
            "epoch %d added: %d witnesses, %d required, valid from %d",
            epoch.id, len(members), required_signatures, start,
        )
        return epoch.id

    # ── Reads ─────────────────────────────────────────────────

    def current_epoch(self) -> int:
        """Id of the newest epoch, or 0 when none exist."""
        return len(self._epochs)

    def fetch_epoch(self, epoch_id: int) -> Optional[Epoch]:
        """
        Epoch by id with its derived valid_until, or None if unknown.
        """
        snapshot = self._epochs
        if isinstance(epoch_id, bool) or not isinstance(epoch_id, int):
            return None
        index = epoch_id - FIRST_EPOCH_ID
        if not 0 <= index < len(snapshot):
            return None
        epoch = snapshot[index]
        if index + 1 < len(snapshot):
            return dataclasses.replace(epoch, valid_until=snapshot[index + 1].valid_from)
        return epoch

    def is_valid_at(self, epoch_id: int, timestamp_s: int) -> bool:
        epoch = self.fetch_epoch(epoch_id)
        return epoch is not None and epoch.is_valid_at(timestamp_s)

    def epochs(self) -> List[Epoch]:
        """All epochs, oldest first, with derived windows."""
        return [self.fetch_epoch(i) for i in range(FIRST_EPOCH_ID, len(self._epochs) + 1)]

    def __len__(self) -> int:
        return len(self._epochs)

    def validate(self) -> SchemaValidationResult:
        """
        Check every stored epoch can drive selection.

        Epochs appended through add_epoch() always pass. Registries built
        from files are trusted on load, so callers run this before use.
        """
        errors: List[str] = []
        previous_start = None
        for epoch in self._epochs:
            try:
                check_epoch_config(tuple(epoch.witnesses), epoch.required_signatures)
            except InvalidConfigurationError as exc:
                errors.append(f"epoch {epoch.id}: {exc}")
            if not _is_int(epoch.valid_from):
                errors.append(f"epoch {epoch.id}: validFrom must be an int")
                continue
            if previous_start is not None and epoch.valid_from < previous_start:
                errors.append(f"epoch {epoch.id}: validFrom precedes previous epoch")
            previous_start = epoch.valid_from
        return SchemaValidationResult(valid=not errors, errors=errors)

    # ── Persistence ───────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admin":  self.admin,
            "epochs": [e.to_dict() for e in self.epochs()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WitnessRegistry":
        """
        Rebuild a registry from to_dict() output.

        Trusts thresholds and witness sets; call validate() to check them.
        Raises RegistryError on missing structure.
        """
        try:
            epochs = [Epoch.from_dict(e) for e in data.get("epochs", [])]
            return cls(admin=data["admin"], epochs=epochs)
        except (KeyError, TypeError, ValidationError) as exc:
            raise RegistryError(f"malformed registry data: {exc}") from exc

    def snapshot_hash(self) -> str:
        """SHA-256 of the JCS form of to_dict(). Pins the state a verification used."""
        return canonical_hash(self.to_dict())

    def save(self, path: Path) -> None:
        """
        Write the registry as JSON. Creates parent directories if needed.
        Raises RegistryError on write failure.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        except OSError as exc:
            raise RegistryError(f"failed to save registry to {path}: {exc}") from exc

    @classmethod
    def from_file(cls, path: Path) -> "WitnessRegistry":
        """
        Load a registry written by save().
        Raises FileNotFoundError if path does not exist.
        Raises RegistryError if the file is not a valid registry.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Registry file not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RegistryError(f"registry file {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise RegistryError(f"registry file {path} must hold a JSON object")
        return cls.from_dict(data)

    def __repr__(self) -> str:
        return f"WitnessRegistry(admin={self.admin}, epochs={len(self._epochs)})"
