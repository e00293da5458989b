"""
claimwitness/core/models.py

Claim Data Model — protocol version 1

THIS FILE IS LOCKED AFTER THIS VERSION.
Any change to the contracts below invalidates every claim already issued.

═══════════════════════════════════════════════════════════════════
PROTOCOL CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Claim identifier
    identifier = keccak256( u32be(len(p)) || p || u32be(len(q)) || q || u32be(len(c)) || c )
        p, q, c = UTF-8 of provider, parameters, context (in that order)
    rendered   = "0x" + 64 lowercase hex
    length prefixes make ("ab", "c") and ("a", "bc") hash differently

CONTRACT 2 — Signed message
    message = "\\n".join([
        identifier hex, lowercase, NO "0x",
        owner, "0x" + 40 lowercase hex,
        decimal(timestampS),
        decimal(epoch),
    ]).encode("utf-8")
    no trailing newline; signed under the personal-message convention

CONTRACT 3 — Wire format (JSON, camelCase)
    {"claimInfo":  {"provider", "parameters", "context"},
     "signedClaim": {"claim": {"identifier", "owner", "timestampS", "epoch"},
                     "signatures": ["0x" + 130 hex, ...]}}

CONTRACT 4 — Numeric ranges
    timestampS : unsigned 64-bit
    epoch      : non-negative int
═══════════════════════════════════════════════════════════════════
"""

import re
import struct
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from claimwitness.core.canonical import canonical_hash
from claimwitness.core.crypto import keccak256, normalize_address
from claimwitness.core.exceptions import ValidationError


PROTOCOL_VERSION = "1"

_MAX_UINT64 = 2 ** 64 - 1

_IDENTIFIER_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


# ─────────────────────────────────────────────────────────────
# Field helpers
# ─────────────────────────────────────────────────────────────

def normalize_identifier(value: Any) -> str:
    """
    Canonical identifier string: "0x" + 64 lowercase hex.
    Accepts 32 raw bytes or a hex string with optional "0x".
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise ValidationError(
                f"identifier must be 32 bytes, got {len(value)}"
            )
        return "0x" + bytes(value).hex()
    if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
        raise ValidationError(f"not a 32-byte hex identifier: {value!r}")
    if value[:2] == "0x":
        value = value[2:]
    return "0x" + value.lower()


def _is_utf8(value: str) -> bool:
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _is_uint(value: Any, upper: Optional[int] = None) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    if value < 0:
        return False
    return upper is None or value <= upper


# ─────────────────────────────────────────────────────────────
# SchemaValidationResult
# ─────────────────────────────────────────────────────────────

@dataclass
class SchemaValidationResult:
    """
    Result of validate_schema().

    Returned — not raised — so callers can choose hard fail vs log.
    bool(result) is True iff valid.
    """
    valid:  bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        if self.valid:
            return "SchemaValidationResult(VALID)"
        return f"SchemaValidationResult(INVALID, errors={self.errors})"


# ─────────────────────────────────────────────────────────────
# Witness / Epoch
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Witness:
    """An identity allowed to co-sign claims, plus where to reach it."""

    address: str
    host:    str

    @classmethod
    def create(cls, address: Any, host: str) -> "Witness":
        if not isinstance(host, str):
            raise ValidationError(
                f"witness host must be str, got {type(host).__name__}"
            )
        if not _is_utf8(host):
            raise ValidationError("witness host is not encodable as UTF-8")
        return cls(address=normalize_address(address), host=host)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Witness":
        return cls.create(data["addr"], data.get("host", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"addr": self.address, "host": self.host}


@dataclass(frozen=True)
class Epoch:
    """
    Immutable snapshot of the witness set and signature threshold.

    valid_until is None for the current (open-ended) epoch. The registry
    derives it from the successor's valid_from; it is never written back.
    """

    id:                  int
    witnesses:           Tuple[Witness, ...]
    required_signatures: int
    valid_from:          int
    valid_until:         Optional[int] = None

    def witness_addresses(self) -> List[str]:
        return [w.address for w in self.witnesses]

    def is_valid_at(self, timestamp_s: int) -> bool:
        """True iff valid_from <= timestamp_s < valid_until (open end when None)."""
        if timestamp_s < self.valid_from:
            return False
        return self.valid_until is None or timestamp_s < self.valid_until

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Epoch":
        return cls(
            id=                  data["id"],
            witnesses=           tuple(Witness.from_dict(w) for w in data["witnesses"]),
            required_signatures= data["requiredSignatures"],
            valid_from=          data.get("validFrom", 0),
            valid_until=         data.get("validUntil"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":                 self.id,
            "witnesses":          [w.to_dict() for w in self.witnesses],
            "requiredSignatures": self.required_signatures,
            "validFrom":          self.valid_from,
            "validUntil":         self.valid_until,
        }


# ─────────────────────────────────────────────────────────────
# ClaimInfo — CONTRACT 1
# ─────────────────────────────────────────────────────────────

@dataclass
class ClaimInfo:
    """What was attested (provider + parameters) and the attested values (context)."""

    provider:   str
    parameters: str
    context:    str

    def canonical_bytes_for_hashing(self) -> bytes:
        """
        THE ONLY input to the identifier hash.

        Each field is UTF-8 encoded and prefixed with its byte length as
        a big-endian uint32, in the fixed order provider, parameters, context.
        """
        out = bytearray()
        for value in (self.provider, self.parameters, self.context):
            encoded = value.encode("utf-8")
            out += struct.pack(">I", len(encoded))
            out += encoded
        return bytes(out)

    def identifier(self) -> str:
        """CONTRACT 1 — "0x" + keccak256(canonical_bytes_for_hashing()) hex."""
        return "0x" + keccak256(self.canonical_bytes_for_hashing()).hex()

    def validate_schema(self) -> SchemaValidationResult:
        errors: List[str] = []
        for name in ("provider", "parameters", "context"):
            value = getattr(self, name)
            if not isinstance(value, str):
                errors.append(
                    f"claimInfo.{name} must be str, got {type(value).__name__}"
                )
            elif not _is_utf8(value):
                errors.append(f"claimInfo.{name} is not encodable as UTF-8")
        return SchemaValidationResult(valid=not errors, errors=errors)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimInfo":
        return cls(
            provider=   data["provider"],
            parameters= data["parameters"],
            context=    data["context"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider":   self.provider,
            "parameters": self.parameters,
            "context":    self.context,
        }


def hash_claim_info(claim_info: ClaimInfo) -> str:
    """ClaimHasher entry point. See CONTRACT 1."""
    return claim_info.identifier()


# ─────────────────────────────────────────────────────────────
# CompleteClaimData — CONTRACT 2
# ─────────────────────────────────────────────────────────────

@dataclass
class CompleteClaimData:
    """
    The claim as witnesses sign it: identifier, owner, time and epoch.

    from_dict() trusts its input. The verifier calls validate_schema()
    before any field is interpreted.
    """

    identifier:  str
    owner:       str
    timestamp_s: int
    epoch:       int

    @classmethod
    def create(
        cls,
        identifier:  Any,
        owner:       Any,
        timestamp_s: int,
        epoch:       int,
    ) -> "CompleteClaimData":
        """
        Build claim data with every field normalized to canonical form.

        Hard enforces:
            identifier  — 32 bytes (raw or hex)
            owner       — 20-byte address
            timestamp_s — unsigned 64-bit int
            epoch       — non-negative int
        """
        if not _is_uint(timestamp_s, _MAX_UINT64):
            raise ValidationError(
                f"timestampS must be an unsigned 64-bit int, got {timestamp_s!r}"
            )
        if not _is_uint(epoch):
            raise ValidationError(
                f"epoch must be a non-negative int, got {epoch!r}"
            )
        return cls(
            identifier=  normalize_identifier(identifier),
            owner=       normalize_address(owner),
            timestamp_s= timestamp_s,
            epoch=       epoch,
        )

    def identifier_bytes(self) -> bytes:
        return bytes.fromhex(normalize_identifier(self.identifier)[2:])

    def serialize(self) -> bytes:
        """
        CONTRACT 2 — THE ONLY path to the bytes a witness signs.

        Raises ValidationError if a field cannot be rendered canonically.
        """
        lines = [
            normalize_identifier(self.identifier)[2:],
            normalize_address(self.owner),
            str(self.timestamp_s),
            str(self.epoch),
        ]
        return "\n".join(lines).encode("utf-8")

    def validate_schema(self) -> SchemaValidationResult:
        errors: List[str] = []

        try:
            normalize_identifier(self.identifier)
        except ValidationError as exc:
            errors.append(f"claim.identifier: {exc}")

        try:
            normalize_address(self.owner)
        except ValidationError as exc:
            errors.append(f"claim.owner: {exc}")

        if not _is_uint(self.timestamp_s, _MAX_UINT64):
            errors.append(
                f"claim.timestampS must be an unsigned 64-bit int, got {self.timestamp_s!r}"
            )
        if not _is_uint(self.epoch):
            errors.append(
                f"claim.epoch must be a non-negative int, got {self.epoch!r}"
            )

        return SchemaValidationResult(valid=not errors, errors=errors)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompleteClaimData":
        return cls(
            identifier=  data["identifier"],
            owner=       data["owner"],
            timestamp_s= data["timestampS"],
            epoch=       data["epoch"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "owner":      self.owner,
            "timestampS": self.timestamp_s,
            "epoch":      self.epoch,
        }


def serialize_claim_data(claim_data: CompleteClaimData) -> bytes:
    """ClaimSerializer entry point. See CONTRACT 2."""
    return claim_data.serialize()


# ─────────────────────────────────────────────────────────────
# SignedClaim / Proof — CONTRACT 3
# ─────────────────────────────────────────────────────────────

@dataclass
class SignedClaim:
    """
    Claim data plus witness signatures.

    Signature order carries no meaning: the verifier matches recovered
    signers against the expected set, not by position.
    """

    claim:      CompleteClaimData
    signatures: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignedClaim":
        return cls(
            claim=      CompleteClaimData.from_dict(data["claim"]),
            signatures= data.get("signatures", []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claim":      self.claim.to_dict(),
            "signatures": [
                s if isinstance(s, str) else "0x" + bytes(s).hex()
                for s in self.signatures
            ] if isinstance(self.signatures, list) else self.signatures,
        }


@dataclass
class Proof:
    """The unit submitted for verification. Never persisted by this package."""

    claim_info:   ClaimInfo
    signed_claim: SignedClaim

    @property
    def claim(self) -> CompleteClaimData:
        return self.signed_claim.claim

    @property
    def signatures(self) -> List[str]:
        return self.signed_claim.signatures

    def validate_schema(self) -> SchemaValidationResult:
        """
        Structural check of every field the verifier interprets.

        Individual signatures are NOT decoded here: a malformed signature
        is a non-fatal per-signature failure handled during recovery.
        """
        errors: List[str] = []
        errors.extend(self.claim_info.validate_schema().errors)
        errors.extend(self.claim.validate_schema().errors)

        if not isinstance(self.signatures, list):
            errors.append(
                f"signedClaim.signatures must be a list, got {type(self.signatures).__name__}"
            )
        else:
            for i, sig in enumerate(self.signatures):
                if not isinstance(sig, (str, bytes, bytearray)):
                    errors.append(
                        f"signedClaim.signatures[{i}] must be str or bytes, "
                        f"got {type(sig).__name__}"
                    )
                elif isinstance(sig, str) and not _is_utf8(sig):
                    errors.append(
                        f"signedClaim.signatures[{i}] is not encodable as UTF-8"
                    )

        return SchemaValidationResult(valid=not errors, errors=errors)

    def digest(self) -> str:
        """SHA-256 of the JCS form of to_dict(). Stable id for logs and reports."""
        return canonical_hash(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proof":
        """
        Deserialize from the JSON wire format.
        Raises KeyError / TypeError on missing structure. Field formats are
        checked by validate_schema(), not here.
        """
        return cls(
            claim_info=   ClaimInfo.from_dict(data["claimInfo"]),
            signed_claim= SignedClaim.from_dict(data["signedClaim"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claimInfo":   self.claim_info.to_dict(),
            "signedClaim": self.signed_claim.to_dict(),
        }
