"""
claimwitness/core/verification.py

Proof Verification — protocol version 1

Protocol Law:
    ProofVerifier.verify(proof) is the ONLY acceptance path.
    JSON entry points call Proof.from_dict() first, then verify().

Gates, in order. The first failing gate decides the outcome:
    0. schema                     → MALFORMED_PROOF
    1. identifier == hash(info)   → IDENTIFIER_MISMATCH
    2. epoch exists               → UNKNOWN_EPOCH
       epoch config usable        → INVALID_CONFIGURATION (unique witnesses,
                                    1 <= threshold <= N, int window bounds)
       timestamp inside window    → EPOCH_OUT_OF_WINDOW   (enforce_epoch_window)
    3. expected witness selection → INVALID_CONFIGURATION
    4. len(signatures) >= quorum  → INSUFFICIENT_SIGNATURES
    5. recover every signature    (unrecoverable ones are discarded, not fatal)
       two recover to one signer  → DUPLICATE_SIGNER
    6. every expected witness     → INSUFFICIENT_SIGNATURES
       signer outside expected    → UNEXPECTED_SIGNER     (strict_witness_set only)

Verification is a pure function of the proof and a read of one epoch.
No I/O, no retries, no partial acceptance.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from claimwitness.core.config import VerifierConfig
from claimwitness.core.crypto import recover_address
from claimwitness.core.exceptions import (
    InvalidConfigurationError,
    InvalidSignatureError,
    ProofRejectedError,
)
from claimwitness.core.models import Proof, normalize_identifier
from claimwitness.core.registry import WitnessRegistry, check_epoch
from claimwitness.core.selection import fetch_witnesses_for_claim
from claimwitness.core.time import unix_timestamp


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Result Type
# ─────────────────────────────────────────────────────────────

class ReasonCode(str, Enum):
    VALID                   = "valid"
    MALFORMED_PROOF         = "malformed_proof"
    IDENTIFIER_MISMATCH     = "identifier_mismatch"
    UNKNOWN_EPOCH           = "unknown_epoch"
    EPOCH_OUT_OF_WINDOW     = "epoch_out_of_window"
    INVALID_CONFIGURATION   = "invalid_configuration"
    INSUFFICIENT_SIGNATURES = "insufficient_signatures"
    DUPLICATE_SIGNER        = "duplicate_signer"
    UNEXPECTED_SIGNER       = "unexpected_signer"


@dataclass
class VerificationResult:
    valid:   bool
    reason:  ReasonCode
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.verified_at = unix_timestamp()

    @property
    def status(self) -> str:
        return "valid" if self.valid else "rejected"

    def __bool__(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        if self.valid:
            return "VerificationResult(VALID)"
        return f"VerificationResult(REJECTED, {self.reason.value})"

    def to_dict(self) -> dict:
        return {
            "status":      self.status,
            "valid":       self.valid,
            "reason":      self.reason.value,
            "message":     self.message,
            "details":     self.details,
            "verified_at": self.verified_at,
        }


# ─────────────────────────────────────────────────────────────
# Verifier
# ─────────────────────────────────────────────────────────────

class ProofVerifier:
    """
    Checks a Proof against the epoch it names.

    Stateless per call. Safe to share across threads: the only shared
    state is the registry, which it only reads.
    """

    def __init__(
        self,
        registry: WitnessRegistry,
        config:   Optional[VerifierConfig] = None,
    ) -> None:
        self.registry = registry
        self.config   = config or VerifierConfig()

    def verify(self, proof: Proof) -> VerificationResult:
        """
        Run every gate. Returns VALID or the first rejection.
        Never raises for a rejected proof.
        """
        schema = proof.validate_schema()
        if not schema:
            return self._reject(
                ReasonCode.MALFORMED_PROOF,
                "proof does not match the wire format",
                {"errors": schema.errors},
            )

        claim  = proof.claim
        digest = proof.digest()
        base: Dict[str, Any] = {"proof_digest": digest, "epoch": claim.epoch}

        # ── Gate 1 — identifier ───────────────────────────────
        computed = proof.claim_info.identifier()
        stated   = normalize_identifier(claim.identifier)
        if computed != stated:
            return self._reject(
                ReasonCode.IDENTIFIER_MISMATCH,
                "claim identifier does not match hash of claim info",
                {**base, "computed": computed, "stated": stated},
            )

        # ── Gate 2 — epoch ────────────────────────────────────
        epoch = self.registry.fetch_epoch(claim.epoch)
        if epoch is None:
            return self._reject(
                ReasonCode.UNKNOWN_EPOCH,
                f"epoch {claim.epoch} does not exist",
                {**base, "current_epoch": self.registry.current_epoch()},
            )
        try:
            check_epoch(epoch)
        except InvalidConfigurationError as exc:
            return self._reject(
                ReasonCode.INVALID_CONFIGURATION,
                f"epoch {epoch.id} is not a usable witness configuration: {exc}",
                base,
            )
        if self.config.enforce_epoch_window and not epoch.is_valid_at(claim.timestamp_s):
            return self._reject(
                ReasonCode.EPOCH_OUT_OF_WINDOW,
                f"claim timestamp is outside epoch {epoch.id}'s validity window",
                {
                    **base,
                    "timestamp_s": claim.timestamp_s,
                    "valid_from":  epoch.valid_from,
                    "valid_until": epoch.valid_until,
                },
            )

        # ── Gate 3 — expected witnesses ───────────────────────
        try:
            expected = [
                w.address
                for w in fetch_witnesses_for_claim(epoch, stated, claim.timestamp_s)
            ]
        except InvalidConfigurationError as exc:
            return self._reject(
                ReasonCode.INVALID_CONFIGURATION,
                f"epoch {epoch.id} cannot drive witness selection: {exc}",
                base,
            )
        base["expected_witnesses"] = expected

        # ── Gate 4 — signature count ──────────────────────────
        if len(proof.signatures) < epoch.required_signatures:
            return self._reject(
                ReasonCode.INSUFFICIENT_SIGNATURES,
                f"{len(proof.signatures)} signatures supplied, "
                f"{epoch.required_signatures} required",
                {**base, "supplied": len(proof.signatures)},
            )

        # ── Gate 5 — recovery + duplicates ────────────────────
        message = claim.serialize()
        recovered: List[str] = []
        invalid:   List[int] = []

        for index, signature in enumerate(proof.signatures):
            try:
                signer = recover_address(message, signature)
            except InvalidSignatureError as exc:
                logger.warning(
                    "proof %s: signature %d discarded: %s", digest[:16], index, exc
                )
                invalid.append(index)
                continue

            if signer in recovered:
                return self._reject(
                    ReasonCode.DUPLICATE_SIGNER,
                    f"signer {signer} appears more than once",
                    {**base, "signer": signer, "index": index},
                )
            logger.debug("proof %s: signature %d from %s", digest[:16], index, signer)
            recovered.append(signer)

        base["recovered_signers"]  = recovered
        base["invalid_signatures"] = invalid

        # ── Gate 6 — quorum match ─────────────────────────────
        missing = [address for address in expected if address not in recovered]
        if missing:
            return self._reject(
                ReasonCode.INSUFFICIENT_SIGNATURES,
                f"{len(missing)} expected witness(es) did not sign",
                {**base, "missing": missing},
            )

        expected_set = set(expected)
        unexpected = [address for address in recovered if address not in expected_set]
        if unexpected:
            if self.config.strict_witness_set:
                return self._reject(
                    ReasonCode.UNEXPECTED_SIGNER,
                    "signatures from witnesses outside the expected set",
                    {**base, "unexpected": unexpected},
                )
            logger.debug(
                "proof %s: ignoring %d signer(s) outside the expected set",
                digest[:16], len(unexpected),
            )

        logger.info(
            "proof %s valid: epoch %d, %d expected witnesses signed, %d signer(s) recovered",
            digest[:16], epoch.id, len(expected), len(recovered),
        )
        return VerificationResult(
            valid=   True,
            reason=  ReasonCode.VALID,
            message= "proof verified",
            details= base,
        )

    def verify_or_raise(self, proof: Proof) -> VerificationResult:
        """verify(), raising ProofRejectedError instead of returning a rejection."""
        result = self.verify(proof)
        if not result.valid:
            raise ProofRejectedError(result.reason, result.message, result.details)
        return result

    @staticmethod
    def _reject(
        reason:  ReasonCode,
        message: str,
        details: Dict[str, Any],
    ) -> VerificationResult:
        logger.info("proof rejected (%s): %s", reason.value, message)
        return VerificationResult(
            valid=   False,
            reason=  reason,
            message= message,
            details= details,
        )


# ─────────────────────────────────────────────────────────────
# Functional Entrypoints
# ─────────────────────────────────────────────────────────────

def verify_proof(
    proof:    Proof,
    registry: WitnessRegistry,
    config:   Optional[VerifierConfig] = None,
) -> VerificationResult:
    return ProofVerifier(registry, config).verify(proof)


def verify_proof_from_dict(
    data:     Dict[str, Any],
    registry: WitnessRegistry,
    config:   Optional[VerifierConfig] = None,
) -> VerificationResult:
    """
    JSON-based entry point. Deserializes to Proof first, then verifies.
    Structure that cannot be deserialized is a MALFORMED_PROOF rejection.
    """
    try:
        proof = Proof.from_dict(data)
    except (KeyError, TypeError, AttributeError) as exc:
        return ProofVerifier._reject(
            ReasonCode.MALFORMED_PROOF,
            f"deserialization error: {exc!r}",
            {},
        )
    return verify_proof(proof, registry, config)
