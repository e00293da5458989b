"""
claimwitness/__init__.py

ClaimWitness: quorum verification for witness-attested claims.

A relying party accepts an externally produced claim only if the exact
subset of epoch witnesses selected for that claim co-signed it.
"""

__version__          = "0.1.0"
__protocol_version__ = "1"

from claimwitness.core.models import (
    ClaimInfo,
    CompleteClaimData,
    Epoch,
    PROTOCOL_VERSION,
    Proof,
    SchemaValidationResult,
    SignedClaim,
    Witness,
    hash_claim_info,
    serialize_claim_data,
)
from claimwitness.core.crypto import (
    WitnessKeyManager,
    recover_address,
)
from claimwitness.core.selection import (
    derive_selection_seed,
    fetch_witnesses_for_claim,
    select_witnesses,
)
from claimwitness.core.registry import WitnessRegistry
from claimwitness.core.extractor import extract, extract_fields, field_marker
from claimwitness.core.config import VerifierConfig
from claimwitness.core.verification import (
    ProofVerifier,
    ReasonCode,
    VerificationResult,
    verify_proof,
    verify_proof_from_dict,
)
from claimwitness.core.exceptions import (
    AuthorizationError,
    ClaimWitnessError,
    InvalidConfigurationError,
    InvalidSignatureError,
    ProofRejectedError,
    RegistryError,
    ValidationError,
)

__all__ = [
    # Data model
    "ClaimInfo",
    "CompleteClaimData",
    "Epoch",
    "Proof",
    "SchemaValidationResult",
    "SignedClaim",
    "Witness",
    # Engine
    "ProofVerifier",
    "ReasonCode",
    "VerificationResult",
    "VerifierConfig",
    "WitnessKeyManager",
    "WitnessRegistry",
    # Functions
    "derive_selection_seed",
    "extract",
    "extract_fields",
    "fetch_witnesses_for_claim",
    "field_marker",
    "hash_claim_info",
    "recover_address",
    "select_witnesses",
    "serialize_claim_data",
    "verify_proof",
    "verify_proof_from_dict",
    # Errors
    "AuthorizationError",
    "ClaimWitnessError",
    "InvalidConfigurationError",
    "InvalidSignatureError",
    "ProofRejectedError",
    "RegistryError",
    "ValidationError",
    # Constants
    "PROTOCOL_VERSION",
]
