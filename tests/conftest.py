"""
tests/conftest.py

Shared fixtures: deterministic witness keys, a one-epoch registry and a
proof factory that signs exactly like the off-chain tool.

Witness keys are the secp256k1 scalars 1..7 so the golden vectors in the
test modules can be reproduced by any implementation.
"""

import pytest

from claimwitness.core.crypto import WitnessKeyManager
from claimwitness.core.models import ClaimInfo, CompleteClaimData, Proof, SignedClaim
from claimwitness.core.registry import WitnessRegistry
from claimwitness.core.selection import fetch_witnesses_for_claim


ADMIN     = "0x" + "ad" * 20
OWNER_KEY = 1
SAMPLE_TS = 1700000000

SAMPLE_PROVIDER   = "http"
SAMPLE_PARAMETERS = '{"method":"GET","url":"https://example.com/kyc"}'
SAMPLE_CONTEXT    = (
    '{"extractedParameters":{"KYC_status":"ADVANCED",'
    '"firstName":"Jure","lastName":"Snoj"}}'
)
SAMPLE_IDENTIFIER = "0xfbd3078f095daed849b6660946fdfa5b7a1065fa05f5ddc43bea0b61057332cf"


def key_from_scalar(n: int) -> WitnessKeyManager:
    return WitnessKeyManager.from_private_bytes(n.to_bytes(32, "big"))


def sample_info() -> ClaimInfo:
    return ClaimInfo(
        provider=   SAMPLE_PROVIDER,
        parameters= SAMPLE_PARAMETERS,
        context=    SAMPLE_CONTEXT,
    )


@pytest.fixture(scope="session")
def witness_keys():
    """Seven witness keys, scalars 1..7, in registry order."""
    return [key_from_scalar(n) for n in range(1, 8)]


@pytest.fixture
def registry(witness_keys):
    """Registry with one epoch: all seven witnesses, five required, open from t=0."""
    reg = WitnessRegistry(admin=ADMIN)
    reg.add_epoch(
        [(k.address, f"wss://witness-{i}.example") for i, k in enumerate(witness_keys)],
        5,
        caller=     ADMIN,
        valid_from= 0,
    )
    return reg


@pytest.fixture
def make_proof(witness_keys):
    """
    Factory: build and sign a proof.

    With signers=None the claim is signed by exactly the witnesses the
    epoch selects for it. Otherwise by the given keys, in the given order.
    """
    def _make(
        registry,
        info=        None,
        timestamp_s= SAMPLE_TS,
        epoch_id=    1,
        owner=       None,
        signers=     None,
    ) -> Proof:
        info = info or sample_info()
        claim = CompleteClaimData.create(
            identifier=  info.identifier(),
            owner=       owner or witness_keys[OWNER_KEY - 1].address,
            timestamp_s= timestamp_s,
            epoch=       epoch_id,
        )
        if signers is None:
            by_address = {k.address: k for k in witness_keys}
            expected = fetch_witnesses_for_claim(
                registry.fetch_epoch(epoch_id), claim.identifier, timestamp_s
            )
            signers = [by_address[w.address] for w in expected]
        return Proof(
            claim_info=   info,
            signed_claim= SignedClaim(
                claim=      claim,
                signatures= [k.sign_claim(claim) for k in signers],
            ),
        )

    return _make
