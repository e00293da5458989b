"""
cross_lang_proof/emit_vectors.py

ClaimWitness Cross-Language Vectors — Python Emitter
=====================================================

Builds ONE fully signed proof from fixed inputs and dumps every
intermediate value to vector_bundle.json:

    - claim_info              (provider, parameters, context)
    - hash_input_hex          (length-prefixed bytes that get hashed)
    - identifier              (keccak256 of hash_input, "0x" + hex)
    - witnesses               (registry order, addresses of scalars 1..7)
    - selection_seed_hex      (keccak256(identifier || u64be(timestampS)))
    - selection_draws         (per step: index i, raw draw, swap target)
    - expected_witnesses      (selected addresses, in order)
    - serialized_claim_hex    (the bytes every witness signs)
    - personal_hash_hex       (prefixed hash actually signed)
    - signatures              (one per expected witness, r||s||v hex)
    - proof                   (the wire-format JSON)

Another implementation reads vector_bundle.json and independently
recomputes the identifier, the selection, the message and the recovered
signer of every signature. If all match, the encodings agree.

Usage:
    cd cross_lang_proof
    python emit_vectors.py
"""

import json
import struct
from pathlib import Path

from claimwitness.core.crypto import WitnessKeyManager, keccak256, personal_message_hash
from claimwitness.core.models import ClaimInfo, CompleteClaimData, Proof, SignedClaim
from claimwitness.core.registry import WitnessRegistry
from claimwitness.core.selection import derive_selection_seed, fetch_witnesses_for_claim
from claimwitness.core.verification import verify_proof


# ── Fixed inputs ──────────────────────────────────────────────────────────────
# Scalars 1..7 are NOT security keys. They exist so every value below is
# reproducible on any machine.
WITNESS_SCALARS = range(1, 8)
REQUIRED        = 5
TIMESTAMP_S     = 1700000000
ADMIN           = "0x" + "ad" * 20

CLAIM_INFO = ClaimInfo(
    provider=   "http",
    parameters= '{"method":"GET","url":"https://example.com/kyc"}',
    context=    '{"extractedParameters":{"KYC_status":"ADVANCED","firstName":"Jure","lastName":"Snoj"}}',
)


def _selection_draws(seed: bytes, n: int, required: int):
    draws = []
    for i in range(required):
        draw = int.from_bytes(keccak256(seed + struct.pack(">I", i)), "big")
        draws.append({
            "i":         i,
            "draw_hex":  format(draw, "064x"),
            "swap_with": i + draw % (n - i),
        })
    return draws


def main():
    out_path = Path(__file__).parent / "vector_bundle.json"

    # ── Witnesses ────────────────────────────────────────────
    keys = [WitnessKeyManager.from_private_bytes(s.to_bytes(32, "big")) for s in WITNESS_SCALARS]
    registry = WitnessRegistry(admin=ADMIN)
    registry.add_epoch(
        [(k.address, f"wss://witness-{i}.example") for i, k in enumerate(keys)],
        REQUIRED,
        caller=     ADMIN,
        valid_from= 0,
    )
    epoch = registry.fetch_epoch(1)

    # ── Claim ────────────────────────────────────────────────
    identifier = CLAIM_INFO.identifier()
    claim = CompleteClaimData.create(
        identifier=  identifier,
        owner=       keys[0].address,
        timestamp_s= TIMESTAMP_S,
        epoch=       epoch.id,
    )
    message = claim.serialize()

    # ── Selection + signatures ───────────────────────────────
    seed     = derive_selection_seed(identifier, TIMESTAMP_S)
    expected = fetch_witnesses_for_claim(epoch, identifier, TIMESTAMP_S)
    by_addr  = {k.address: k for k in keys}
    sigs     = [by_addr[w.address].sign_message(message) for w in expected]

    proof = Proof(
        claim_info=   CLAIM_INFO,
        signed_claim= SignedClaim(claim=claim, signatures=sigs),
    )
    result = verify_proof(proof, registry)

    # ── Bundle ───────────────────────────────────────────────
    bundle = {
        "_description": (
            "ClaimWitness cross-language vector bundle. "
            "All values must match independently computed output."
        ),
        "claim_info":           CLAIM_INFO.to_dict(),
        "hash_input_hex":       CLAIM_INFO.canonical_bytes_for_hashing().hex(),
        "identifier":           identifier,
        "witnesses":            [k.address for k in keys],
        "required":             REQUIRED,
        "timestamp_s":          TIMESTAMP_S,
        "selection_seed_hex":   seed.hex(),
        "selection_draws":      _selection_draws(seed, len(keys), REQUIRED),
        "expected_witnesses":   [w.address for w in expected],
        "serialized_claim_hex": message.hex(),
        "personal_hash_hex":    personal_message_hash(message).hex(),
        "signatures":           sigs,
        "proof":                proof.to_dict(),
        "expected_results": {
            "identifier_match": True,
            "selection_match":  True,
            "signers_recover":  True,
            "verdict":          result.reason.value,
        },
    }

    out_path.write_text(json.dumps(bundle, indent=2), encoding="utf-8")
    print(f"Vector bundle written to: {out_path}")
    print()
    print(f"  identifier         : {identifier}")
    print(f"  selection_seed     : {seed.hex()}")
    print(f"  expected_witnesses : {len(expected)} of {len(keys)}")
    print(f"  verdict            : {result.reason.value}")


if __name__ == "__main__":
    main()
