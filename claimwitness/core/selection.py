"""
claimwitness/core/selection.py

Deterministic witness selection — protocol version 1

The off-chain signing tool and the verifier MUST run this identical
procedure: the witnesses who sign are exactly the witnesses the verifier
expects. Entropy comes from keccak256 only. No platform RNG.

CONTRACT — Seed
    seed = keccak256( identifier(32 bytes) || u64be(timestampS) )

CONTRACT — Partial Fisher-Yates
    working = list(witnesses)
    for i in 0 .. required-1:
        r = int_be( keccak256(seed || u32be(i)) ) mod (N - i)
        swap working[i], working[i + r]
    selected = working[:required]      (order is part of the output)
"""

import struct
from typing import List, Sequence, TypeVar

from claimwitness.core.crypto import keccak256
from claimwitness.core.exceptions import InvalidConfigurationError, ValidationError
from claimwitness.core.models import Epoch, Witness, normalize_identifier


T = TypeVar("T")

SEED_LENGTH = 32


def derive_selection_seed(identifier, timestamp_s: int) -> bytes:
    """
    Seed for select_witnesses().

    Args:
        identifier:  claim identifier, 32 raw bytes or hex string.
        timestamp_s: claim timestamp, unsigned 64-bit.
    """
    if isinstance(timestamp_s, bool) or not isinstance(timestamp_s, int) \
            or not 0 <= timestamp_s < 2 ** 64:
        raise ValidationError(
            f"timestampS must be an unsigned 64-bit int, got {timestamp_s!r}"
        )
    identifier_bytes = bytes.fromhex(normalize_identifier(identifier)[2:])
    return keccak256(identifier_bytes + struct.pack(">Q", timestamp_s))


def select_witnesses(
    witnesses: Sequence[T],
    required:  int,
    seed:      bytes,
) -> List[T]:
    """
    Pick `required` witnesses without replacement, in seed-determined order.

    The input sequence is never mutated.

    Raises:
        InvalidConfigurationError — empty witness list, required <= 0,
        required > len(witnesses), or seed not 32 bytes.
    """
    n = len(witnesses)
    if n == 0:
        raise InvalidConfigurationError("cannot select from an empty witness list")
    if isinstance(required, bool) or not isinstance(required, int) or required <= 0:
        raise InvalidConfigurationError(
            "required witness count must be a positive int",
            {"required": required},
        )
    if required > n:
        raise InvalidConfigurationError(
            "required witness count exceeds witness list",
            {"required": required, "witnesses": n},
        )
    if len(seed) != SEED_LENGTH:
        raise InvalidConfigurationError(
            f"selection seed must be {SEED_LENGTH} bytes, got {len(seed)}"
        )

    working = list(witnesses)
    for i in range(required):
        draw = int.from_bytes(keccak256(seed + struct.pack(">I", i)), "big")
        j = i + draw % (n - i)
        working[i], working[j] = working[j], working[i]

    return working[:required]


def fetch_witnesses_for_claim(
    epoch:       Epoch,
    identifier,
    timestamp_s: int,
) -> List[Witness]:
    """
    The ordered witnesses expected to sign a claim in this epoch.

    Used both by the verifier and by tooling that solicits signatures.
    """
    seed = derive_selection_seed(identifier, timestamp_s)
    return select_witnesses(
        list(epoch.witnesses), epoch.required_signatures, seed
    )
