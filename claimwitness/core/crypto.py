"""
claimwitness/core/crypto.py

ClaimWitness Cryptographic Layer — protocol version 1

Key contracts:
    keccak256(data)                  : legacy Keccak-256 (Ethereum flavour, NOT NIST SHA3)
    personal_message_hash(message)   : keccak256("\\x19Ethereum Signed Message:\\n" + len + message)
    recover_address(message, sig)    : 65-byte r||s||v signature → canonical address
                                       raises InvalidSignatureError, never returns garbage
    WitnessKeyManager.sign_message() : "0x" + 130 lowercase hex, v ∈ {27, 28}, low-s

Canonical address rendering:
    "0x" + 40 lowercase hex characters. No EIP-55 checksum casing anywhere
    on the wire. normalize_address() is the only way an address enters
    the data model.

CRITICAL:
    recover_address() hashes the message itself. Pass the serialized claim
    bytes, NOT a digest. Signing and recovery must agree on the prefix.
"""

import re
from pathlib import Path
from typing import Union

from coincurve import PrivateKey, PublicKey
from Crypto.Hash import keccak as _keccak
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

from claimwitness.core.exceptions import InvalidSignatureError, ValidationError


# secp256k1 group order
SECP256K1_N      = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

SIGNATURE_LENGTH = 65
ADDRESS_LENGTH   = 20

PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"

_ADDRESS_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")


# ─────────────────────────────────────────────────────────────
# Hashing
# ─────────────────────────────────────────────────────────────

def keccak256(data: bytes) -> bytes:
    """Legacy Keccak-256 digest (32 bytes)."""
    h = _keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def personal_message_hash(message: bytes) -> bytes:
    """
    Prefixed personal-message hash.

        keccak256(b"\\x19Ethereum Signed Message:\\n" + decimal(len(message)) + message)

    The length is the BYTE length of message, rendered in decimal ASCII.
    """
    return keccak256(
        PERSONAL_MESSAGE_PREFIX + str(len(message)).encode("ascii") + message
    )


# ─────────────────────────────────────────────────────────────
# Addresses
# ─────────────────────────────────────────────────────────────

def normalize_address(value: Union[str, bytes]) -> str:
    """
    Canonical address string: "0x" + 40 lowercase hex.

    Accepts 20 raw bytes, or a hex string with or without "0x" in any case.
    Raises ValidationError for anything else.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_LENGTH:
            raise ValidationError(
                f"address must be {ADDRESS_LENGTH} bytes, got {len(value)}"
            )
        return "0x" + bytes(value).hex()
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise ValidationError(f"not a 20-byte hex address: {value!r}")
    if value[:2] == "0x":
        value = value[2:]
    return "0x" + value.lower()


def address_from_public_key(public_key: bytes) -> str:
    """
    Derive the address of an uncompressed secp256k1 public key.

    public_key: 65 bytes, 0x04 || X || Y
    Returns keccak256(X || Y)[-20:] in canonical form.
    """
    if len(public_key) != 65 or public_key[0] != 0x04:
        raise ValidationError(
            "public key must be 65-byte uncompressed SEC1 encoding"
        )
    return "0x" + keccak256(public_key[1:])[-ADDRESS_LENGTH:].hex()


# ─────────────────────────────────────────────────────────────
# Signatures
# ─────────────────────────────────────────────────────────────

def signature_bytes(signature: Union[str, bytes]) -> bytes:
    """
    Decode a wire signature to its 65 raw bytes.
    Accepts bytes or a hex string with optional "0x" prefix.
    Raises InvalidSignatureError on bad hex or wrong length.
    """
    if isinstance(signature, str):
        text = signature[2:] if signature[:2] in ("0x", "0X") else signature
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise InvalidSignatureError(
                "signature is not valid hex", {"signature": signature[:18]}
            ) from exc
    elif isinstance(signature, (bytes, bytearray)):
        raw = bytes(signature)
    else:
        raise InvalidSignatureError(
            f"signature must be str or bytes, got {type(signature).__name__}"
        )

    if len(raw) != SIGNATURE_LENGTH:
        raise InvalidSignatureError(
            f"signature must be {SIGNATURE_LENGTH} bytes (r||s||v)",
            {"length": len(raw)},
        )
    return raw


def recover_address(message: bytes, signature: Union[str, bytes]) -> str:
    """
    Recover the signer address of a personal-message signature.

    Args:
        message:   The exact bytes that were signed (serialized claim).
        signature: 65 bytes r||s||v, raw or hex. v ∈ {27, 28} or {0, 1}.

    Returns:
        Canonical address of the signer.

    Raises:
        InvalidSignatureError — malformed encoding, out-of-range recovery id,
        r/s outside [1, n), high-s form, or a point that does not recover.
        Callers treat this as "this candidate did not sign", not as fatal.
    """
    raw = signature_bytes(signature)

    r = int.from_bytes(raw[0:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]

    if v in (27, 28):
        v -= 27
    elif v not in (0, 1):
        raise InvalidSignatureError("recovery id out of range", {"v": raw[64]})

    if not 0 < r < SECP256K1_N:
        raise InvalidSignatureError("signature r out of range")
    if not 0 < s < SECP256K1_N:
        raise InvalidSignatureError("signature s out of range")
    if s > SECP256K1_HALF_N:
        raise InvalidSignatureError("signature s is in the malleable upper half")

    digest = personal_message_hash(message)
    try:
        public_key = PublicKey.from_signature_and_message(
            raw[:64] + bytes([v]), digest, hasher=None
        )
    except Exception as exc:
        raise InvalidSignatureError(
            f"public key recovery failed: {exc}"
        ) from exc

    return address_from_public_key(public_key.format(compressed=False))


# ─────────────────────────────────────────────────────────────
# Witness key manager
# ─────────────────────────────────────────────────────────────

class WitnessKeyManager:
    """
    secp256k1 key manager for a witness (off-chain signing side).

    Public surface:
        WitnessKeyManager.generate()                  → new random key
        WitnessKeyManager.from_file(path)             → load PEM private key
        WitnessKeyManager.from_private_bytes(secret)  → load from raw 32-byte scalar

        key.address                  (@property) → canonical "0x" address
        key.sign_message(data)                   → "0x" + 130 hex, r||s||v
        key.sign_claim(claim_data)               → sign_message(claim_data.serialize())
        key.save(path)                           → write PEM private key
        key.private_bytes_raw()                  → raw 32-byte scalar
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        if not isinstance(private_key.curve, ec.SECP256K1):
            raise ValueError(
                f"witness keys must be secp256k1, got {private_key.curve.name}"
            )
        self._private_key = private_key
        self._secret: bytes = (
            private_key.private_numbers().private_value.to_bytes(32, "big")
        )
        self._address: str = address_from_public_key(
            private_key.public_key().public_bytes(
                Encoding.X962, PublicFormat.UncompressedPoint
            )
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "WitnessKeyManager":
        """Generate a new random secp256k1 key pair."""
        return cls(ec.generate_private_key(ec.SECP256K1()))

    @classmethod
    def from_file(cls, path: Path) -> "WitnessKeyManager":
        """
        Load a secp256k1 private key from a PEM file.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not a valid secp256k1 PEM key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        pem_bytes = path.read_bytes()
        try:
            private_key = load_pem_private_key(pem_bytes, password=None)
            if not isinstance(private_key, ec.EllipticCurvePrivateKey):
                raise ValueError(
                    f"Key file {path} does not contain an EC private key"
                )
            return cls(private_key)
        except Exception as exc:
            raise ValueError(
                f"Failed to load secp256k1 key from {path}: {exc}"
            ) from exc

    @classmethod
    def from_private_bytes(cls, secret: bytes) -> "WitnessKeyManager":
        """
        Load a key from a raw 32-byte big-endian scalar.
        Raises ValueError if secret is not 32 bytes or not in [1, n).
        """
        if len(secret) != 32:
            raise ValueError(
                f"secp256k1 secret must be 32 bytes, got {len(secret)}"
            )
        value = int.from_bytes(secret, "big")
        if not 0 < value < SECP256K1_N:
            raise ValueError("secp256k1 secret out of range")
        return cls(ec.derive_private_key(value, ec.SECP256K1()))

    # ── Identity ──────────────────────────────────────────────

    @property
    def address(self) -> str:
        """Canonical address of this witness key."""
        return self._address

    # ── Signing ───────────────────────────────────────────────

    def sign_message(self, message: bytes) -> str:
        """
        Sign message under the personal-message convention.

        Deterministic (RFC 6979) and always low-s.
        Returns "0x" + hex(r || s || v) with v ∈ {27, 28}.
        """
        digest = personal_message_hash(message)
        raw = PrivateKey(self._secret).sign_recoverable(digest, hasher=None)
        return "0x" + (raw[:64] + bytes([raw[64] + 27])).hex()

    def sign_claim(self, claim_data) -> str:
        """Sign the canonical serialization of a CompleteClaimData."""
        return self.sign_message(claim_data.serialize())

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the private key to disk as a PEM file.
        Creates parent directories if needed.
        Raises RuntimeError on write failure.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            pem = self._private_key.private_bytes(
                encoding=             Encoding.PEM,
                format=               PrivateFormat.PKCS8,
                encryption_algorithm= NoEncryption(),
            )
            path.write_bytes(pem)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to save secp256k1 key to {path}: {exc}"
            ) from exc

    def private_bytes_raw(self) -> bytes:
        """
        Return the raw 32-byte private scalar.
        Use only for secure backup — never log or transmit.
        """
        return self._secret

    def __repr__(self) -> str:
        return f"WitnessKeyManager(address={self._address})"
