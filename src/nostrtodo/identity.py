"""
Identity — the key that signs every version of the list.

The configured private key is an ``nsec`` bech32 string (or 64 hex
characters). It is decoded once per command into a Credential, which
carries the secp256k1 secret and the x-only public key relays know
the author by. Signing is BIP-340 Schnorr via coincurve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from bech32 import bech32_decode, bech32_encode, convertbits
from coincurve import PrivateKey, PublicKeyXOnly

from .errors import InvalidCredentialError, SigningError

logger = logging.getLogger("nostrtodo.identity")

SECRET_HRP = "nsec"
PUBLIC_HRP = "npub"


@dataclass(frozen=True)
class Credential:
    """A decoded signing key and its public identity.

    Attributes:
        secret: 32-byte secp256k1 secret key.
        public_key: Hex-encoded 32-byte x-only public key.
    """

    secret: bytes = field(repr=False)
    public_key: str

    @property
    def npub(self) -> str:
        """The public key in bech32 ``npub`` form."""
        return encode_bech32(PUBLIC_HRP, bytes.fromhex(self.public_key))

    def sign(self, message: bytes) -> str:
        """Schnorr-sign a 32-byte message digest.

        Returns:
            str: Hex-encoded 64-byte signature.

        Raises:
            SigningError: If the key or message is rejected by the signer.
        """
        try:
            signature = PrivateKey(self.secret).sign_schnorr(message)
        except (ValueError, TypeError) as exc:
            raise SigningError(f"could not sign record: {exc}") from exc
        return signature.hex()


def encode_bech32(hrp: str, data: bytes) -> str:
    """Encode raw bytes as a NIP-19 bech32 string."""
    words = convertbits(data, 8, 5, True)
    return bech32_encode(hrp, words)


def decode_secret(private_key: str) -> bytes:
    """Decode an ``nsec`` or hex private key into 32 raw bytes.

    Raises:
        InvalidCredentialError: If the string is neither form.
    """
    value = (private_key or "").strip()
    if not value:
        raise InvalidCredentialError("no private key configured")

    if value.lower().startswith(SECRET_HRP + "1"):
        hrp, words = bech32_decode(value)
        if hrp != SECRET_HRP or words is None:
            raise InvalidCredentialError("private key is not a valid nsec string")
        decoded = convertbits(words, 5, 8, False)
        if decoded is None or len(decoded) != 32:
            raise InvalidCredentialError("nsec does not hold a 32-byte key")
        return bytes(decoded)

    if len(value) == 64:
        try:
            return bytes.fromhex(value)
        except ValueError:
            pass
    raise InvalidCredentialError("private key must be an nsec string or 64 hex characters")


def resolve_credential(private_key: str) -> Credential:
    """Decode the configured key and derive its public identity.

    Args:
        private_key: ``nsec1...`` or hex secret from the configuration.

    Returns:
        Credential: The secret and its hex x-only public key.

    Raises:
        InvalidCredentialError: If the key cannot be decoded or is not a
            usable secp256k1 scalar.
    """
    secret = decode_secret(private_key)
    try:
        public = PublicKeyXOnly.from_secret(secret)
    except ValueError as exc:
        raise InvalidCredentialError(f"private key yields no public key: {exc}") from exc

    credential = Credential(secret=secret, public_key=public.format().hex())
    logger.debug("Resolved identity %s", credential.npub)
    return credential


def verify_signature(public_key: str, message: bytes, signature: str) -> bool:
    """Check a hex Schnorr signature against a hex x-only public key."""
    try:
        key = PublicKeyXOnly(bytes.fromhex(public_key))
        return key.verify(bytes.fromhex(signature), message)
    except (ValueError, TypeError):
        return False
