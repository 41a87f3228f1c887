"""
Ed25519 keys for chain-head attestations.

Key files:
- private key: PKCS8 PEM at TRUSTCHAIN_KEY_PATH (default ~/.trustchain/keys/head_ed25519), mode 0600
- public key: SubjectPublicKeyInfo PEM at <private key path>.pub

Payloads are signed as canonical JSON, so any party holding the public key
can re-derive the signed bytes from the attestation fields.
"""

import base64
import binascii
import hashlib
import os
from typing import Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..config import default_key_path
from ..core.canonical import canonical_json_bytes


def _public_pem(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _pubkey_id(public_key: Ed25519PublicKey) -> str:
    return hashlib.sha256(_public_pem(public_key)).hexdigest()[:16]


def _read(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


class SigningKey:
    """Ed25519 private key that signs attestation payloads."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self.private_key = private_key
        self.public_key = private_key.public_key()

    @classmethod
    def generate(cls) -> "SigningKey":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def load_from_file(cls, path: str) -> "SigningKey":
        """
        Load an unencrypted PEM private key.

        Raises:
            FileNotFoundError: If key file doesn't exist
            ValueError: If the file does not hold an Ed25519 private key
        """
        private_key = serialization.load_pem_private_key(_read(path), password=None)
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(f"{path} is not an Ed25519 private key")
        return cls(private_key)

    def save_to_file(self, path: str, public_path: Optional[str] = None) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

        # 0600 from creation; chmod also covers an existing file
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(
                self.private_key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=serialization.NoEncryption(),
                )
            )
        os.chmod(path, 0o600)

        if public_path:
            with open(public_path, "wb") as f:
                f.write(self.get_public_key_pem())

    def sign_base64(self, payload: dict) -> str:
        signature = self.private_key.sign(canonical_json_bytes(payload))
        return base64.b64encode(signature).decode("ascii")

    def get_pubkey_id(self) -> str:
        """First 16 hex chars of SHA-256 over the public key PEM."""
        return _pubkey_id(self.public_key)

    def get_public_key_pem(self) -> bytes:
        return _public_pem(self.public_key)


class VerifyingKey:
    """Ed25519 public key used to check attestations."""

    def __init__(self, public_key: Ed25519PublicKey):
        self.public_key = public_key

    @classmethod
    def load_from_file(cls, path: str) -> "VerifyingKey":
        public_key = serialization.load_pem_public_key(_read(path))
        if not isinstance(public_key, Ed25519PublicKey):
            raise ValueError(f"{path} is not an Ed25519 public key")
        return cls(public_key)

    @classmethod
    def from_signing_key(cls, signing_key: SigningKey) -> "VerifyingKey":
        return cls(signing_key.public_key)

    def verify_base64(self, payload: dict, signature_b64: str) -> bool:
        """False on a malformed or non-matching signature; never raises."""
        try:
            signature = base64.b64decode(signature_b64, validate=True)
        except (binascii.Error, ValueError):
            return False
        try:
            self.public_key.verify(signature, canonical_json_bytes(payload))
        except InvalidSignature:
            return False
        return True

    def get_pubkey_id(self) -> str:
        return _pubkey_id(self.public_key)


def ensure_keypair(key_path: Optional[str] = None) -> Tuple[str, str]:
    """
    Generate a keypair at key_path unless one already exists.

    Returns:
        (private_key_path, public_key_path)
    """
    key_path = key_path or default_key_path()
    public_key_path = key_path + ".pub"

    if not os.path.exists(key_path):
        SigningKey.generate().save_to_file(key_path, public_key_path)

    return key_path, public_key_path
