"""
Ed25519 Key Management for the Marble invoker.

NEAR keys are written as ``ed25519:<base58>``.  The secret form holds the
64-byte concatenation of seed and public key (the 32-byte seed alone is also
accepted); the public form holds the 32-byte public key.

Keys are provisioned from the NEAR_PRIVATE_KEY environment variable, which
may be set in ~/.marble/.env.  They are held in an in-memory key store for
the lifetime of the process and never written back unless ``keygen`` is used.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)
from dotenv import load_dotenv, set_key

from ..config import MARBLE_ENV
from ..errors import KeyFormatError, MissingKeyError

logger = logging.getLogger(__name__)

KEY_TYPE_ED25519 = 0
ED25519_PREFIX = "ed25519"
PRIVATE_KEY_VAR = "NEAR_PRIVATE_KEY"
ACCOUNT_ID_VAR = "NEAR_ACCOUNT_ID"


def _decode_key_string(value: str) -> tuple[str, bytes]:
    if ":" in value:
        curve, encoded = value.split(":", 1)
    else:
        curve, encoded = ED25519_PREFIX, value
    if curve.lower() != ED25519_PREFIX:
        raise KeyFormatError(f"Unsupported key type: {curve}")
    try:
        return ED25519_PREFIX, base58.b58decode(encoded)
    except ValueError as exc:
        raise KeyFormatError(f"Key is not valid base58: {exc}") from exc


class PublicKey:
    def __init__(self, data: bytes) -> None:
        if len(data) != 32:
            raise KeyFormatError(f"ed25519 public key must be 32 bytes, got {len(data)}")
        self.key_type = KEY_TYPE_ED25519
        self.data = data

    @classmethod
    def from_string(cls, value: str) -> "PublicKey":
        _, raw = _decode_key_string(value)
        return cls(raw)

    def to_string(self) -> str:
        return f"{ED25519_PREFIX}:{base58.b58encode(self.data).decode('ascii')}"

    def verify(self, message: bytes, signature: bytes) -> bool:
        try:
            Ed25519PublicKey.from_public_bytes(self.data).verify(signature, message)
        except InvalidSignature:
            return False
        return True

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PublicKey) and other.data == self.data

    def __hash__(self) -> int:
        return hash(self.data)

    def __str__(self) -> str:
        return self.to_string()


class KeyPair:
    """An ed25519 signing key."""

    def __init__(self, seed: bytes) -> None:
        if len(seed) != 32:
            raise KeyFormatError(f"ed25519 seed must be 32 bytes, got {len(seed)}")
        self._private = Ed25519PrivateKey.from_private_bytes(seed)
        self._seed = seed
        self.public_key = PublicKey(
            self._private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        )

    @classmethod
    def from_string(cls, value: str) -> "KeyPair":
        """
        Parse ``ed25519:<base58 secret>``.

        Raises:
            KeyFormatError: On a malformed string or when the embedded public
                            key does not match the seed
        """
        _, raw = _decode_key_string(value.strip())
        if len(raw) == 64:
            pair = cls(raw[:32])
            if pair.public_key.data != raw[32:]:
                raise KeyFormatError("Secret key does not match its embedded public key")
            return pair
        if len(raw) == 32:
            return cls(raw)
        raise KeyFormatError(f"ed25519 secret key must be 32 or 64 bytes, got {len(raw)}")

    @classmethod
    def from_random(cls) -> "KeyPair":
        private = Ed25519PrivateKey.generate()
        seed = private.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return cls(seed)

    @property
    def secret_key(self) -> bytes:
        return self._seed + self.public_key.data

    def to_string(self) -> str:
        return f"{ED25519_PREFIX}:{base58.b58encode(self.secret_key).decode('ascii')}"

    def sign(self, message: bytes) -> bytes:
        return self._private.sign(message)

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key.to_string()!r})"


class InMemoryKeyStore:
    """Keys indexed by (network_id, account_id). Nothing is persisted."""

    def __init__(self) -> None:
        self._keys: dict[tuple[str, str], KeyPair] = {}

    def set_key(self, network_id: str, account_id: str, key_pair: KeyPair) -> None:
        if (network_id, account_id) in self._keys:
            logger.debug("Replacing key for %s on %s", account_id, network_id)
        self._keys[(network_id, account_id)] = key_pair

    def get_key(self, network_id: str, account_id: str) -> Optional[KeyPair]:
        return self._keys.get((network_id, account_id))

    def remove_key(self, network_id: str, account_id: str) -> None:
        self._keys.pop((network_id, account_id), None)

    def clear(self) -> None:
        self._keys.clear()

    def get_networks(self) -> list[str]:
        return sorted({network for network, _ in self._keys})

    def get_accounts(self, network_id: str) -> list[str]:
        return sorted(account for network, account in self._keys if network == network_id)

    def __len__(self) -> int:
        return len(self._keys)


class InMemorySigner:
    """Signs on behalf of accounts whose keys are held in a key store."""

    def __init__(self, key_store: InMemoryKeyStore) -> None:
        self.key_store = key_store

    def _key_for(self, network_id: str, account_id: str) -> KeyPair:
        key_pair = self.key_store.get_key(network_id, account_id)
        if key_pair is None:
            raise MissingKeyError(
                f"No key for {account_id} on {network_id}. "
                f"Set {PRIVATE_KEY_VAR} or add it to {MARBLE_ENV}"
            )
        return key_pair

    def get_key_pair(self, network_id: str, account_id: str) -> KeyPair:
        """
        Raises:
            MissingKeyError: If the key store holds no key for the account
        """
        return self._key_for(network_id, account_id)

    def get_public_key(self, network_id: str, account_id: str) -> PublicKey:
        return self._key_for(network_id, account_id).public_key

    def sign(self, message: bytes, network_id: str, account_id: str) -> bytes:
        return self._key_for(network_id, account_id).sign(message)


def generate_keypair() -> tuple[str, str]:
    """
    Generate a new ed25519 keypair.

    Returns:
        Tuple of (secret_key, public_key) in ``ed25519:<base58>`` form
    """
    key_pair = KeyPair.from_random()
    return key_pair.to_string(), key_pair.public_key.to_string()


def save_private_key(
    private_key: str,
    account_id: Optional[str] = None,
    env_path: Optional[Path] = None,
) -> Path:
    """
    Save a secret key (and optionally its account) to a .env file.

    Other entries and comments in the file are preserved.

    Args:
        private_key: ``ed25519:<base58>`` secret key
        account_id: Account to record as NEAR_ACCOUNT_ID
        env_path: Path to .env file (default: ~/.marble/.env)

    Returns:
        Path to the saved .env file
    """
    env_path = env_path or MARBLE_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(exist_ok=True)

    set_key(env_path, PRIVATE_KEY_VAR, private_key, quote_mode="never")
    if account_id:
        set_key(env_path, ACCOUNT_ID_VAR, account_id, quote_mode="never")

    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load the signing key from the environment or a .env file.

    Args:
        env_path: Path to .env file (default: ~/.marble/.env)

    Returns:
        ``ed25519:<base58>`` secret key

    Raises:
        ValueError: If NEAR_PRIVATE_KEY is not set
    """
    env_path = env_path or MARBLE_ENV

    if env_path.exists():
        load_dotenv(env_path, override=False)

    private_key = os.environ.get(PRIVATE_KEY_VAR)
    if not private_key:
        raise ValueError(
            f"{PRIVATE_KEY_VAR} not found. Export it or set it in {env_path}"
        )
    return private_key.strip()


def coerce_key_pair(signing_key: Union[str, KeyPair]) -> KeyPair:
    if isinstance(signing_key, KeyPair):
        return signing_key
    return KeyPair.from_string(signing_key)
