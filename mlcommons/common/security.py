"""Encryption of connector credentials at rest.

Connector credential values are stored Fernet-encrypted and only decrypted
for the duration of one remote invocation. ``ML_CREDENTIAL_ENCRYPTION_KEY``
may hold several comma-separated keys: the first encrypts, all of them
decrypt, so keys can be rotated without re-encrypting stored connectors at
once.
"""

from typing import Dict, List, Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
import structlog

logger = structlog.get_logger("security")


def _parse_keys(encryption_key: Optional[str]) -> List[str]:
    return [key.strip() for key in (encryption_key or "").split(",") if key.strip()]


class SecretManager:
    """Encrypts and decrypts connector credential values.

    Parameters
    - encryption_key: One Fernet key, or several separated by commas (newest
      first). Without a key an ephemeral one is generated, so values
      encrypted by this instance cannot be read after a restart.
    """

    def __init__(self, encryption_key: Optional[str] = None):
        keys = _parse_keys(encryption_key)
        if not keys:
            keys = [Fernet.generate_key().decode()]
            logger.warning("No credential encryption key configured; using an ephemeral key")
        self.key_count = len(keys)
        self.fernet = MultiFernet([Fernet(key.encode()) for key in keys])

    def encrypt(self, value: str) -> str:
        """Encrypt one credential value with the primary key."""
        return self.fernet.encrypt(value.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt one credential value.

        Raises ``cryptography.fernet.InvalidToken`` when no configured key
        matches.
        """
        try:
            return self.fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken:
            logger.error("Credential decryption failed", error="invalid token", keys=self.key_count)
            raise

    def rotate(self, token: str) -> str:
        """Re-encrypt a value under the primary key."""
        return self.fernet.rotate(token.encode("ascii")).decode("ascii")

    def encrypt_all(self, values: Mapping[str, str]) -> Dict[str, str]:
        """Encrypt every value of a credential map, keeping the keys."""
        return {key: self.encrypt(value) for key, value in values.items()}


def generate_encryption_key() -> str:
    """Generate a new Fernet key suitable for ``ML_CREDENTIAL_ENCRYPTION_KEY``."""
    return Fernet.generate_key().decode()


def create_secret_manager(encryption_key: Optional[str] = None) -> SecretManager:
    """Create a secret manager for the configured key(s)."""
    return SecretManager(encryption_key)
