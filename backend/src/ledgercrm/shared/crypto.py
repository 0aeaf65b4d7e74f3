"""Field-level encryption and search tokens for personal data.

Sensitive values are encrypted with Fernet, which is randomized: the same
plaintext encrypts to a different ciphertext every time, so ciphertext is safe
to store but useless as a query predicate. Each searchable value therefore
also gets a deterministic HMAC-SHA256 token that supports equality lookups.

Security properties:
- The Fernet key is derived from APP_SECRET_KEY using SHA256.
- The HMAC key is domain-separated from the Fernet key, or taken from
  SEARCH_HASH_KEY when configured.
- Tokens are one-way; they are never decoded back to plaintext.
"""

import base64
import hashlib
import hmac
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from ledgercrm.config import get_settings
from ledgercrm.shared.exceptions import EncryptionError
from ledgercrm.shared.logging import get_logger

logger = get_logger(__name__)

# Known default/placeholder values that should never be used
_INSECURE_DEFAULT_KEYS = {
    "change-this-to-a-random-secret-key",
    "change-me-in-production",
    "",
}


class FieldCipher:
    """Encrypt, decrypt and hash individual field values.

    Empty values are treated as absent: ``encrypt(None)`` and ``encrypt("")``
    both return None, and so does ``decrypt``. Only ``hash`` requires a value.
    """

    def __init__(self, secret_key: str, search_key: str = "") -> None:
        if not secret_key or secret_key in _INSECURE_DEFAULT_KEYS:
            raise ValueError(
                "APP_SECRET_KEY must be configured for field encryption. "
                'Generate a key with: python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )

        # Fernet needs a base64-encoded 32-byte key
        derived_key = hashlib.sha256(secret_key.encode()).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(derived_key))

        hmac_material = search_key or f"ledgercrm:search-index:{secret_key}"
        self._hmac_key = hashlib.sha256(hmac_material.encode()).digest()

    def encrypt(self, plaintext: str | None) -> str | None:
        if not plaintext:
            return None
        try:
            return self._fernet.encrypt(plaintext.encode()).decode()
        except (TypeError, AttributeError) as e:
            raise EncryptionError(
                "Failed to encrypt field value", entity="field", operation="encrypt"
            ) from e

    def decrypt(self, ciphertext: str | None) -> str | None:
        if not ciphertext:
            return None
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as e:
            logger.error("field_decryption_failed", reason="invalid_token_or_wrong_key")
            raise EncryptionError(
                "Failed to decrypt field value", entity="field", operation="decrypt"
            ) from e

    def hash(self, plaintext: str) -> str:
        """Compute the deterministic search token (hex HMAC-SHA256) of a value."""
        return hmac.new(self._hmac_key, plaintext.encode("utf-8"), hashlib.sha256).hexdigest()


@lru_cache(maxsize=1)
def get_field_cipher() -> FieldCipher:
    """Get the process-wide cipher built from settings."""
    settings = get_settings()
    return FieldCipher(settings.app_secret_key, settings.search_hash_key)
