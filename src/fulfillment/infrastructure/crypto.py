"""Fernet cipher for payment identifiers at rest.

The Fernet key is derived from a master secret with PBKDF2 so operators
can configure an ordinary passphrase instead of a raw 32-byte key.
"""

from __future__ import annotations

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from fulfillment.domain.collaborators.cipher import Cipher
from fulfillment.domain.exceptions import ValidationError

KDF_ITERATIONS = 100_000


class FernetCipher(Cipher):

    def __init__(self, secret: str, salt: str, iterations: int = KDF_ITERATIONS) -> None:
        if not secret:
            raise ValidationError("Encryption secret must not be empty")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt.encode(),
            iterations=iterations,
        )
        key = base64.urlsafe_b64encode(kdf.derive(secret.encode()))
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken as exc:
            raise ValidationError("Encrypted value is invalid or was tampered with") from exc
