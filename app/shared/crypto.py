"""Fernet encryption for third-party credentials stored at rest (OAuth tokens, Twilio auth)"""

import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet

from ..config import SECRET_KEY


# Derive a valid Fernet key from SECRET_KEY
def get_fernet_key() -> bytes:
    key = hashlib.sha256(SECRET_KEY.encode()).digest()
    return base64.urlsafe_b64encode(key)


cipher_suite = Fernet(get_fernet_key())


def encrypt_token(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return cipher_suite.encrypt(value.encode()).decode()


def decrypt_token(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return cipher_suite.decrypt(value.encode()).decode()
