"""
Text Encryption - шифрование свободного текста пользователей

Намерения и рефлексии хранятся в БД только в зашифрованном виде:
AES-256-GCM, 12-байтный IV, 16-байтный auth tag, все поля в base64.
"""

import base64
import binascii
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from intentions_bot.core.exceptions import ConfigurationError, EncryptionError

logger = logging.getLogger(__name__)

IV_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32


@dataclass(frozen=True)
class EncryptedPayload:
    """Зашифрованный текст в виде тройки base64 полей"""
    ciphertext_b64: str
    iv_b64: str
    auth_tag_b64: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EncryptedPayload":
        return cls(
            ciphertext_b64=row["ciphertext_b64"],
            iv_b64=row["iv_b64"],
            auth_tag_b64=row["auth_tag_b64"],
        )


@dataclass(frozen=True)
class DecryptResult:
    """Результат расшифровки: либо текст, либо причина ошибки"""
    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None

    def text_or(self, placeholder: str) -> str:
        return self.text if self.ok else placeholder


class TextCipher:
    """AES-256-GCM шифрование текстовых полей"""

    def __init__(self, key_b64: str):
        try:
            key = base64.b64decode(key_b64 or "", validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError("ENCRYPTION_KEY", f"not valid base64: {e}")

        if len(key) != KEY_SIZE:
            raise ConfigurationError("ENCRYPTION_KEY", f"must be base64 for {KEY_SIZE} bytes")

        self._aead = AESGCM(key)

    @staticmethod
    def generate_key() -> str:
        """Сгенерировать новый ключ (base64) для ENCRYPTION_KEY"""
        return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")

    def encrypt(self, plaintext: str) -> EncryptedPayload:
        iv = os.urandom(IV_SIZE)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        # cryptography возвращает ciphertext || tag
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return EncryptedPayload(
            ciphertext_b64=base64.b64encode(ciphertext).decode("ascii"),
            iv_b64=base64.b64encode(iv).decode("ascii"),
            auth_tag_b64=base64.b64encode(tag).decode("ascii"),
        )

    def decrypt(self, payload: EncryptedPayload) -> str:
        """Расшифровать payload, при ошибке поднимает EncryptionError"""
        try:
            iv = base64.b64decode(payload.iv_b64)
            ciphertext = base64.b64decode(payload.ciphertext_b64)
            tag = base64.b64decode(payload.auth_tag_b64)
            plaintext = self._aead.decrypt(iv, ciphertext + tag, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, binascii.Error, ValueError) as e:
            raise EncryptionError("decrypt", type(e).__name__)

    def try_decrypt(self, payload: EncryptedPayload) -> DecryptResult:
        """Расшифровка без исключений - подстановку placeholder делает вызывающий"""
        try:
            return DecryptResult(ok=True, text=self.decrypt(payload))
        except EncryptionError as e:
            logger.warning(f"⚠️ Unable to decrypt payload: {e.message}")
            return DecryptResult(ok=False, error=e.message)
