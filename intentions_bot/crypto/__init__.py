from .encryption import DecryptResult, EncryptedPayload, TextCipher

__all__ = ["DecryptResult", "EncryptedPayload", "TextCipher"]
