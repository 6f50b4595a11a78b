"""Domain exceptions."""


class IntentionsBotError(Exception):
    """Base exception for the Intentions bot."""

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(IntentionsBotError):
    """Missing or malformed configuration value."""

    def __init__(self, setting: str, details: str = None):
        message = f"Invalid configuration for {setting}"
        if details:
            message += f": {details}"

        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR"
        )


class EncryptionError(IntentionsBotError):
    """Encryption or decryption failure."""

    def __init__(self, operation: str, details: str = None):
        message = f"Encryption error during {operation}"
        if details:
            message += f": {details}"

        super().__init__(
            message=message,
            code="ENCRYPTION_ERROR"
        )


class StoreError(IntentionsBotError):
    """Data store is not usable (pool missing, schema broken)."""

    def __init__(self, operation: str, details: str = None):
        message = f"Store error during {operation}"
        if details:
            message += f": {details}"

        super().__init__(
            message=message,
            code="STORE_ERROR"
        )


class UserNotFoundError(IntentionsBotError):
    """User not found error."""

    def __init__(self, telegram_id: int):
        super().__init__(
            message=f"User with Telegram ID {telegram_id} not found",
            code="USER_NOT_FOUND"
        )
