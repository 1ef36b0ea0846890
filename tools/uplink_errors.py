"""
uplink_errors.py - Exception taxonomy for mioty uplink decoding

Every error raised while decoding derives from DecodeError, which is a
ValueError so callers that already catch ValueError keep working.
"""

from typing import Optional


class DecodeError(ValueError):
    """Base class for all uplink decode failures."""


class UnsupportedPayloadFormat(DecodeError):
    """No recognized payload shape was found in the input."""


class MalformedHex(DecodeError):
    """Hex string has odd length or contains non-hex digits."""


class PayloadTooShort(DecodeError):
    """Resolved payload is shorter than the fixed layout."""

    def __init__(self, length: int, expected: int):
        super().__init__(
            f"Payload too short. Expected {expected} bytes, got {length}"
        )
        self.length = length
        self.expected = expected


class UnknownDeviceIdentity(DecodeError):
    """Device EUI could not be resolved (strict identity policy)."""


class EmbeddedJsonParseFailure(DecodeError):
    """Payload looked like a tunnelled JSON frame but did not parse.

    Only raised internally by the normalizer, which recovers by treating the
    payload as raw bytes.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ConfigError(ValueError):
    """Invalid decoder configuration."""
