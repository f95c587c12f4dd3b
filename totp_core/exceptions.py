"""Error types raised inside the core and translated at its boundaries."""


class TotpDeskError(ValueError):
    """Base class for every expected failure in totp_core."""


class InvalidSecret(TotpDeskError):
    """Secret is not valid Base32 or decodes to zero bytes."""


class InvalidUri(TotpDeskError):
    """URI has the wrong scheme, type segment, or is missing the secret."""


class UnsupportedOtpType(InvalidUri):
    """Well-formed entry of a kind we do not generate (HOTP, 7 digits...)."""


class MalformedPayload(TotpDeskError):
    """Truncated or invalid varint / length field in a migration payload."""


class CryptoFailure(TotpDeskError):
    """Authenticated decryption failed or the stored key/blob is unreadable."""
