# pf_verifier/errors.py


class VerificationError(Exception):
    """Base class for everything the verifier raises on bad input or a broken environment."""


class FormatError(VerificationError, ValueError):
    """Malformed input: bad hex, bad base58, wrong key length, unsupported nonce type."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class DomainError(VerificationError, ValueError):
    """Well-formed input that no game round could have produced (or that never terminates)."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class CryptoUnavailableError(VerificationError, EnvironmentError):
    """hashlib does not provide SHA-256 in this interpreter."""
