"""
Error taxonomy for mutual-TLS context preparation.
"""


class MutualTLSError(Exception):
    """Base class for errors surfaced to callers."""


class DecodeError(MutualTLSError, ValueError):
    """Input is not valid PEM, DER, base64 or PKCS#8 for the requested interpretation."""


class UnsupportedAlgorithmError(MutualTLSError):
    """A key or random-generator algorithm is not available on this platform."""


class UnsupportedProtocolError(MutualTLSError, ValueError):
    """A protocol name is not recognized by the installed TLS implementation."""


class ConfigurationError(MutualTLSError, ValueError):
    """Identity or trust material cannot form a usable mutual-TLS configuration."""


class KeyStoreError(MutualTLSError):
    """An ephemeral key store rejected an entry or a lookup."""


class UnrecoverableKeyError(KeyStoreError):
    """A key entry could not be read back with the given passphrase."""


class InvariantViolation(AssertionError):
    """
    Internal bug: an operation that is correct by construction failed.

    Kept outside the MutualTLSError hierarchy so that callers handling
    recoverable errors never catch it by accident.
    """
