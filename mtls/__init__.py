"""
Prepare in-memory mutual-TLS contexts from PEM certificates and PKCS#8 keys.
"""
from .errors import (
    MutualTLSError, DecodeError, UnsupportedAlgorithmError, UnsupportedProtocolError,
    ConfigurationError, KeyStoreError, UnrecoverableKeyError, InvariantViolation
)
from .models import Certificate, PrivateKey, KeyAlgorithm, MutualTLSConfig
from .security import (
    MutualTLS, ProtocolContext, parse_certificate, parse_certificates, parse_private_key
)

__version__ = "1.0.0"

__all__ = [
    'MutualTLSError',
    'DecodeError',
    'UnsupportedAlgorithmError',
    'UnsupportedProtocolError',
    'ConfigurationError',
    'KeyStoreError',
    'UnrecoverableKeyError',
    'InvariantViolation',
    'Certificate',
    'PrivateKey',
    'KeyAlgorithm',
    'MutualTLSConfig',
    'MutualTLS',
    'ProtocolContext',
    'parse_certificate',
    'parse_certificates',
    'parse_private_key'
]
