"""
Models package for mutual-TLS material and configuration.
"""

from .material import (
    Certificate, PrivateKey, KeyAlgorithm, MutualTLSConfig,
    CertificateChain, TrustAnchorSet
)
from .config import Config, ConfigValidationError, ConfigValidationResult

__all__ = [
    'Certificate',
    'PrivateKey',
    'KeyAlgorithm',
    'MutualTLSConfig',
    'CertificateChain',
    'TrustAnchorSet',
    'Config',
    'ConfigValidationError',
    'ConfigValidationResult'
]
