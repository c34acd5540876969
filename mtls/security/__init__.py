"""
Security package for in-memory mutual-TLS context preparation.
"""
from .pem import (
    parse_certificate, parse_certificates, parse_private_key,
    parse_rsa_private_key, parse_ec_private_key
)
from .keystore import EphemeralKeyStore
from .key_material import KeyManager, build_key_managers
from .trust_material import TrustManager, build_trust_managers
from .secure_random import HmacDrbg, secure_random
from .mutual_tls import MutualTLS, ProtocolContext, resolve_protocol

__all__ = [
    'parse_certificate',
    'parse_certificates',
    'parse_private_key',
    'parse_rsa_private_key',
    'parse_ec_private_key',
    'EphemeralKeyStore',
    'KeyManager',
    'build_key_managers',
    'TrustManager',
    'build_trust_managers',
    'HmacDrbg',
    'secure_random',
    'MutualTLS',
    'ProtocolContext',
    'resolve_protocol'
]
