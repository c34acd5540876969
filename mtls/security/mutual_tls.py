"""
Mutual-TLS context builder.

Need an SSL context configured for mTLS? Start here: supply the identity
(certificate chain and private key) and the trust anchors once, then call
context() whenever a fresh, fully initialized TLS context is needed.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple, Union

from OpenSSL import SSL

from ..errors import UnsupportedProtocolError
from ..models.material import Certificate, KeyAlgorithm, MutualTLSConfig, PrivateKey
from .key_material import build_key_managers
from .pem import parse_certificates, parse_private_key
from .secure_random import DEFAULT_RESEED_INTERVAL, DEFAULT_STRENGTH, HmacDrbg, secure_random
from .trust_material import build_trust_managers

logger = logging.getLogger(__name__)

TLS_1_3 = "TLSv1.3"
DEFAULT_PROTOCOL = TLS_1_3
SESSION_ID_LENGTH = 32

# Protocol name -> (minimum, maximum) pyOpenSSL version constant names.
# None leaves that end of the range to the TLS implementation.
PROTOCOL_VERSIONS = {
    "TLS": (None, None),
    "TLSv1": ("TLS1_VERSION", "TLS1_VERSION"),
    "TLSv1.1": ("TLS1_1_VERSION", "TLS1_1_VERSION"),
    "TLSv1.2": ("TLS1_2_VERSION", "TLS1_2_VERSION"),
    "TLSv1.3": ("TLS1_3_VERSION", "TLS1_3_VERSION"),
}


def resolve_protocol(protocol: str) -> Tuple[Optional[int], Optional[int]]:
    """
    Map a protocol name to the (minimum, maximum) version range it pins.

    Raises:
        UnsupportedProtocolError: If the name is unknown or the installed
            TLS implementation does not offer that version
    """
    try:
        constant_names = PROTOCOL_VERSIONS[protocol]
    except (KeyError, TypeError):
        raise UnsupportedProtocolError(f"Unknown protocol: {protocol!r}") from None

    versions = []
    for constant_name in constant_names:
        if constant_name is None:
            versions.append(None)
            continue
        version = getattr(SSL, constant_name, None)
        if version is None:
            raise UnsupportedProtocolError(f"{protocol} is not available in this TLS implementation")
        versions.append(version)

    return versions[0], versions[1]


def _new_ssl_context(protocol: str) -> SSL.Context:
    minimum, maximum = resolve_protocol(protocol)
    try:
        ssl_context = SSL.Context(SSL.TLS_METHOD)
        if minimum is not None:
            ssl_context.set_min_proto_version(minimum)
        if maximum is not None:
            ssl_context.set_max_proto_version(maximum)
    except SSL.Error as e:
        raise UnsupportedProtocolError(f"{protocol} rejected by the TLS implementation: {e}") from e
    return ssl_context


@dataclass(frozen=True)
class ProtocolContext:
    """
    A fully initialized TLS context ready for client or server connections.

    secure_random is the hardened generator provisioned for this context. It
    seeds the session-id context and is available to callers, but it does not
    feed handshake randomness: pyOpenSSL offers no per-context RNG hook, so
    the handshake draws from OpenSSL's own DRBG.
    """
    protocol: str
    ssl_context: SSL.Context = field(repr=False)
    secure_random: HmacDrbg = field(repr=False)

    def connection(self, sock=None) -> SSL.Connection:
        return SSL.Connection(self.ssl_context, sock)

    def client_connection(self, sock=None, server_hostname: Optional[str] = None) -> SSL.Connection:
        connection = self.connection(sock)
        if server_hostname:
            connection.set_tlsext_host_name(server_hostname.encode("idna"))
        connection.set_connect_state()
        return connection

    def server_connection(self, sock=None) -> SSL.Connection:
        connection = self.connection(sock)
        connection.set_accept_state()
        return connection


class MutualTLS:
    """
    Factory for mutual-TLS contexts over an immutable configuration.

    Every context() call builds its own key store, trust store, random source
    and TLS context; nothing is shared between calls except the configuration,
    so one instance can serve any number of threads.
    """

    def __init__(self, certificate_chain: Iterable[Certificate] = (), private_key: Optional[PrivateKey] = None,
                 trusted_certificates: Iterable[Certificate] = (), *,
                 random_strength: int = DEFAULT_STRENGTH, reseed_interval: int = DEFAULT_RESEED_INTERVAL):
        """
        Prepare an mTLS context factory.

        Args:
            certificate_chain: The identity certificate followed by any
                intermediates a peer needs to reach one of its trust anchors
            private_key: The private key paired with the identity certificate
            trusted_certificates: Certificates to trust; peers must present a
                chain traceable to at least one of them
            random_strength: Security strength in bits of the random source
            reseed_interval: Requests served between automatic reseeds

        Raises:
            ConfigurationError: If the key is missing its certificate or does
                not match it
        """
        self._config = MutualTLSConfig(certificate_chain, private_key, trusted_certificates)
        self._random_strength = random_strength
        self._reseed_interval = reseed_interval
        self._personalization = f"{type(self).__module__}.{type(self).__qualname__}".encode("utf-8")

    @classmethod
    def from_config(cls, config: MutualTLSConfig, **kwargs) -> "MutualTLS":
        return cls(config.certificate_chain, config.private_key, config.trusted_certificates, **kwargs)

    @classmethod
    def from_pem(cls, certificate_chain_pem: Optional[Union[str, bytes]] = None,
                 private_key_pem: Optional[Union[str, bytes]] = None,
                 trusted_pem: Optional[Union[str, bytes]] = None,
                 algorithm: Optional[Union[str, KeyAlgorithm]] = None, **kwargs) -> "MutualTLS":
        """
        Build from PEM text: a chain bundle (leaf first), a PKCS#8 key and a
        bundle of trust anchors. Omitted parts are treated as empty.
        """
        chain = parse_certificates(certificate_chain_pem) if certificate_chain_pem else ()
        key = parse_private_key(private_key_pem, algorithm) if private_key_pem else None
        anchors = parse_certificates(trusted_pem) if trusted_pem else ()
        return cls(chain, key, anchors, **kwargs)

    @property
    def config(self) -> MutualTLSConfig:
        return self._config

    def __repr__(self):
        return (
            f"MutualTLS(chain_length={len(self._config.certificate_chain)}, "
            f"has_identity={self._config.has_identity}, "
            f"trust_anchors={len(self._config.trusted_certificates)})"
        )

    def context(self, protocol: str = DEFAULT_PROTOCOL) -> ProtocolContext:
        """
        Build a TLS context configured with this object's mTLS parameters.

        Args:
            protocol: "TLS", "TLSv1", "TLSv1.1", "TLSv1.2" or "TLSv1.3"

        Returns:
            A new ProtocolContext carrying the identity, the trust anchors and
            a hardened random source

        Raises:
            UnsupportedProtocolError: If the protocol is not supported here
            UnsupportedAlgorithmError: If the random generator is unavailable
        """
        ssl_context = _new_ssl_context(protocol)
        random = secure_random(
            strength=self._random_strength,
            personalization=self._personalization,
            reseed_interval=self._reseed_interval
        )

        for key_manager in build_key_managers(self._config.certificate_chain, self._config.private_key):
            key_manager.configure(ssl_context)
        for trust_manager in build_trust_managers(self._config.trusted_certificates):
            trust_manager.configure(ssl_context)

        ssl_context.set_session_id(random.generate(SESSION_ID_LENGTH))

        logger.debug(f"Built {protocol} context for {self!r}")
        return ProtocolContext(protocol, ssl_context, random)
