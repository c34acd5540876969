"""
Hardened random source for TLS contexts.

HMAC_DRBG as specified in NIST SP 800-90A, with prediction resistance,
automatic reseeding and a personalization string that separates this
generator's output from other consumers of the same entropy source.
"""
import logging
import os
import threading
from typing import Callable, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, hmac

from ..errors import UnsupportedAlgorithmError

logger = logging.getLogger(__name__)

HMAC_DRBG = "HMAC_DRBG"
DEFAULT_STRENGTH = 256
SUPPORTED_STRENGTHS = (112, 128, 192, 256)
DEFAULT_RESEED_INTERVAL = 1024
MAX_BYTES_PER_REQUEST = 1 << 16
DEFAULT_PERSONALIZATION = b"mtls.security.mutual_tls.MutualTLS"

EntropySource = Callable[[int], bytes]


class HmacDrbg:
    """
    HMAC_DRBG over SHA-256.

    With prediction resistance enabled, fresh entropy is mixed in before every
    request, so a compromise of the internal state does not reveal future
    output. The generator also reseeds once `reseed_interval` requests have
    been served. Instances are safe to share between threads.
    """

    def __init__(self, strength: int = DEFAULT_STRENGTH, personalization: bytes = DEFAULT_PERSONALIZATION,
                 reseed_interval: int = DEFAULT_RESEED_INTERVAL, prediction_resistance: bool = True,
                 entropy_source: EntropySource = os.urandom):
        if strength not in SUPPORTED_STRENGTHS:
            raise UnsupportedAlgorithmError(f"{HMAC_DRBG} with SHA-256 does not offer {strength}-bit strength")
        if reseed_interval <= 0:
            raise ValueError("reseed_interval must be a positive integer")

        self.strength = strength
        self.reseed_interval = reseed_interval
        self.prediction_resistance = prediction_resistance
        self._entropy_source = entropy_source
        self._lock = threading.Lock()

        self._algorithm = hashes.SHA256()
        self._key = b"\x00" * self._algorithm.digest_size
        self._value = b"\x01" * self._algorithm.digest_size
        self._reseed_counter = 1

        seed = self._entropy(strength // 8) + self._entropy(strength // 16) + bytes(personalization)
        self._update(seed)

    def __repr__(self):
        return f"HmacDrbg(strength={self.strength}, prediction_resistance={self.prediction_resistance})"

    @property
    def algorithm(self) -> str:
        return HMAC_DRBG

    def _entropy(self, length: int) -> bytes:
        entropy = self._entropy_source(length)
        if len(entropy) < length:
            raise RuntimeError(f"Entropy source returned {len(entropy)} bytes, {length} requested")
        return entropy

    def _hmac(self, key: bytes, data: bytes) -> bytes:
        mac = hmac.HMAC(key, self._algorithm)
        mac.update(data)
        return mac.finalize()

    def _update(self, provided_data: bytes = b""):
        self._key = self._hmac(self._key, self._value + b"\x00" + provided_data)
        self._value = self._hmac(self._key, self._value)
        if provided_data:
            self._key = self._hmac(self._key, self._value + b"\x01" + provided_data)
            self._value = self._hmac(self._key, self._value)

    def _reseed(self, additional_input: bytes = b""):
        self._update(self._entropy(self.strength // 8) + additional_input)
        self._reseed_counter = 1

    def reseed(self, additional_input: bytes = b""):
        """Mix fresh entropy into the generator state."""
        with self._lock:
            self._reseed(additional_input)

    def generate(self, length: int, additional_input: bytes = b"") -> bytes:
        """
        Produce `length` pseudorandom bytes.

        Raises:
            ValueError: If more than 65536 bytes are requested at once
        """
        if length < 0:
            raise ValueError("length must not be negative")
        if length > MAX_BYTES_PER_REQUEST:
            raise ValueError(f"At most {MAX_BYTES_PER_REQUEST} bytes may be requested at once")

        with self._lock:
            if self.prediction_resistance or self._reseed_counter > self.reseed_interval:
                self._reseed(additional_input)
                additional_input = b""
            elif additional_input:
                self._update(additional_input)

            output = b""
            while len(output) < length:
                self._value = self._hmac(self._key, self._value)
                output += self._value

            self._update(additional_input)
            self._reseed_counter += 1
            return output[:length]

    def random_bytes(self, length: int) -> bytes:
        """Produce any number of pseudorandom bytes."""
        chunks = []
        while length > 0:
            size = min(length, MAX_BYTES_PER_REQUEST)
            chunks.append(self.generate(size))
            length -= size
        return b"".join(chunks)


def secure_random(algorithm: str = HMAC_DRBG, strength: int = DEFAULT_STRENGTH,
                  personalization: Optional[bytes] = None,
                  reseed_interval: int = DEFAULT_RESEED_INTERVAL) -> HmacDrbg:
    """
    Provision a prediction-resistant, reseeding, personalized random source.

    Raises:
        UnsupportedAlgorithmError: If the mechanism or strength is unavailable
    """
    if algorithm.upper() != HMAC_DRBG:
        raise UnsupportedAlgorithmError(f"Unsupported random generator: {algorithm}")

    try:
        drbg = HmacDrbg(
            strength=strength,
            personalization=DEFAULT_PERSONALIZATION if personalization is None else personalization,
            reseed_interval=reseed_interval,
            prediction_resistance=True
        )
    except UnsupportedAlgorithm as e:
        raise UnsupportedAlgorithmError(f"{HMAC_DRBG} unavailable on this platform: {e}") from e

    logger.debug(f"Provisioned {drbg!r}")
    return drbg
