"""
In-memory key store for ephemeral identity and trust material.

Stores are plain alias maps. They are never serialised and are meant to live
only for the duration of a single context build.
"""
import hmac
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..errors import KeyStoreError, UnrecoverableKeyError
from ..models.material import Certificate, PrivateKey


@dataclass(frozen=True)
class KeyEntry:
    """A private key with its certificate chain, guarded by a passphrase."""
    private_key: PrivateKey
    passphrase: str
    certificate_chain: Tuple[Certificate, ...]

    def __repr__(self):
        return f"KeyEntry(algorithm={self.private_key.algorithm.value}, chain_length={len(self.certificate_chain)})"


@dataclass(frozen=True)
class CertificateEntry:
    """A trusted certificate."""
    certificate: Certificate


Entry = Union[KeyEntry, CertificateEntry]


class EphemeralKeyStore:
    """Alias-addressed store of key entries and trusted certificate entries."""

    def __init__(self):
        self._entries: Dict[str, Entry] = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, alias):
        return alias in self._entries

    def __repr__(self):
        return f"EphemeralKeyStore(aliases={self.aliases()!r})"

    def aliases(self) -> List[str]:
        """Aliases in insertion order."""
        return list(self._entries)

    def _claim(self, alias: str):
        if not alias:
            raise KeyStoreError("Alias must be a non-empty string")
        if alias in self._entries:
            raise KeyStoreError(f"Alias already in use: {alias}")

    def set_key_entry(self, alias: str, private_key: PrivateKey, passphrase: str,
                      certificate_chain: Sequence[Certificate]):
        """
        Store a private key and its certificate chain under a new alias.

        Raises:
            KeyStoreError: If the alias is empty or taken, or the chain is empty
        """
        self._claim(alias)
        chain = tuple(certificate_chain)
        if not chain:
            raise KeyStoreError(f"Key entry {alias} requires a non-empty certificate chain")
        self._entries[alias] = KeyEntry(private_key, passphrase, chain)

    def set_certificate_entry(self, alias: str, certificate: Certificate):
        """
        Store a trusted certificate under a new alias.

        Raises:
            KeyStoreError: If the alias is empty or taken
        """
        self._claim(alias)
        self._entries[alias] = CertificateEntry(certificate)

    def is_key_entry(self, alias: str) -> bool:
        return isinstance(self._entries.get(alias), KeyEntry)

    def is_certificate_entry(self, alias: str) -> bool:
        return isinstance(self._entries.get(alias), CertificateEntry)

    def get_key(self, alias: str, passphrase: str) -> Optional[PrivateKey]:
        """
        Read back a private key.

        Returns:
            The key, or None if the alias holds no key entry

        Raises:
            UnrecoverableKeyError: If the passphrase does not match
        """
        entry = self._entries.get(alias)
        if not isinstance(entry, KeyEntry):
            return None
        if not hmac.compare_digest(entry.passphrase.encode("utf-8"), passphrase.encode("utf-8")):
            raise UnrecoverableKeyError(f"Wrong passphrase for key entry {alias}")
        return entry.private_key

    def get_certificate_chain(self, alias: str) -> Optional[Tuple[Certificate, ...]]:
        entry = self._entries.get(alias)
        if isinstance(entry, KeyEntry):
            return entry.certificate_chain
        return None

    def get_certificate(self, alias: str) -> Optional[Certificate]:
        """The trusted certificate, or the leaf certificate of a key entry."""
        entry = self._entries.get(alias)
        if isinstance(entry, CertificateEntry):
            return entry.certificate
        if isinstance(entry, KeyEntry):
            return entry.certificate_chain[0]
        return None
