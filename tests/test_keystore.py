"""
Tests for the in-memory ephemeral key store.
"""
import unittest

from mtls.errors import KeyStoreError, UnrecoverableKeyError
from mtls.models.material import Certificate, KeyAlgorithm, PrivateKey
from mtls.security.keystore import EphemeralKeyStore

from material_factory import create_ca, create_cert


class TestEphemeralKeyStore(unittest.TestCase):
    """Test cases for EphemeralKeyStore."""
    
    @classmethod
    def setUpClass(cls):
        ca_cert, ca_key = create_ca()
        leaf_cert, leaf_key = create_cert(ca_cert, ca_key, "leaf")
        cls.ca = Certificate(ca_cert)
        cls.leaf = Certificate(leaf_cert)
        cls.key = PrivateKey(KeyAlgorithm.RSA, leaf_key)
    
    def setUp(self):
        self.store = EphemeralKeyStore()
    
    def test_new_store_is_empty(self):
        self.assertEqual(len(self.store), 0)
        self.assertEqual(self.store.aliases(), [])
    
    def test_key_entry_round_trip(self):
        """Test storing and reading back a key entry."""
        self.store.set_key_entry("identity", self.key, "placeholder", [self.leaf, self.ca])
        
        self.assertIn("identity", self.store)
        self.assertTrue(self.store.is_key_entry("identity"))
        self.assertFalse(self.store.is_certificate_entry("identity"))
        self.assertIs(self.store.get_key("identity", "placeholder"), self.key)
        self.assertEqual(self.store.get_certificate_chain("identity"), (self.leaf, self.ca))
        self.assertEqual(self.store.get_certificate("identity"), self.leaf)
    
    def test_wrong_passphrase(self):
        """Test that a wrong passphrase raises UnrecoverableKeyError."""
        self.store.set_key_entry("identity", self.key, "placeholder", [self.leaf])
        
        with self.assertRaises(UnrecoverableKeyError):
            self.store.get_key("identity", "other")
    
    def test_key_entry_requires_chain(self):
        """Test that a key entry without certificates is rejected."""
        with self.assertRaises(KeyStoreError):
            self.store.set_key_entry("identity", self.key, "placeholder", [])
        self.assertEqual(len(self.store), 0)
    
    def test_alias_collision(self):
        """Test that aliases cannot be reused."""
        self.store.set_certificate_entry("anchor", self.ca)
        
        with self.assertRaises(KeyStoreError):
            self.store.set_certificate_entry("anchor", self.leaf)
        with self.assertRaises(KeyStoreError):
            self.store.set_key_entry("anchor", self.key, "placeholder", [self.leaf])
    
    def test_empty_alias(self):
        with self.assertRaises(KeyStoreError):
            self.store.set_certificate_entry("", self.ca)
    
    def test_certificate_entries_keep_insertion_order(self):
        """Test alias ordering and lookups of certificate entries."""
        self.store.set_certificate_entry("b", self.leaf)
        self.store.set_certificate_entry("a", self.ca)
        
        self.assertEqual(self.store.aliases(), ["b", "a"])
        self.assertTrue(self.store.is_certificate_entry("a"))
        self.assertEqual(self.store.get_certificate("a"), self.ca)
        self.assertIsNone(self.store.get_key("a", "placeholder"))
        self.assertIsNone(self.store.get_certificate_chain("a"))
    
    def test_missing_alias(self):
        self.assertIsNone(self.store.get_certificate("missing"))
        self.assertIsNone(self.store.get_key("missing", "placeholder"))
        self.assertFalse(self.store.is_key_entry("missing"))
    
    def test_repr_hides_passphrase(self):
        self.store.set_key_entry("identity", self.key, "placeholder", [self.leaf])
        self.assertNotIn("placeholder", repr(self.store))


if __name__ == '__main__':
    unittest.main()
