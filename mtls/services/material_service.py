"""
Service that reads configured PEM files and builds mutual-TLS contexts.
"""
import os
import logging
import threading
from typing import Optional, Tuple

from ..models.config import Config
from ..models.material import Certificate, PrivateKey
from ..security.mutual_tls import MutualTLS, ProtocolContext
from ..security.pem import parse_certificates, parse_private_key
from .config_service import ConfigService
from .logging_service import LoggingService, PerformanceMonitor


class MaterialService:
    """Loads identity and trust material from PEM files and hands out contexts."""
    
    def __init__(self, config: Config, logging_service: Optional[LoggingService] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.logging_service = logging_service
        if logging_service is not None:
            self.performance_monitor = logging_service.performance_monitor
        else:
            self.performance_monitor = PerformanceMonitor()
        self._mutual_tls: Optional[MutualTLS] = None
        self._lock = threading.Lock()
    
    @classmethod
    def from_config_file(cls, config_path: str) -> "MaterialService":
        """
        Load and validate an INI file, start logging as it directs, and
        return a service over it.
        
        Raises:
            FileNotFoundError: If the configuration file does not exist
            ValueError: If the configuration has validation errors
        """
        config = ConfigService().load_config(config_path)
        return cls(config, LoggingService(config))
    
    def close(self):
        if self.logging_service is not None:
            self.logging_service.close()
    
    def _read_pem_file(self, file_path: str) -> str:
        """Read PEM text from file."""
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"PEM file not found: {file_path}")
        
        with open(file_path, 'r', encoding='ascii') as f:
            content = f.read()
        
        if not content.strip():
            raise ValueError(f"PEM file is empty: {file_path}")
        
        return content
    
    def load_certificate_chain(self) -> Tuple[Certificate, ...]:
        """Load the identity chain, leaf first. Empty when no path is configured."""
        if not self.config.certificate_chain_path:
            return ()
        chain = parse_certificates(self._read_pem_file(self.config.certificate_chain_path))
        self.logger.info(
            f"Loaded certificate chain of {len(chain)} from {self.config.certificate_chain_path}",
            extra={'details': {'subject': chain[0].subject, 'chain_length': len(chain)}}
        )
        return chain
    
    def load_private_key(self) -> Optional[PrivateKey]:
        if not self.config.private_key_path:
            return None
        key = parse_private_key(
            self._read_pem_file(self.config.private_key_path),
            self.config.private_key_algorithm
        )
        self.logger.info(
            f"Loaded {key.algorithm.value} private key from {self.config.private_key_path}",
            extra={'details': {'algorithm': key.algorithm.value}}
        )
        return key
    
    def load_trust_anchors(self) -> Tuple[Certificate, ...]:
        """Load every anchor from every configured bundle, in configuration order."""
        anchors = []
        for path in self.config.trust_anchor_paths:
            bundle = parse_certificates(self._read_pem_file(path))
            self.logger.info(f"Loaded {len(bundle)} trust anchor(s) from {path}")
            anchors.extend(bundle)
        return tuple(anchors)
    
    def get_mutual_tls(self) -> MutualTLS:
        """Build the context factory on first use and reuse it afterwards."""
        with self._lock:
            if self._mutual_tls is None:
                with self.performance_monitor.measure_operation("load_material"):
                    self._mutual_tls = MutualTLS(
                        self.load_certificate_chain(),
                        self.load_private_key(),
                        self.load_trust_anchors(),
                        random_strength=self.config.drbg_strength,
                        reseed_interval=self.config.drbg_reseed_interval
                    )
            return self._mutual_tls
    
    def create_context(self, protocol: Optional[str] = None) -> ProtocolContext:
        """
        Create a fresh TLS context.
        
        Args:
            protocol: Protocol name; defaults to the configured protocol
        """
        protocol = protocol or self.config.protocol
        mutual_tls = self.get_mutual_tls()
        with self.performance_monitor.measure_operation("create_context", {'protocol': protocol}):
            return mutual_tls.context(protocol)
