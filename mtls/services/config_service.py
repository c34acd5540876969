"""
Configuration service for loading and validating mutual-TLS settings.
"""
import os
import configparser
from typing import Optional, Dict, Any, List
import logging

from ..errors import UnsupportedAlgorithmError, UnsupportedProtocolError
from ..models.config import Config, ConfigValidationError, ConfigValidationResult
from ..models.material import KeyAlgorithm
from ..security.mutual_tls import resolve_protocol

DEPRECATED_PROTOCOLS = ("TLSv1", "TLSv1.1")


class ConfigService:
    """Service for loading and validating configuration."""
    
    def __init__(self, config_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self._config = None
        if config_path:
            self._config = self.load_config(config_path)
    
    def get_config(self) -> Config:
        """
        Get the loaded configuration.
        
        Raises:
            ValueError: If no configuration has been loaded
        """
        if self._config is None:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config
    
    def load_config(self, config_path: str) -> Config:
        """
        Load configuration from an INI file.
        
        Args:
            config_path: Path to the configuration file
            
        Returns:
            Config object with loaded settings
            
        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid or has validation errors
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        
        config_data = self._load_config_file(config_path)
        config = self._create_config_from_data(config_data)
        
        validation_result = self.validate_config(config)
        
        if validation_result.has_errors():
            error_summary = validation_result.get_error_summary()
            raise ValueError(f"Configuration validation failed:\n{error_summary}")
        
        if validation_result.has_warnings():
            warning_summary = validation_result.get_error_summary()
            self.logger.warning(f"Configuration warnings:\n{warning_summary}")
        
        self._config = config
        return config
    
    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration data from file into a flat section.key dictionary."""
        config_parser = configparser.ConfigParser()
        
        try:
            config_parser.read(config_path)
        except configparser.Error as e:
            raise ValueError(f"Failed to parse configuration file: {e}")
        
        config_data = {}
        for section in config_parser.sections():
            for key, value in config_parser.items(section):
                config_data[f"{section}.{key}"] = value
        
        # DEFAULT items are accepted without a section prefix
        for key, value in config_parser.defaults().items():
            if key not in config_data:
                config_data[key] = value
        
        return config_data
    
    def _create_config_from_data(self, config_data: Dict[str, Any]) -> Config:
        """Create Config object from configuration data."""
        config_mapping = {
            # TLS settings
            "tls.protocol": ("protocol", str),
            "protocol": ("protocol", str),
            "tls.certificate_chain": ("certificate_chain_path", str),
            "certificate_chain_path": ("certificate_chain_path", str),
            "tls.private_key": ("private_key_path", str),
            "private_key_path": ("private_key_path", str),
            "tls.private_key_algorithm": ("private_key_algorithm", "optional"),
            "private_key_algorithm": ("private_key_algorithm", "optional"),
            "tls.trust_anchors": ("trust_anchor_paths", list),
            "trust_anchor_paths": ("trust_anchor_paths", list),
            
            # Random source settings
            "random.strength": ("drbg_strength", int),
            "drbg_strength": ("drbg_strength", int),
            "random.reseed_interval": ("drbg_reseed_interval", int),
            "drbg_reseed_interval": ("drbg_reseed_interval", int),
            
            # Application settings
            "app.log_level": ("log_level", str),
            "log_level": ("log_level", str),
            "app.log_file_path": ("log_file_path", str),
            "log_file_path": ("log_file_path", str),
        }
        
        config_kwargs = {}
        
        for config_key, raw_value in config_data.items():
            if config_key not in config_mapping:
                self.logger.debug(f"Ignoring unknown configuration key: {config_key}")
                continue
            
            field_name, field_type = config_mapping[config_key]
            try:
                if field_type == int:
                    value = int(raw_value)
                elif field_type == list:
                    value = self._parse_list(raw_value)
                elif field_type == "optional":
                    value = raw_value.strip() or None
                else:
                    value = str(raw_value).strip()
                
                config_kwargs[field_name] = value
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid value for {config_key}: {raw_value} ({e})")
        
        return Config(**config_kwargs)
    
    def _parse_list(self, value: Any) -> List[str]:
        """Parse a comma or newline separated list of paths."""
        if isinstance(value, list):
            return value
        items = str(value).replace("\n", ",").split(",")
        return [item.strip() for item in items if item.strip()]
    
    def validate_config(self, config: Config) -> ConfigValidationResult:
        """
        Validate configuration settings.
        
        Args:
            config: Configuration object to validate
            
        Returns:
            ConfigValidationResult with validation results
        """
        errors = []
        warnings = []
        
        try:
            resolve_protocol(config.protocol)
        except UnsupportedProtocolError as e:
            errors.append(ConfigValidationError("protocol", str(e)))
        else:
            if config.protocol in DEPRECATED_PROTOCOLS:
                warnings.append(ConfigValidationError(
                    "protocol",
                    f"{config.protocol} is deprecated and may be refused by peers",
                    "warning"
                ))
        
        if config.private_key_algorithm:
            try:
                KeyAlgorithm.parse(config.private_key_algorithm)
            except UnsupportedAlgorithmError as e:
                errors.append(ConfigValidationError("private_key_algorithm", str(e)))
        
        # Identity: a key needs its certificate chain
        if config.private_key_path:
            if not config.certificate_chain_path:
                errors.append(ConfigValidationError(
                    "certificate_chain_path",
                    "A certificate chain is required when a private key is configured"
                ))
            
            for field_name, path in [
                ("certificate_chain_path", config.certificate_chain_path),
                ("private_key_path", config.private_key_path)
            ]:
                if path and not os.path.exists(path):
                    errors.append(ConfigValidationError(
                        field_name,
                        f"PEM file not found: {path}"
                    ))
        else:
            warnings.append(ConfigValidationError(
                "private_key_path",
                "No private key configured; no identity will be presented to peers",
                "warning"
            ))
        
        # Trust anchors
        if not config.trust_anchor_paths:
            warnings.append(ConfigValidationError(
                "trust_anchor_paths",
                "No trust anchors configured; every peer certificate will be rejected",
                "warning"
            ))
        
        for path in config.trust_anchor_paths:
            if not os.path.exists(path):
                errors.append(ConfigValidationError(
                    "trust_anchor_paths",
                    f"PEM file not found: {path}"
                ))
        
        if config.log_file_path:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                warnings.append(ConfigValidationError(
                    "log_file_path",
                    f"Log directory does not exist: {log_dir}",
                    "warning"
                ))
        
        all_issues = errors + warnings
        return ConfigValidationResult(
            is_valid=len(errors) == 0,
            errors=all_issues,
            warnings=[]
        )
    
    def create_default_config_file(self, config_path: str) -> None:
        """
        Create a default configuration file with example settings.
        
        Args:
            config_path: Path where to create the config file
        """
        config_content = """# Mutual TLS Configuration File

[tls]
protocol = TLSv1.3
certificate_chain = certs/identity.crt
private_key = certs/identity.key
# RSA, EC, or empty to guess
private_key_algorithm =
trust_anchors = certs/ca.crt

[random]
strength = 256
reseed_interval = 1024

[app]
log_level = INFO
log_file_path = logs/mtls.log
"""
        
        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)
        
        with open(config_path, 'w') as f:
            f.write(config_content)
        
        self.logger.info(f"Created default configuration file: {config_path}")
