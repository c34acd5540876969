"""
Configuration data models for mutual-TLS context preparation.
"""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Config:
    """Main configuration class containing all settings."""
    
    # TLS settings
    protocol: str = "TLSv1.3"
    certificate_chain_path: str = "certs/identity.crt"
    private_key_path: str = "certs/identity.key"
    private_key_algorithm: Optional[str] = None
    trust_anchor_paths: List[str] = field(default_factory=lambda: ["certs/ca.crt"])
    
    # Random source settings
    drbg_strength: int = 256
    drbg_reseed_interval: int = 1024
    
    # Application settings
    log_level: str = "INFO"
    log_file_path: str = "logs/mtls.log"
    
    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_types()
    
    def _validate_types(self):
        """Ensure all configuration values have correct types."""
        if not isinstance(self.protocol, str) or not self.protocol:
            raise ValueError("protocol must be a non-empty string")
        
        if not isinstance(self.trust_anchor_paths, list):
            raise ValueError("trust_anchor_paths must be a list of paths")
        
        if not isinstance(self.drbg_strength, int) or self.drbg_strength not in (112, 128, 192, 256):
            raise ValueError("drbg_strength must be one of: 112, 128, 192, 256")
        
        if not isinstance(self.drbg_reseed_interval, int) or self.drbg_reseed_interval <= 0:
            raise ValueError("drbg_reseed_interval must be a positive integer")
        
        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    severity: str = "error"  # error, warning
    
    def __str__(self):
        return f"{self.severity.upper()}: {self.field} - {self.message}"


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[ConfigValidationError]
    warnings: List[ConfigValidationError]
    
    def __post_init__(self):
        """Separate errors and warnings."""
        all_issues = self.errors + self.warnings
        self.errors = [e for e in all_issues if e.severity == "error"]
        self.warnings = [e for e in all_issues if e.severity == "warning"]
    
    def has_errors(self) -> bool:
        """Check if there are any validation errors."""
        return len(self.errors) > 0
    
    def has_warnings(self) -> bool:
        """Check if there are any validation warnings."""
        return len(self.warnings) > 0
    
    def get_error_summary(self) -> str:
        """Get a formatted summary of all errors and warnings."""
        lines = []
        
        if self.errors:
            lines.append("Configuration Errors:")
            for error in self.errors:
                lines.append(f"  - {error}")
        
        if self.warnings:
            lines.append("Configuration Warnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")
        
        return "\n".join(lines) if lines else "Configuration is valid"
