"""
settings_loader.py

Configuration management for the clustering toolkit.
Loads and validates settings from YAML configuration with environment variable substitution.

Features:
- YAML configuration loading with validation
- Environment variable substitution (${VAR_NAME} syntax)
- Cached settings for applications that want one global configuration
- Type-safe configuration with Pydantic models
- Default values when no settings file exists

Library functions never read the cached settings; they take explicit
parameters. ClusteringEngine and ClusterValidator accept a Settings object.
"""

import os
import re
import yaml
import logging
from typing import Any, List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator
from pathlib import Path

from clustkit.schemas.data_models import DistanceMetric, InitMethod, LinkageMethod, ValidationMeasure
from clustkit.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class DistanceSettings(BaseModel):
    """Distance engine defaults."""
    metric: str = Field(default="euclidean", description="Default dissimilarity metric")
    standardize: bool = Field(default=False, description="Z-score features before computing distances")

    @field_validator("metric")
    @classmethod
    def validate_metric(cls, v: str) -> str:
        """Validate metric name."""
        allowed = [m.value for m in DistanceMetric]
        if v.lower() not in allowed:
            raise ValueError(f"Metric must be one of {allowed}")
        return v.lower()


class KMeansSettings(BaseModel):
    """K-Means clustering algorithm settings."""
    nstart: int = Field(default=1, ge=1, description="Number of random restarts")
    max_iter: int = Field(default=10, ge=1, description="Maximum iterations per restart")
    init: str = Field(default="random", description="Initial centres (random or kmeans++)")

    @field_validator("init")
    @classmethod
    def validate_init(cls, v: str) -> str:
        """Validate init method."""
        allowed = [m.value for m in InitMethod]
        if v not in allowed:
            raise ValueError(f"Init must be one of {allowed}")
        return v


class PAMSettings(BaseModel):
    """PAM (k-medoids) settings."""
    max_iter: int = Field(default=100, ge=0, description="Maximum number of swaps")


class CLARASettings(BaseModel):
    """CLARA settings."""
    samples: int = Field(default=5, ge=1, description="Number of samples drawn")
    sample_size: Optional[int] = Field(default=None, ge=1, description="Sample size (null = 40 + 2k)")


class HierarchicalSettings(BaseModel):
    """Agglomerative clustering settings."""
    linkage: str = Field(default="complete", description="Linkage method")
    metric: str = Field(default="euclidean", description="Dissimilarity metric")

    @field_validator("linkage")
    @classmethod
    def validate_linkage(cls, v: str) -> str:
        """Validate linkage name."""
        allowed = [m.value for m in LinkageMethod]
        if v.lower() not in allowed:
            raise ValueError(f"Linkage must be one of {allowed}")
        return v.lower()


class ValidationSettings(BaseModel):
    """Cluster validation settings."""
    gap_references: int = Field(default=50, ge=1, description="Reference sets for the gap statistic")
    hopkins_sample_fraction: float = Field(default=0.1, gt=0.0, le=1.0, description="Fraction of observations sampled by Hopkins")
    neighbour_size: int = Field(default=10, ge=1, description="Neighbours considered by connectivity")
    min_k: int = Field(default=2, ge=1, description="Smallest candidate k")
    max_k: int = Field(default=10, ge=1, description="Largest candidate k")
    measures: List[str] = Field(
        default_factory=lambda: ["connectivity", "dunn", "silhouette"],
        description="Measures computed by the validator by default",
    )

    @field_validator("measures")
    @classmethod
    def validate_measures(cls, v: List[str]) -> List[str]:
        """Validate measure names."""
        allowed = [m.value for m in ValidationMeasure]
        unknown = [m for m in v if m.lower() not in allowed]
        if unknown:
            raise ValueError(f"Unknown measures {unknown}; must be among {allowed}")
        return [m.lower() for m in v]


class FileLoggingSettings(BaseModel):
    """File logging settings."""
    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(default="logs/clustkit.log", description="Log file path")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Log format (json or console)")
    file: FileLoggingSettings = Field(default_factory=FileLoggingSettings)

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ["json", "console"]:
            raise ValueError("Format must be 'json' or 'console'")
        return v


class Settings(BaseModel):
    """Root configuration model."""
    distance: DistanceSettings = Field(default_factory=DistanceSettings)
    kmeans: KMeansSettings = Field(default_factory=KMeansSettings)
    pam: PAMSettings = Field(default_factory=PAMSettings)
    clara: CLARASettings = Field(default_factory=CLARASettings)
    hierarchical: HierarchicalSettings = Field(default_factory=HierarchicalSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Configuration Manager (Singleton)
# =============================================================================

class ConfigManager:
    """
    Singleton configuration manager that loads and caches settings.

    Features:
    - Loads YAML configuration from file
    - Substitutes environment variables using ${VAR_NAME} syntax
    - Validates configuration using Pydantic models
    - Falls back to defaults when no file is found
    """

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to configuration file. If None, searches the
                default locations and uses defaults when none exists.

        Returns:
            Settings object with validated configuration

        Raises:
            ConfigurationError: If an explicit path is missing, or the file
                is not valid YAML or fails validation
        """
        if config_path is None:
            possible_paths = [
                Path("config/settings.yaml"),
                Path(os.getenv("CLUSTKIT_CONFIG_PATH", "config/settings.yaml")),
            ]

            config_path_obj = None
            for path in possible_paths:
                if path.exists():
                    config_path_obj = path
                    break

            if config_path_obj is None:
                logger.info("No configuration file found, using defaults")
                cls._settings = Settings()
                return cls._settings
        else:
            config_path_obj = Path(config_path)
            if not config_path_obj.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    details={"path": str(config_path)},
                )

        logger.info(f"Loading configuration from: {config_path_obj}")

        try:
            with open(config_path_obj, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to load YAML configuration: {e}")
            raise ConfigurationError(f"Invalid YAML configuration: {e}")

        config_dict = cls._substitute_env_vars(raw_config)

        try:
            cls._settings = Settings(**config_dict)
            logger.info("Configuration loaded and validated successfully")
            return cls._settings
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def get_settings(cls) -> Settings:
        """
        Get cached settings. Loads from default path if not already loaded.

        Returns:
            Settings object
        """
        if cls._settings is None:
            cls.load_config()
        return cls._settings

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.

        Args:
            config: Configuration dictionary or value

        Returns:
            Configuration with substituted values
        """
        if isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            # Match ${VAR_NAME} or ${VAR_NAME:default}
            pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

            def replace_var(match):
                var_name = match.group(1)
                default_value = match.group(2) if match.group(2) is not None else ""
                return os.getenv(var_name, default_value)

            return re.sub(pattern, replace_var, config)
        else:
            return config

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Reload configuration from file.

        Args:
            config_path: Path to configuration file

        Returns:
            Reloaded Settings object
        """
        cls._settings = None
        return cls.load_config(config_path)


# =============================================================================
# Convenience Functions
# =============================================================================

def get_settings() -> Settings:
    """
    Get application settings (convenience function).

    Returns:
        Settings object
    """
    return ConfigManager.get_settings()


def configure_logging_from_settings(settings: Optional[Settings] = None) -> None:
    """Apply the logging section of the settings."""
    from clustkit.utils.advanced_logging import configure_logging

    settings = settings or get_settings()
    configure_logging(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        log_file=settings.logging.file.path if settings.logging.file.enabled else None,
    )
