"""Configuration management for the parts price finder."""

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

LIVE_TTL_SECONDS = 12 * 60 * 60
ESTIMATE_TTL_SECONDS = 7 * 24 * 60 * 60


class FinderConfig(BaseModel):
    """Parts finder configuration."""

    # eBay Finding API credentials; an empty app id means "not configured"
    ebay_app_id: str = Field(default="", description="eBay application id (SECURITY-APPNAME)")
    ebay_affiliate_id: str = Field(default="", description="eBay Partner Network tracking id")
    ebay_campaign_id: str = Field(default="", description="eBay Partner Network campaign id")
    ebay_endpoint: str = Field(
        default="https://svcs.ebay.com/services/search/FindingService/v1",
        description="Finding API endpoint",
    )
    ebay_category_id: str = Field(default="6030", description="Parts & Accessories category")
    ebay_entries_per_page: int = Field(default=20, description="Listings requested per query")

    # Optional structured catalog API
    rockauto_api_enabled: bool = Field(default=False, description="Query the catalog API for live prices")
    rockauto_api_url: str = Field(
        default="https://rock-auto-api.vercel.app",
        description="Catalog API base URL",
    )

    # Timeouts
    connect_timeout: float = Field(default=3.0, description="HTTP connect timeout in seconds")
    marketplace_timeout: float = Field(default=10.0, description="Per-call marketplace timeout in seconds")
    batch_timeout: float = Field(default=5.0, description="Wall-clock budget for a whole batch search")

    # Upstream guards
    max_requests_per_second: float = Field(default=5.0, description="Marketplace requests per second")
    rate_limit_tokens: int = Field(default=5, description="Token bucket size")
    rate_limit_max_wait: float = Field(default=2.0, description="Longest wait for a token before giving up")
    circuit_breaker_failure_threshold: int = Field(default=3, description="Failures before opening circuit")
    circuit_breaker_cooldown: float = Field(default=30.0, description="Cooldown period in seconds")

    # Batching and result shaping
    batch_size: int = Field(default=3, description="Parts searched concurrently per group")
    max_listings_shown: int = Field(default=5, description="Individual listings surfaced per part")
    default_estimated_price: float = Field(default=150.0, description="Estimate when no table entry matches")

    # Cache TTLs
    live_ttl_seconds: float = Field(default=LIVE_TTL_SECONDS, description="TTL when live prices were found")
    estimate_ttl_seconds: float = Field(default=ESTIMATE_TTL_SECONDS, description="TTL for estimate-only results")

    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('batch_size', 'max_listings_shown', 'ebay_entries_per_page', 'rate_limit_tokens')
    @classmethod
    def validate_positive_int(cls, v: int, info) -> int:
        """Validate counts are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got: {v}")
        return v

    @field_validator(
        'connect_timeout', 'marketplace_timeout', 'batch_timeout',
        'max_requests_per_second', 'live_ttl_seconds', 'estimate_ttl_seconds',
    )
    @classmethod
    def validate_positive_float(cls, v: float, info) -> float:
        """Validate durations and rates are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got: {v}")
        return v

    @field_validator('rockauto_api_url', 'ebay_endpoint')
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f"URL must start with http:// or https://, got: {v}")
        return v.rstrip('/')

    @property
    def ebay_configured(self) -> bool:
        return bool(self.ebay_app_id)

    @classmethod
    def env_overrides(cls) -> Dict[str, object]:
        """Collect overrides from environment variables."""
        env_mappings = {
            "EBAY_APP_ID": "ebay_app_id",
            "EBAY_AFFILIATE_ID": "ebay_affiliate_id",
            "EBAY_CAMPAIGN_ID": "ebay_campaign_id",
            "ROCKAUTO_API_URL": "rockauto_api_url",
            "PARTS_FINDER_ROCKAUTO_API": "rockauto_api_enabled",
            "PARTS_FINDER_BATCH_SIZE": "batch_size",
            "PARTS_FINDER_BATCH_TIMEOUT": "batch_timeout",
            "PARTS_FINDER_MARKETPLACE_TIMEOUT": "marketplace_timeout",
            "PARTS_FINDER_LOG_LEVEL": "log_level",
        }

        overrides = {}
        for env_var, field_name in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                # Pydantic coerces "3", "2.5", "true" to the field type
                overrides[field_name] = value
        return overrides

    @classmethod
    def from_env(cls) -> "FinderConfig":
        """Create configuration from defaults plus environment variables."""
        return cls(**cls.env_overrides())


class ConfigManager:
    """Loads configuration with override precedence CLI > ENV > YAML > defaults."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path("config/config.yaml")
        self._config: Optional[FinderConfig] = None

    def load_config(self, cli_overrides: Optional[Dict] = None) -> FinderConfig:
        """
        Load configuration, merging each tier over the one below it.

        Args:
            cli_overrides: Optional dictionary of CLI flag overrides; None values are ignored

        Returns:
            Fully merged FinderConfig instance

        Raises:
            ValueError: If configuration validation fails
        """
        config_dict = {}

        if self.config_file.exists():
            with open(self.config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    config_dict.update(yaml_config)

        config_dict.update(FinderConfig.env_overrides())

        if cli_overrides:
            config_dict.update({k: v for k, v in cli_overrides.items() if v is not None})

        self._config = FinderConfig(**config_dict)
        return self._config

    @property
    def config(self) -> FinderConfig:
        """Get the loaded configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config
