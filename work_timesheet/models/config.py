"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_PRECACHE = ["/", "/index.html", "/404.html", "/manifest.json", "/favicon.ico"]


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Durable storage
    data_dir: str
    key_prefix: str = "workTimesheet_"
    quota_kb: int = 5120

    # Save behaviour
    max_retries: int = 3
    retry_base_delay: float = 1.0
    save_debounce: float = 0.5
    cleanup_threshold: int = 10
    cleanup_batch: int = 5

    # Offline cache gateway
    cache_name: str = "work-timesheet-v1.2"
    static_cache_name: str = "static-v1.1"
    upstream_url: str = "http://127.0.0.1:8000"
    gateway_host: str = "127.0.0.1"
    gateway_port: int = 8080
    precache: list[str] = Field(default_factory=lambda: list(DEFAULT_PRECACHE))
    fallback_document: str = "/index.html"

    # Logging
    json_logs: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @property
    def primary_key(self) -> str:
        return f"{self.key_prefix}data"

    @property
    def backup_key(self) -> str:
        return f"{self.key_prefix}backup"

    @field_validator("key_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if not v:
            raise ValueError("Key prefix cannot be empty.")
        return v

    @field_validator("max_retries", "cleanup_threshold", "cleanup_batch")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value must be zero or greater.")
        return v

    @field_validator("retry_base_delay", "save_debounce")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0 or v > 60:
            raise ValueError("Delays must be between 0 and 60 seconds.")
        return v

    @field_validator("gateway_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if v < 1 or v > 65535:
            raise ValueError("Gateway port must be between 1 and 65535.")
        return v

    @field_validator("upstream_url")
    @classmethod
    def validate_upstream(cls, v: str) -> str:
        """Ensures the upstream is an absolute http(s) origin."""
        parts = urlsplit(v)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Upstream URL must be an http(s) URL, got '{v}'.")
        return v.rstrip("/")

    @field_validator("precache")
    @classmethod
    def validate_precache(cls, v: list[str]) -> list[str]:
        for path in v:
            if not path.startswith("/"):
                raise ValueError(f"Precache paths must be root-relative: '{path}'.")
        return v

    @model_validator(mode="after")
    def validate_cache_names(self) -> "AppConfig":
        """The main and static buckets must be distinct to survive activation."""
        if self.cache_name == self.static_cache_name:
            raise ValueError("cache_name and static_cache_name must differ.")
        if self.fallback_document not in self.precache:
            raise ValueError(
                f"Fallback document '{self.fallback_document}' must be precached."
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
