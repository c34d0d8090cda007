# clipfetch/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: Literal["dev", "staging", "prod"] = "dev"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    # Resolution
    max_video_size_mb: int = 500  # Results reporting a larger size are rejected
    provider_timeout_seconds: float = 15.0  # Per adapter call
    # Comma-separated substrings; a source URL must contain one of them
    platform_domain_markers: str = "tiktok.com"
    # Comma-separated adapter names. Filters the fixed priority order, never reorders it.
    enabled_providers: str = "tikwm,snaptik,tmate"
    # HEAD the media URL when the winning provider reports no size
    probe_content_length: bool = False
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Relay
    relay_timeout_seconds: float = 30.0  # Connect and per-read timeout
    relay_filename: str = "tiktok_video.mp4"
    relay_default_content_type: str = "video/mp4"
    relay_chunk_size: int = 64 * 1024

    # Frontend
    static_dir: str | None = "public"  # Served at "/" when the directory exists

    # Monitoring
    enable_metrics: bool = True

    # Feature Flags
    enable_request_logging: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"

    @property
    def is_staging(self) -> bool:
        return self.app_env == "staging"

    @property
    def max_video_size_bytes(self) -> int:
        return self.max_video_size_mb * 1024 * 1024

    @property
    def domain_markers(self) -> list[str]:
        return _split_csv(self.platform_domain_markers, lower=True)

    @property
    def provider_names(self) -> list[str]:
        return _split_csv(self.enabled_providers, lower=True)

    def validate_required(self) -> list[str]:
        """Return a list of problems that make the service unusable"""
        problems = []

        if not self.provider_names:
            problems.append("enabled_providers is empty (nothing can resolve a URL)")
        if not self.domain_markers:
            problems.append("platform_domain_markers is empty (every URL would be rejected)")
        if self.max_video_size_mb <= 0:
            problems.append("max_video_size_mb must be positive")
        if self.provider_timeout_seconds <= 0:
            problems.append("provider_timeout_seconds must be positive")
        if self.relay_timeout_seconds <= 0:
            problems.append("relay_timeout_seconds must be positive")

        return problems


def _split_csv(value: str, lower: bool = False) -> list[str]:
    items = [part.strip() for part in value.split(",") if part.strip()]
    return [item.lower() for item in items] if lower else items


def warn_on_risky_config(s: "Settings") -> list[str]:
    warnings: list[str] = []

    if s.is_production and s.log_level.upper() == "DEBUG":
        warnings.append("prod: log_level=DEBUG (source URLs and provider errors will be logged verbosely).")

    if s.provider_timeout_seconds > 30:
        warnings.append(
            f"provider_timeout_seconds={s.provider_timeout_seconds}: with three providers a single "
            "request may hang for several minutes."
        )

    if s.probe_content_length:
        warnings.append("probe_content_length=True: every resolution without a reported size costs an extra HEAD request.")

    if s.is_production and s.enable_metrics:
        warnings.append("prod: /metrics is enabled and unauthenticated.")

    return warnings


def validate_or_warn(s: "Settings") -> None:
    """
    Hard-fail on unusable settings, warn on risky ones.
    """
    problems = s.validate_required()

    if problems:
        raise RuntimeError(f"Invalid settings: {'; '.join(problems)}")

    for msg in warn_on_risky_config(s):
        print(f"[WARN][config] {msg}")

settings = Settings()
validate_or_warn(settings)
