"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Remote rate service endpoints."""

    model_config = SettingsConfigDict(env_prefix="API_")

    latest_url: str = "https://open.er-api.com/v6"  # GET /latest/{base}
    history_url: str = "https://api.frankfurter.app"  # /currencies and /{start}..{end}
    timeout_seconds: float = 10.0


class ChartSettings(BaseSettings):
    """Chart surface and series parameters.

    Width and height are logical (CSS) pixels; the surface is rendered at
    ``pixel_ratio`` times that size.
    """

    model_config = SettingsConfigDict(env_prefix="CHART_")

    downsample_cap: int = 360
    width: int = 640
    height: int = 320
    pixel_ratio: float = 2.0
    default_range: Literal["1M", "6M", "1Y", "5Y", "10Y", "ALL"] = "1M"


class ViewerSettings(BaseSettings):
    """Conversion form defaults and input timing."""

    model_config = SettingsConfigDict(env_prefix="VIEWER_")

    debounce_seconds: float = 0.25
    default_from: str = "USD"
    default_to: str = "KRW"
    default_amount: Decimal = Decimal("1")


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "127.0.0.1"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    api: ApiSettings = ApiSettings()
    chart: ChartSettings = ChartSettings()
    viewer: ViewerSettings = ViewerSettings()
    dashboard: DashboardSettings = DashboardSettings()
