"""
Configuration package for the treasury service.
"""

from .settings import (
    AppConfig,
    DatabaseConfig,
    Environment,
    RateLimitConfig,
    SecurityConfig,
    Settings,
    TreasuryConfig,
    get_settings,
)

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "Environment",
    "RateLimitConfig",
    "SecurityConfig",
    "Settings",
    "TreasuryConfig",
    "get_settings",
]
