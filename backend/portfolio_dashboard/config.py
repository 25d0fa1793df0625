"""Application configuration."""

import os

from portfolio_dashboard.errors import ConfigurationError

# Supabase connection (both required)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Remote tables and functions
HOLDINGS_TABLE = "portfolio_holdings"
PROFILES_TABLE = "users"
SUMMARY_FUNCTION = "get_portfolio_summary"

REQUEST_TIMEOUT = 10.0  # seconds

# Cache settings (in-memory)
PORTFOLIO_CACHE_TTL = 300  # seconds
AUTH_CACHE_TTL = 60  # seconds

# Change detection
CHANGE_POLL_INTERVAL = int(os.getenv("CHANGE_POLL_INTERVAL", "5"))  # seconds
CACHE_PURGE_INTERVAL = 60  # seconds


def require_supabase_settings() -> tuple[str, str]:
    """Return (url, anon_key), raising ConfigurationError if either is missing."""
    missing = [
        name
        for name, value in (
            ("SUPABASE_URL", SUPABASE_URL),
            ("SUPABASE_ANON_KEY", SUPABASE_ANON_KEY),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"Missing Supabase environment variables: {', '.join(missing)}"
        )
    return SUPABASE_URL, SUPABASE_ANON_KEY
