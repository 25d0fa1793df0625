"""Process-wide service instances, built on first use."""

from functools import lru_cache

from portfolio_dashboard.services.auth import AuthService
from portfolio_dashboard.services.cache import portfolio_cache, token_cache
from portfolio_dashboard.services.changes import ChangeWatcher
from portfolio_dashboard.services.dashboard import DashboardService
from portfolio_dashboard.services.portfolio import PortfolioService
from portfolio_dashboard.services.supabase import get_supabase_client


@lru_cache(maxsize=None)
def get_portfolio_service() -> PortfolioService:
    return PortfolioService(get_supabase_client(), portfolio_cache)


@lru_cache(maxsize=None)
def get_auth_service() -> AuthService:
    return AuthService(get_supabase_client(), token_cache)


@lru_cache(maxsize=None)
def get_change_watcher() -> ChangeWatcher:
    return ChangeWatcher(get_portfolio_service())


@lru_cache(maxsize=None)
def get_dashboard_service() -> DashboardService:
    return DashboardService(get_portfolio_service(), get_change_watcher())


def reset_services() -> None:
    for getter in (
        get_portfolio_service,
        get_auth_service,
        get_change_watcher,
        get_dashboard_service,
    ):
        getter.cache_clear()
