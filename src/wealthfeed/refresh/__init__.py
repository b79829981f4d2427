"""wealthfeed.refresh: Account persistence and live price refresh."""

from wealthfeed.refresh.service import PriceRefreshService
from wealthfeed.refresh.store import (
    AccountStore,
    PriceUpdate,
    SqliteAccountStore,
    create_store,
)

__all__ = [
    "AccountStore",
    "PriceRefreshService",
    "PriceUpdate",
    "SqliteAccountStore",
    "create_store",
]
