"""wealthfeed.api: HTTP surface over the market-data services."""

from wealthfeed.api.app import create_app

__all__ = ["create_app"]
