"""wealthfeed.jobs: Scheduled maintenance jobs."""

from wealthfeed.jobs.rate_sync import MAJOR_CURRENCIES, ExchangeRateSync

__all__ = ["ExchangeRateSync", "MAJOR_CURRENCIES"]
