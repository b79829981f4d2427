"""wealthfeed: exchange rates and market prices for household accounts."""

__version__ = "0.1.0"
