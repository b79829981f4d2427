"""Static fallback rates and display metadata for currency codes.

Rates are approximate units per 1 USD and are only used when neither the
cache nor the live source can answer. A cross rate is derived through USD:
``fallback(A, B) = FALLBACK_RATES[B] / FALLBACK_RATES[A]``.
"""

from __future__ import annotations

FALLBACK_RATES: dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "JPY": 150.5,
    "AUD": 1.52,
    "CAD": 1.35,
    "CHF": 0.88,
    "CNY": 7.19,
    "HKD": 7.82,
    "NZD": 1.61,
    "SEK": 10.35,
    "KRW": 1330.0,
    "SGD": 1.34,
    "NOK": 10.52,
    "MXN": 17.05,
    "INR": 83.0,
    "RUB": 91.5,
    "ZAR": 19.1,
    "TRY": 30.5,
    "BRL": 4.95,
    "TWD": 31.3,
    "DKK": 6.89,
    "PLN": 4.0,
    "THB": 35.5,
    "IDR": 15600.0,
    "HUF": 358.0,
    "CZK": 23.4,
    "ILS": 3.65,
    "CLP": 965.0,
    "PHP": 56.0,
    "AED": 3.67,
    "COP": 3910.0,
    "SAR": 3.75,
    "MYR": 4.75,
    "RON": 4.6,
    # Crypto
    "BTC": 0.000019,
    "ETH": 0.00034,
    "XRP": 1.85,
    # Metals, per troy ounce
    "XAU": 0.00047,
    "XAG": 0.037,
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "AUD": "A$",
    "CAD": "C$",
    "CHF": "Fr",
    "CNY": "¥",
    "HKD": "HK$",
    "NZD": "NZ$",
    "SEK": "kr",
    "KRW": "₩",
    "SGD": "S$",
    "NOK": "kr",
    "MXN": "$",
    "INR": "₹",
    "RUB": "₽",
    "ZAR": "R",
    "TRY": "₺",
    "BRL": "R$",
    "TWD": "NT$",
    "DKK": "kr",
    "PLN": "zł",
    "THB": "฿",
    "IDR": "Rp",
    "HUF": "Ft",
    "CZK": "Kč",
    "ILS": "₪",
    "CLP": "$",
    "PHP": "₱",
    "AED": "د.إ",
    "COP": "$",
    "SAR": "﷼",
    "MYR": "RM",
    "RON": "lei",
    "BTC": "₿",
    "ETH": "Ξ",
    "XRP": "XRP",
    "XAU": "XAU",
    "XAG": "XAG",
}

CURRENCY_NAMES: dict[str, str] = {
    "USD": "US Dollar",
    "EUR": "Euro",
    "GBP": "British Pound",
    "JPY": "Japanese Yen",
    "AUD": "Australian Dollar",
    "CAD": "Canadian Dollar",
    "CHF": "Swiss Franc",
    "CNY": "Chinese Yuan",
    "HKD": "Hong Kong Dollar",
    "NZD": "New Zealand Dollar",
    "SEK": "Swedish Krona",
    "KRW": "South Korean Won",
    "SGD": "Singapore Dollar",
    "NOK": "Norwegian Krone",
    "MXN": "Mexican Peso",
    "INR": "Indian Rupee",
    "RUB": "Russian Ruble",
    "ZAR": "South African Rand",
    "TRY": "Turkish Lira",
    "BRL": "Brazilian Real",
    "TWD": "Taiwan Dollar",
    "DKK": "Danish Krone",
    "PLN": "Polish Zloty",
    "THB": "Thai Baht",
    "IDR": "Indonesian Rupiah",
    "HUF": "Hungarian Forint",
    "CZK": "Czech Koruna",
    "ILS": "Israeli Shekel",
    "CLP": "Chilean Peso",
    "PHP": "Philippine Peso",
    "AED": "UAE Dirham",
    "COP": "Colombian Peso",
    "SAR": "Saudi Riyal",
    "MYR": "Malaysian Ringgit",
    "RON": "Romanian Leu",
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "XRP": "Ripple",
    "XAU": "Gold (troy ounce)",
    "XAG": "Silver (troy ounce)",
}

CRYPTO_CODES: frozenset[str] = frozenset(
    {"BTC", "ETH", "XRP", "LTC", "BCH", "ADA", "DOT", "LINK"}
)
METAL_CODES: frozenset[str] = frozenset({"XAU", "XAG", "XPT", "XPD"})


def is_crypto(code: str) -> bool:
    return code.upper() in CRYPTO_CODES


def is_metal(code: str) -> bool:
    return code.upper() in METAL_CODES


def is_fiat(code: str) -> bool:
    """Anything that is not a known crypto or metal code counts as fiat."""
    upper = code.upper()
    return upper not in CRYPTO_CODES and upper not in METAL_CODES


def get_fallback_rate(from_currency: str, to_currency: str) -> float | None:
    """Cross rate through USD, or None if either code is missing."""
    from_rate = FALLBACK_RATES.get(from_currency.upper())
    to_rate = FALLBACK_RATES.get(to_currency.upper())
    if not from_rate or not to_rate:
        return None
    return to_rate / from_rate
