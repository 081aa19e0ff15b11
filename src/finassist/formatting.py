from __future__ import annotations
from typing import Optional

from .config.settings import settings

# currency -> (prefix, suffix, thousands separator)
CURRENCY_STYLES = {
    "IDR": ("Rp ", "", "."),
    "USD": ("$", "", ","),
    "EUR": ("", " €", "."),
    "GBP": ("£", "", ","),
    "JPY": ("¥", "", ","),
    "CNY": ("¥", "", ","),
}


def format_currency(amount: float, currency: Optional[str] = None) -> str:
    """Format ``amount`` rounded to whole units, e.g. ``Rp 1.500.000``.

    Without ``currency`` the configured ``DEFAULT_CURRENCY`` is used; codes
    missing from the table get the code as prefix and Rupiah separators.
    """
    code = (currency or settings.default_currency).upper()
    prefix, suffix, sep = CURRENCY_STYLES.get(code, (f"{code} ", "", "."))
    value = round(float(amount))
    digits = f"{abs(value):,}".replace(",", sep)
    sign = "-" if value < 0 else ""
    return f"{sign}{prefix}{digits}{suffix}"


def format_rupiah(amount: float) -> str:
    return format_currency(amount, "IDR")
