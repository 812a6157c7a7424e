"""
Module 'pricing': résolution des prix d'affichage et choix de la devise.
"""

from .currency import resolve_price, psychological_round, convert, display_total, format_price, to_decimal
from .locale import LANGUAGES, select_currency, current_language, detect_browser_language, currency_for_language
from .rates import get_rate, get_rates

__all__ = [
    # currency
    "resolve_price",
    "psychological_round",
    "convert",
    "display_total",
    "format_price",
    "to_decimal",
    # locale
    "LANGUAGES",
    "select_currency",
    "current_language",
    "detect_browser_language",
    "currency_for_language",
    # rates
    "get_rate",
    "get_rates",
]
