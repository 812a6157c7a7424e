"""Préférence de langue persistée de la session acheteur (et devise qui en découle)."""
from typing import Optional

from storefront.client.storage import LANGUAGE_KEY, ScopedStore
from storefront.pricing.locale import LANGUAGES, current_language, currency_for_language

def load_language(store: ScopedStore, browser_language: Optional[str] = None) -> str:
    return current_language(store.load(LANGUAGE_KEY), browser_language)

def save_language(store: ScopedStore, language: str) -> bool:
    if language not in LANGUAGES:
        return False
    return store.save(LANGUAGE_KEY, language)

def preferred_currency(store: ScopedStore, browser_language: Optional[str] = None) -> str:
    return currency_for_language(load_language(store, browser_language))
