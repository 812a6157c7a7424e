"""
Sélection langue → devise d'affichage.

Ordre de priorité: langue sauvegardée, puis langue du navigateur, puis langue
par défaut. Chaque langue porte exactement une devise.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

LANGUAGE_STORAGE_KEY = "upgradeshop-language"
LANGUAGE_COOKIE = "language"
DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class LanguageConfig:
    code: str
    currency: str
    locale: str
    direction: str = "ltr"


LANGUAGES = {
    "en": LanguageConfig(code="en", currency="USD", locale="en-US"),
    "he": LanguageConfig(code="he", currency="ILS", locale="he-IL", direction="rtl"),
}


def detect_browser_language(accept_language: Optional[str]) -> str:
    """
    Détecte la langue à partir d'un en-tête/valeur navigateur ("he-IL,he;q=0.9,en;q=0.8").
    - 'he' et l'ancien code 'iw' donnent l'hébreu
    - sinon langue par défaut
    """
    if not accept_language:
        return DEFAULT_LANGUAGE
    first = accept_language.split(",")[0].split(";")[0].strip().lower()
    primary = first.split("-")[0]
    if primary in ("he", "iw"):
        return "he"
    return DEFAULT_LANGUAGE


def current_language(saved: Optional[str], browser: Optional[str] = None) -> str:
    if saved and saved in LANGUAGES:
        return saved
    return detect_browser_language(browser)


def currency_for_language(language: str) -> str:
    return LANGUAGES.get(language, LANGUAGES[DEFAULT_LANGUAGE]).currency


def select_currency(saved: Optional[str], browser: Optional[str] = None) -> str:
    return currency_for_language(current_language(saved, browser))


def language_from_request(request: Request) -> str:
    """Langue d'une requête HTTP: cookie 'language' puis Accept-Language."""
    return current_language(request.cookies.get(LANGUAGE_COOKIE), request.headers.get("accept-language"))
