"""
Résolution des prix d'affichage par devise.

Toute valeur affichée à l'acheteur et tout total de commande passent par
resolve_price(): l'override explicite du produit pour la devise est pris tel
quel, sinon prix de base × taux, arrondi « psychologique » pour les devises
autres que la devise de référence.
"""
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional, Tuple

from storefront.config import REFERENCE_CURRENCY, FALLBACK_EXCHANGE_RATE

CENT = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "ILS": "₪",
}

# Suffixe de période par langue (prix mensuels)
PERIOD_SUFFIXES = {
    "en": "/mo",
    "he": "/חודש",
}

# module storefront.pricing.currency
def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def psychological_round(amount: Decimal) -> Decimal:
    """
    Arrondit au multiple de 10 supérieur puis retire 1.
    - 370 -> 369, 151 -> 159, 159 -> 159
    - montant nul ou négatif: 0
    """
    amount = to_decimal(amount)
    if amount <= 0:
        return Decimal("0")
    tens = (amount / 10).to_integral_value(rounding=ROUND_CEILING)
    return tens * 10 - 1


def convert(amount, rate, currency: str, reference: str = REFERENCE_CURRENCY) -> Decimal:
    """
    Convertit un prix de base (devise de référence) vers `currency`.
    - devise de référence: montant inchangé (au centime)
    - autres devises: montant × taux puis psychological_round
    """
    amount = to_decimal(amount)
    if currency.upper() == reference.upper():
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    return psychological_round(amount * to_decimal(rate))


def resolve_price(
    base_price,
    currency: str,
    *,
    overrides: Optional[Mapping[str, object]] = None,
    rate=None,
    reference: str = REFERENCE_CURRENCY,
) -> Decimal:
    """
    Prix d'affichage d'un produit dans `currency`.
    - overrides: prix explicites par devise (ex: {"ILS": 79}), utilisés tels quels
    - rate: taux de la table du tenant; à défaut FALLBACK_EXCHANGE_RATE
    """
    currency = (currency or reference).upper()
    if overrides:
        explicit = overrides.get(currency)
        if explicit is None:
            explicit = overrides.get(currency.lower())
        if explicit is not None:
            return to_decimal(explicit)
    effective_rate = FALLBACK_EXCHANGE_RATE if rate is None else rate
    return convert(base_price, effective_rate, currency, reference=reference)


def display_total(lines: Iterable[Tuple[Decimal, int]]) -> Decimal:
    """Somme (prix d'affichage × quantité) de lignes déjà résolues."""
    total = Decimal("0")
    for price, quantity in lines:
        total += to_decimal(price) * int(quantity)
    return total


def format_price(amount, currency: str, *, period: Optional[str] = None, language: str = "en") -> str:
    """
    Formate un prix pour l'affichage: "$19", "₪79", "$19.50/mo".
    - period="monthly" ajoute le suffixe de la langue
    """
    amount = to_decimal(amount)
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper() + " ")
    if amount == amount.to_integral_value():
        text = f"{symbol}{int(amount)}"
    else:
        text = f"{symbol}{amount.quantize(CENT)}"
    if period == "monthly":
        text += PERIOD_SUFFIXES.get(language, PERIOD_SUFFIXES["en"])
    return text
