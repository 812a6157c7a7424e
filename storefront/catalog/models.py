from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from storefront.pricing.currency import resolve_price, to_decimal

# module storefront.catalog.models
@dataclass(frozen=True)
class Product:
    """
    Instantané d'un produit du catalogue.
    - price: prix de base dans la devise de référence
    - prices: prix explicites par devise (prioritaires sur la conversion)
    - billing_cycle: None pour un achat unique, sinon cycle de facturation récurrent
    """
    id: str
    name: str
    price: Decimal
    prices: Dict[str, Decimal] = field(default_factory=dict)
    billing_cycle: Optional[str] = None
    slug: str = ""
    category: str = "module"

    @property
    def is_recurring(self) -> bool:
        return self.billing_cycle is not None

    def display_price(self, currency: str, rate=None) -> Decimal:
        return resolve_price(self.price, currency, overrides=self.prices, rate=rate)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Product":
        prices = {
            str(k).upper(): to_decimal(v)
            for k, v in (row.get("prices") or {}).items()
            if v is not None
        }
        return cls(
            id=str(row.get("id") or ""),
            name=row.get("name") or "",
            price=to_decimal(row.get("price")),
            prices=prices,
            billing_cycle=row.get("billing_cycle") or None,
            slug=row.get("slug") or "",
            category=row.get("category") or "module",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "category": self.category,
            "price": float(self.price),
            "prices": {k: float(v) for k, v in self.prices.items()},
            "billing_cycle": self.billing_cycle,
        }
