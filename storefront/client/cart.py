"""
Panier de la session acheteur.

Chargé une fois depuis le stockage scopé (hydrate), puis seule source de vérité:
chaque mutation réécrit la liste complète [{productId, quantity}].
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Mapping

from storefront.catalog.models import Product
from storefront.client.storage import CART_KEY, ScopedStore
from storefront.pricing.currency import display_total

logger = logging.getLogger(__name__)


@dataclass
class CartItem:
    product: Product
    quantity: int = 1


class CartStore:
    def __init__(self, store: ScopedStore):
        self.store = store
        self.items: List[CartItem] = []
        self.is_open = False
        self.hydrated = False

    def hydrate(self, catalog: Mapping[str, Product]) -> None:
        """
        Recharge le panier persisté à partir d'un instantané du catalogue.
        - Les produits absents du catalogue sont ignorés
        - La quantité persistée est ignorée (toujours 1)
        - hydrated passe à True même si la lecture échoue
        """
        items: List[CartItem] = []
        try:
            saved = self.store.load(CART_KEY, default=[]) or []
            if isinstance(saved, list):
                for entry in saved:
                    if not isinstance(entry, dict):
                        continue
                    product = catalog.get(str(entry.get("productId")))
                    if product is None:
                        logger.info("cart.hydrate dropped product=%s", entry.get("productId"))
                        continue
                    if any(i.product.id == product.id for i in items):
                        continue
                    items.append(CartItem(product=product, quantity=1))
        except Exception:
            logger.exception("cart.hydrate failed, starting from an empty cart")
            items = []
        finally:
            self.items = items
            self.hydrated = True

    def _persist(self) -> None:
        if not self.hydrated:
            return
        self.store.save(CART_KEY, [{"productId": i.product.id, "quantity": i.quantity} for i in self.items])

    def add_item(self, product: Product) -> None:
        if self.is_in_cart(product.id):
            return
        self.items.append(CartItem(product=product, quantity=1))
        self._persist()

    def remove_item(self, product_id: str) -> None:
        self.items = [i for i in self.items if i.product.id != product_id]
        self._persist()

    def clear_cart(self) -> None:
        self.items = []
        self._persist()

    def is_in_cart(self, product_id: str) -> bool:
        return any(i.product.id == product_id for i in self.items)

    def open_cart(self) -> None:
        self.is_open = True

    def close_cart(self) -> None:
        self.is_open = False

    def toggle_open(self) -> None:
        self.is_open = not self.is_open

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def total(self) -> Decimal:
        """Somme des prix de base × quantité (devise de référence)."""
        return sum((i.product.price * i.quantity for i in self.items), Decimal("0"))

    @property
    def has_subscriptions(self) -> bool:
        return any(i.product.is_recurring for i in self.items)

    def display_total(self, currency: str, rate=None) -> Decimal:
        return display_total((i.product.display_price(currency, rate), i.quantity) for i in self.items)
