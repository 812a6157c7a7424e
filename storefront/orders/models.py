# module storefront.orders.models
"""Modèles de la feature Commandes.
- Schémas Pydantic des requêtes/réponses HTTP (création, mise à jour du statut).
- Dataclasses des résultats métier (commande créée, ligne de commande).
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

FINANCIAL_PENDING = "pending"
FINANCIAL_PAID = "paid"
FULFILLMENT_FULFILLED = "fulfilled"
PAYMENT_METHOD_PENDING = "pending"
PAYMENT_METHOD_CARD = "credit_card"


class BuyerIn(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    country: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{(self.first_name or '').strip()} {(self.last_name or '').strip()}".strip()


class CheckoutItemIn(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    display_price: Optional[Decimal] = Field(default=None, ge=0)


class CheckoutRequest(BaseModel):
    buyer: Optional[BuyerIn] = None
    items: List[CheckoutItemIn] = Field(default_factory=list)
    currency: Optional[str] = None
    display_total: Optional[Decimal] = Field(default=None, ge=0)


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    order_id: str
    order_number: str
    total: float
    currency: str
    status: str = FINANCIAL_PENDING
    has_subscriptions: bool = Field(default=False, serialization_alias="hasSubscriptions")


class UpdateStatusRequest(BaseModel):
    order_id: str
    financial_status: Literal["paid"] = FINANCIAL_PAID
    payment_method: str = PAYMENT_METHOD_CARD
    payment_id: Optional[str] = None
    authorization_number: Optional[str] = None
    document_id: Optional[str] = None
    document_number: Optional[str] = None
    document_url: Optional[str] = None

    def charge_fields(self) -> Dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "authorization_number": self.authorization_number,
            "document_id": self.document_id,
            "document_number": self.document_number,
            "document_url": self.document_url,
        }


@dataclass
class OrderLine:
    product_id: str
    product_name: str
    price: Decimal
    quantity: int
    billing_cycle: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class CreatedOrder:
    order_id: str
    order_number: str
    total: Decimal
    currency: str
    status: str = FINANCIAL_PENDING
    has_subscriptions: bool = False
    lines: List[OrderLine] = field(default_factory=list)

    def to_response(self) -> CheckoutResponse:
        return CheckoutResponse(
            order_id=self.order_id,
            order_number=self.order_number,
            total=float(self.total),
            currency=self.currency,
            status=self.status,
            has_subscriptions=self.has_subscriptions,
        )
