# module storefront.payments.models
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ChargeRequest(BaseModel):
    token: Optional[str] = None
    order_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    attempt_id: Optional[str] = None


class SubscriptionRequest(BaseModel):
    token: Optional[str] = None
    order_id: Optional[str] = None
    attempt_id: Optional[str] = None
