"""
Contrôleur du tunnel de commande (côté acheteur).

Étapes: Contact (0) -> Location (1) -> Review (2) -> Payment (3).
- Avancer valide uniquement les champs de l'étape courante.
- Reculer est toujours possible; la navigation directe ne va que vers l'étape courante
  ou une étape antérieure, jamais vers Payment.
- Les champs et l'étape sont persistés; à la restauration l'étape est ramenée à Review au plus,
  l'état de paiement (commande vivante, passerelle, pont) n'étant jamais persisté.
- Seule la confirmation explicite depuis Review crée la commande (Entrée ne soumet jamais).
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Tuple

from storefront.client.api import ApiError, CheckoutApi
from storefront.client.cart import CartStore
from storefront.client.storage import CURRENT_STEP_KEY, FORM_DATA_KEY, ScopedStore
from storefront.client.tokenization import CardForm, StripeCardTokenizer, TokenizationBridge, TokenizationCapability
from storefront.errors import PaymentError
from storefront.payments.gateway import GatewayConfig
from storefront.utils.validators import validate_email, validate_phone, validate_required

logger = logging.getLogger(__name__)

STEP_CONTACT, STEP_LOCATION, STEP_REVIEW, STEP_PAYMENT = range(4)
STEP_NAMES = ("contact", "location", "review", "payment")

FIELD_NAMES = ("first_name", "last_name", "email", "phone", "company", "country")
STEP_FIELDS = {
    STEP_CONTACT: ("first_name", "last_name", "email", "phone"),
    STEP_LOCATION: ("country",),
}
FIELD_RULES: Dict[str, Callable[[str], str]] = {
    "first_name": lambda v: validate_required(v, "First name is required"),
    "last_name": lambda v: validate_required(v, "Last name is required"),
    "email": validate_email,
    "phone": validate_phone,
    "country": lambda v: validate_required(v, "Country is required"),
}

COUNTRIES = (
    "US", "IL", "GB", "CA", "AU", "DE", "FR", "ES", "IT", "NL",
    "BR", "MX", "IN", "JP", "SG", "AE", "ZA", "OTHER",
)

GATEWAY_NOT_CONFIGURED = (
    "Payment gateway not configured: online card payment is currently unavailable. "
    "Your order has been created and we'll send you a payment link."
)


@dataclass
class SuccessView:
    order_id: str
    order_number: str
    pending_payment: bool
    message: Optional[str] = None


class CheckoutWizard:
    def __init__(
        self,
        store: ScopedStore,
        cart: CartStore,
        api: CheckoutApi,
        *,
        currency: str,
        rate=None,
        capability_factory: Callable[[GatewayConfig], TokenizationCapability] = StripeCardTokenizer,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.cart = cart
        self.api = api
        self.currency = currency.upper()
        self.rate = rate
        self.capability_factory = capability_factory
        self.timeout = timeout

        self.fields: Dict[str, str] = {name: "" for name in FIELD_NAMES}
        self.step = STEP_CONTACT
        self.errors: Dict[str, str] = {}
        self.error: Optional[str] = None
        self.submitting = False
        self.hydrated = False
        self.success: Optional[SuccessView] = None

        # État de paiement vivant, jamais persisté
        self.order: Optional[Dict[str, Any]] = None
        self.gateway: Optional[GatewayConfig] = None
        self.bridge: Optional[TokenizationBridge] = None
        self._order_fingerprint: Optional[Tuple] = None

    # -- persistance -------------------------------------------------------

    def restore(self) -> None:
        saved = self.store.load(FORM_DATA_KEY, default={})
        if isinstance(saved, dict):
            for name in FIELD_NAMES:
                value = saved.get(name)
                if isinstance(value, str):
                    self.fields[name] = value
        step = self.store.load(CURRENT_STEP_KEY)
        if isinstance(step, int):
            self.step = max(STEP_CONTACT, min(step, STEP_REVIEW))
        self.hydrated = True

    def _persist(self) -> None:
        if not self.hydrated:
            return
        self.store.save(FORM_DATA_KEY, dict(self.fields))
        self.store.save(CURRENT_STEP_KEY, self.step)

    # -- champs et navigation ----------------------------------------------

    def set_field(self, name: str, value: str) -> None:
        if name not in self.fields:
            raise KeyError(name)
        self.fields[name] = value
        self.errors.pop(name, None)
        self._persist()

    def validate_step(self, step: Optional[int] = None) -> bool:
        step = self.step if step is None else step
        ok = True
        for name in STEP_FIELDS.get(step, ()):
            try:
                FIELD_RULES[name](self.fields.get(name))
                self.errors.pop(name, None)
            except ValueError as e:
                self.errors[name] = str(e)
                ok = False
        return ok

    def next(self) -> bool:
        if self.step >= STEP_REVIEW or not self.validate_step():
            return False
        self.step += 1
        self._persist()
        return True

    def back(self) -> bool:
        if self.step == STEP_CONTACT:
            return False
        if self.step == STEP_PAYMENT:
            self._leave_payment()
        self.step -= 1
        self._persist()
        return True

    def go_to(self, index: int) -> bool:
        if index < STEP_CONTACT or index > self.step or index == STEP_PAYMENT:
            return False
        if self.step == STEP_PAYMENT and index != STEP_PAYMENT:
            self._leave_payment()
        self.step = index
        self._persist()
        return True

    def handle_enter(self) -> bool:
        # Entrée ne soumet jamais le formulaire, quelle que soit l'étape
        return False

    def review(self) -> Dict[str, Any]:
        return {
            "contact": {
                "name": f"{self.fields['first_name']} {self.fields['last_name']}".strip(),
                "email": self.fields["email"],
                "phone": self.fields["phone"],
                "company": self.fields["company"],
            },
            "country": self.fields["country"],
            "items": [
                {"product_id": i.product.id, "name": i.product.name, "price": i.product.display_price(self.currency, self.rate)}
                for i in self.cart.items
            ],
            "currency": self.currency,
            "total": self.cart.display_total(self.currency, self.rate),
        }

    # -- création de commande ----------------------------------------------

    def _fingerprint(self) -> Tuple:
        buyer = tuple(self.fields[name].strip() for name in FIELD_NAMES if name != "email")
        return (tuple(i.product.id for i in self.cart.items), self.currency, self.fields["email"].strip().lower(), buyer)

    def _order_payload(self) -> Dict[str, Any]:
        items = []
        for i in self.cart.items:
            items.append({
                "product_id": i.product.id,
                "quantity": i.quantity,
                "display_price": str(i.product.display_price(self.currency, self.rate)),
            })
        buyer = {name: (self.fields[name].strip() or None) for name in FIELD_NAMES}
        return {
            "buyer": buyer,
            "items": items,
            "currency": self.currency,
            "display_total": str(self.cart.display_total(self.currency, self.rate)),
        }

    async def submit(self, trigger: str = "button") -> bool:
        """
        Confirme la commande depuis Review.
        - Crée la commande (ou réutilise la commande vivante si panier, devise et acheteur inchangés)
        - Passerelle non configurée: fin du tunnel avec paiement en attente
        - Sinon: passage à Payment et amorçage du pont de tokenisation
        """
        if trigger != "button" or self.step != STEP_REVIEW or self.submitting:
            return False
        for step in (STEP_CONTACT, STEP_LOCATION):
            if not self.validate_step(step):
                self.step = step
                self._persist()
                return False
        if not self.cart.items:
            self.error = "Cart is empty"
            return False

        self.submitting = True
        self.error = None
        try:
            fingerprint = self._fingerprint()
            if self.order is None or self._order_fingerprint != fingerprint:
                self.order = await self.api.create_order(self._order_payload())
                self._order_fingerprint = fingerprint
                logger.info("wizard.order_created number=%s", self.order.get("order_number"))
            self.gateway = await self.api.get_gateway_config()
        except ApiError as e:
            self.error = e.message
            return False
        finally:
            self.submitting = False

        if not self.gateway.enabled:
            self._finish(pending_payment=True, message=GATEWAY_NOT_CONFIGURED)
            return True

        self.step = STEP_PAYMENT
        self._persist()
        await self._start_bridge()
        return True

    async def _start_bridge(self) -> None:
        self.bridge = TokenizationBridge(self.capability_factory(self.gateway), self.gateway, timeout=self.timeout)
        try:
            await self.bridge.start()
        except PaymentError as e:
            self.error = e.message

    def _leave_payment(self) -> None:
        self.bridge = None
        self.gateway = None
        self.error = None

    # -- paiement -------------------------------------------------------------

    async def pay(self, form: CardForm) -> Optional[SuccessView]:
        """
        Tokenise la carte puis règle la commande vivante par le chemin adapté.
        - Échec: message dans self.error, la commande reste « pending » et un nouvel essai la réutilise
        """
        if self.step != STEP_PAYMENT or self.order is None or self.bridge is None:
            return None
        if not form.country:
            form.country = self.fields["country"]
        self.bridge.attach_form(form)
        if not self.bridge.is_bound:
            self.error = self.bridge.error or "Payment form is not ready"
            return None

        self.error = None
        attempt_id = uuid.uuid4().hex
        try:
            token = await self.bridge.request_token()
            if self.order.get("hasSubscriptions"):
                await self.api.complete_subscription({
                    "order_id": self.order["order_id"],
                    "token": token,
                    "attempt_id": attempt_id,
                })
            else:
                await self.api.charge({
                    "order_id": self.order["order_id"],
                    "token": token,
                    "amount": str(Decimal(str(self.order.get("total") or 0))),
                    "currency": self.order.get("currency"),
                    "attempt_id": attempt_id,
                })
        except (PaymentError, ApiError) as e:
            self.error = e.message
            return None
        return self._finish(pending_payment=False)

    def _finish(self, *, pending_payment: bool, message: Optional[str] = None) -> SuccessView:
        order = self.order or {}
        self.success = SuccessView(
            order_id=str(order.get("order_id") or ""),
            order_number=str(order.get("order_number") or ""),
            pending_payment=pending_payment,
            message=message,
        )
        self.cart.clear_cart()
        self.store.remove(FORM_DATA_KEY)
        self.store.remove(CURRENT_STEP_KEY)
        self.fields = {name: "" for name in FIELD_NAMES}
        self.step = STEP_CONTACT
        self.order = None
        self._order_fingerprint = None
        self.bridge = None
        return self.success
