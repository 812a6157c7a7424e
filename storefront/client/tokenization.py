"""
Pont de tokenisation de carte.

Machine à états:
    UNINITIALIZED -> DEPENDENCIES_LOADING -> SDK_LOADING -> BOUND -> AWAITING_TOKEN -> RESOLVED | FAILED

- Amorçage en deux étapes asynchrones séquentielles (dépendances puis SDK).
- La liaison au formulaire n'a lieu que lorsque le SDK est chargé ET le formulaire attaché,
  une seule fois quel que soit l'ordre des deux signaux.
- Une demande de jeton est un appel explicite dont la réponse arrive par callback;
  le pont la convertit en future avec un délai maximal. Le délai libère l'état
  « en cours » sans annuler l'appel de la capacité; une réponse tardive est ignorée.
- Le jeton obtenu est rendu à l'appelant et n'est jamais conservé.
"""
import asyncio
import importlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from storefront import config
from storefront.errors import PaymentError, PaymentTimeout
from storefront.payments.gateway import GatewayConfig

logger = logging.getLogger(__name__)

CARD_ROLES = ("cardnumber", "expirationmonth", "expirationyear", "cvv", "citizenid")
CITIZEN_ID_COUNTRIES = {"IL"}

DEPENDENCIES_FAILED = "Failed to load payment dependencies."
SDK_FAILED = "Failed to load payment system. Please try again."
NO_TOKEN = "Failed to process card. Please try again."

ResponseCallback = Callable[[Dict[str, Any]], None]


class BridgeState(str, Enum):
    UNINITIALIZED = "uninitialized"
    DEPENDENCIES_LOADING = "dependencies_loading"
    SDK_LOADING = "sdk_loading"
    BOUND = "bound"
    AWAITING_TOKEN = "awaiting_token"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class CardForm:
    """Formulaire carte: champs repérés par rôle (cardnumber, expirationmonth, ...)."""
    fields: Dict[str, str] = field(default_factory=dict)
    country: str = ""

    def field(self, role: str) -> str:
        return (self.fields.get(role) or "").strip()

    @property
    def requires_citizen_id(self) -> bool:
        return self.country.upper() in CITIZEN_ID_COUNTRIES


class TokenizationCapability(Protocol):
    async def load_dependencies(self) -> None: ...

    async def load_sdk(self) -> None: ...

    def bind(self, form: CardForm, gateway: GatewayConfig, on_response: ResponseCallback) -> None: ...

    def request_token(self) -> None: ...


def parse_response(response: Dict[str, Any]) -> str:
    """
    Interprète {status, userMessage?, technicalDetails?, data?: {singleUseToken}}.
    - status != 0: PaymentError avec le message utilisateur (sinon technique)
    - jeton absent: PaymentError NO_TOKEN
    """
    response = response or {}
    status = response.get("status", response.get("Status"))
    if status != 0:
        message = (
            response.get("userMessage")
            or response.get("UserErrorMessage")
            or response.get("technicalDetails")
            or response.get("TechnicalErrorDetails")
            or "Payment failed"
        )
        raise PaymentError(str(message), code="tokenization_failed")
    data = response.get("data") or response.get("Data") or {}
    token = data.get("singleUseToken") or data.get("SingleUseToken")
    if not token:
        raise PaymentError(NO_TOKEN, code="no_token")
    return str(token)


class TokenizationBridge:
    def __init__(self, capability: TokenizationCapability, gateway: GatewayConfig, *, timeout: Optional[float] = None):
        self.capability = capability
        self.gateway = gateway
        self.timeout = config.TOKENIZATION_TIMEOUT_SECONDS if timeout is None else timeout
        self.state = BridgeState.UNINITIALIZED
        self.error: Optional[str] = None
        self.processing = False
        self.bind_count = 0
        self._sdk_loaded = False
        self._form: Optional[CardForm] = None
        self._bound = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Optional[asyncio.Future] = None

    def _fail(self, message: str) -> None:
        self.state = BridgeState.FAILED
        self.error = message

    async def start(self) -> None:
        """Charge dépendances puis SDK; échec: état FAILED et PaymentError."""
        if self.state is not BridgeState.UNINITIALIZED:
            return
        self._loop = asyncio.get_running_loop()
        self.state = BridgeState.DEPENDENCIES_LOADING
        try:
            await self.capability.load_dependencies()
        except Exception:
            logger.exception("tokenization.load_dependencies failed")
            self._fail(DEPENDENCIES_FAILED)
            raise PaymentError(DEPENDENCIES_FAILED, code="dependencies_failed")

        self.state = BridgeState.SDK_LOADING
        try:
            await self.capability.load_sdk()
        except Exception:
            logger.exception("tokenization.load_sdk failed")
            self._fail(SDK_FAILED)
            raise PaymentError(SDK_FAILED, code="sdk_failed")

        self._sdk_loaded = True
        self._maybe_bind()

    def attach_form(self, form: CardForm) -> None:
        if self._form is None:
            self._form = form
        self._maybe_bind()

    def _maybe_bind(self) -> None:
        if self.bind_count or not self._sdk_loaded or self._form is None:
            return
        self.capability.bind(self._form, self.gateway, self._on_response)
        self.bind_count += 1
        self.state = BridgeState.BOUND
        self._bound.set()

    @property
    def is_bound(self) -> bool:
        return self._bound.is_set()

    async def wait_bound(self, timeout: Optional[float] = None) -> None:
        await asyncio.wait_for(self._bound.wait(), timeout)

    def _on_response(self, response: Dict[str, Any]) -> None:
        # Peut être appelé depuis un thread de la capacité
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._resolve, response)

    def _resolve(self, response: Dict[str, Any]) -> None:
        fut = self._pending
        if fut is None or fut.done():
            logger.info("tokenization.response ignored (no pending request)")
            return
        self._pending = None
        fut.set_result(response)

    async def request_token(self) -> str:
        """
        Demande un jeton à usage unique pour le formulaire lié.
        - Refusé si une demande est déjà en cours ou si le pont n'est pas lié
        - Délai dépassé: PaymentTimeout, l'appel en cours n'est pas annulé
        """
        if self.processing:
            raise PaymentError("Payment already in progress", code="in_progress")
        if not self.is_bound:
            raise PaymentError("Payment form is not ready", code="not_ready")
        if self._form is not None and self._form.requires_citizen_id and not self._form.field("citizenid"):
            raise PaymentError("ID number is required", code="citizen_id_required")

        fut = asyncio.get_running_loop().create_future()
        self._pending = fut
        self.processing = True
        self.state = BridgeState.AWAITING_TOKEN
        self.error = None
        try:
            self.capability.request_token()
            response = await asyncio.wait_for(asyncio.shield(fut), self.timeout)
        except asyncio.TimeoutError:
            self._pending = None
            self._fail(PaymentTimeout.default_message)
            logger.warning("tokenization.timeout after %ss", self.timeout)
            raise PaymentTimeout()
        except PaymentError as e:
            self._pending = None
            self._fail(e.message)
            raise
        except Exception:
            self._pending = None
            logger.exception("tokenization.request failed")
            self._fail(NO_TOKEN)
            raise PaymentError(NO_TOKEN, code="no_token")
        finally:
            self.processing = False

        try:
            token = parse_response(response)
        except PaymentError as e:
            self._fail(e.message)
            raise
        self.state = BridgeState.RESOLVED
        return token


class StripeCardTokenizer:
    """
    Capacité de tokenisation adossée aux jetons de carte Stripe (clé publiable).
    - load_dependencies: vérifie la configuration publique
    - load_sdk: importe le SDK stripe hors de la boucle
    - request_token: création du jeton dans un thread, réponse via callback
    """

    def __init__(self, gateway: GatewayConfig):
        self.gateway = gateway
        self._stripe = None
        self._form: Optional[CardForm] = None
        self._on_response: Optional[ResponseCallback] = None

    async def load_dependencies(self) -> None:
        if not self.gateway.enabled or not self.gateway.public_key:
            raise RuntimeError("payment gateway public key missing")

    async def load_sdk(self) -> None:
        self._stripe = await asyncio.to_thread(importlib.import_module, "stripe")

    def bind(self, form: CardForm, gateway: GatewayConfig, on_response: ResponseCallback) -> None:
        self._form = form
        self._on_response = on_response

    def request_token(self) -> None:
        asyncio.get_running_loop().run_in_executor(None, self._tokenize)

    def _tokenize(self) -> None:
        stripe = self._stripe
        form = self._form or CardForm()
        try:
            token = stripe.Token.create(
                card={
                    "number": form.field("cardnumber"),
                    "exp_month": form.field("expirationmonth"),
                    "exp_year": form.field("expirationyear"),
                    "cvc": form.field("cvv"),
                },
                api_key=self.gateway.public_key,
            )
            response = {"status": 0, "data": {"singleUseToken": token["id"]}}
        except stripe.CardError as e:
            response = {"status": 1, "userMessage": e.user_message, "technicalDetails": e.code}
        except stripe.StripeError as e:
            logger.warning("tokenization.stripe error: %s", e)
            response = {"status": 2, "technicalDetails": str(e)}
        except Exception as e:
            logger.exception("tokenization.unexpected error")
            response = {"status": 2, "technicalDetails": str(e)}
        if self._on_response:
            self._on_response(response)
