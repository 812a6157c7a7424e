"""
Configuration de la passerelle de paiement du tenant.
- Configurée si les deux clés Stripe (publique et secrète) sont présentes.
- L'identifiant public exposé au client est la clé publiable; mode test si clé pk_test_.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from storefront import config

@dataclass(frozen=True)
class GatewayConfig:
    enabled: bool
    company_id: str = ""
    public_key: str = ""
    is_test: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "companyId": self.company_id,
            "apiPublicKey": self.public_key,
            "isTest": self.is_test,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GatewayConfig":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled")),
            company_id=str(data.get("companyId") or ""),
            public_key=str(data.get("apiPublicKey") or ""),
            is_test=bool(data.get("isTest")),
        )

# module storefront.payments.gateway
def get_gateway_config(tenant_id: Optional[str] = None) -> GatewayConfig:
    public_key = config.STRIPE_PUBLIC_KEY
    if not public_key or not config.STRIPE_SECRET_KEY:
        return GatewayConfig(enabled=False)
    return GatewayConfig(
        enabled=True,
        company_id=tenant_id or config.TENANT_ID,
        public_key=public_key,
        is_test=public_key.startswith("pk_test_"),
    )
