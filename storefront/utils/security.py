import secrets
from fastapi import Request, HTTPException
from storefront import config

ADMIN_HEADER = "X-Admin-Token"

def _token_from_request(request: Request) -> str:
    # Priorité au Bearer, fallback en-tête dédié
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip()
    return (request.headers.get(ADMIN_HEADER) or "").strip()

def require_admin_token(request: Request) -> str:
    """
    Dépendance FastAPI des routes opérateur (mise à jour de statut, réconciliation).
    - 403 si ADMIN_API_TOKEN n'est pas configuré (routes fermées)
    - 401 si le jeton est absent ou invalide
    """
    expected = config.ADMIN_API_TOKEN
    if not expected:
        raise HTTPException(status_code=403, detail="Admin access disabled")
    token = _token_from_request(request)
    if not token or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Invalid admin token")
    return token
