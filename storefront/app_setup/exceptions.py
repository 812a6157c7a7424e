"""
Gestionnaires d'exceptions.
- Erreurs métier (CheckoutError et dérivées): {"success": false, "error": message} avec leur statut.
- Erreurs de validation de requête: 400 au même format.
- HTTPException: body JSON FastAPI standard {"detail": ...}.
"""
import logging
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.errors import CheckoutError

logger = logging.getLogger(__name__)

def error_body(message: str, code: str | None = None) -> dict:
    body = {"success": False, "error": message}
    if code:
        body["code"] = code
    return body

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request, exc: CheckoutError):
        if exc.status_code >= 500:
            logger.error("checkout error path=%s code=%s", request.url.path, exc.code)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid request: {location} {first.get('msg', '')}".strip()
        return JSONResponse(status_code=400, content=error_body(message, "invalid_request"))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
