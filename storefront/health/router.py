from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from storefront.infra import db
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/db")
def health_db():
    ok = db.ping()
    return JSONResponse({"connect_ok": ok}, status_code=200 if ok else 503)

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return rate_limit_health_info(request)
