"""HTTP endpoints: /gerar issues keys, /validar redeems them"""
import secrets
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from .engine import validate_link
from .errors import AuthError, ValidationError

ENDPOINTS = [
    "GET /",
    "GET /status",
    "POST /gerar",
    "POST /validar",
]

router = APIRouter()


# ═══════════════════════════════════════════════════════════
# REQUEST BODIES
# ═══════════════════════════════════════════════════════════

class GerarRequest(BaseModel):
    monetizzyToken: Optional[str] = None
    link: Optional[str] = None


class ValidarRequest(BaseModel):
    key: Optional[str] = None


def _token_matches(given: str, expected: str) -> bool:
    if not expected:
        return False
    return secrets.compare_digest(given.encode(), expected.encode())


# ═══════════════════════════════════════════════════════════
# HEALTH & STATUS
# ═══════════════════════════════════════════════════════════

@router.get("/")
async def root(request: Request):
    """Liveness check with key counters"""
    stats = request.app.state.engine.status()
    return {"message": "Key System Monetizzy rodando!", "status": "ok", **stats.model_dump()}


@router.get("/status")
async def status(request: Request):
    stats = request.app.state.engine.status()
    return {**stats.model_dump(), "timestamp": request.app.state.clock().isoformat()}


# ═══════════════════════════════════════════════════════════
# ISSUE (via Monetizzy)
# ═══════════════════════════════════════════════════════════

@router.post("/gerar")
async def gerar(req: GerarRequest, request: Request):
    """Shorten the link on Monetizzy, then issue a key for it"""
    state = request.app.state

    if not req.monetizzyToken:
        raise ValidationError("Token não fornecido")
    link = validate_link(req.link)
    if not _token_matches(req.monetizzyToken, state.settings.monetizzy_token):
        raise AuthError()

    # Network call happens before the store lock is taken in issue()
    short_link = await state.gateway.shorten(link)
    record = state.engine.issue(link, short_link)

    return {
        "success": True,
        "key": record.id,
        "shortLink": record.short_link,
        "createdAt": record.created_at.isoformat(),
    }


# ═══════════════════════════════════════════════════════════
# REDEEM
# ═══════════════════════════════════════════════════════════

@router.post("/validar")
async def validar(req: ValidarRequest, request: Request):
    """Redeem a key; a key is valid exactly once"""
    key = (req.key or "").strip()
    if not key:
        raise ValidationError("Key não fornecida")

    result = request.app.state.engine.redeem(key)
    if result.valid:
        return {"valid": True, "message": result.message, "usedAt": result.record.used_at.isoformat()}
    return {"valid": False, "message": result.message}
