"""
General API routes.
"""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter

from crypto.encryption import InvalidKeyConfiguration, get_cipher

router = APIRouter(tags=["system"])


@router.get("/health")
async def health_check() -> Dict[str, str]:
    try:
        get_cipher().validate()
    except InvalidKeyConfiguration:
        return {"status": "degraded", "encryption": "misconfigured"}
    return {"status": "ok", "encryption": "ok"}
