# safestore_backend/app/routers/health.py
from __future__ import annotations

from fastapi import APIRouter

from .. import schemas

router = APIRouter(tags=["health"])


@router.get("/health", response_model=schemas.HealthResponse)
def health():
    return schemas.HealthResponse()
