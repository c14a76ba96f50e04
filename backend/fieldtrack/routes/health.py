"""
Health endpoint.
"""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request):
    engine = request.app.state.lifecycle_engine
    return {"status": "ok", "tracking": engine.is_tracking()}
