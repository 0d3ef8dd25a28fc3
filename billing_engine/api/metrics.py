from typing import Any, Dict
from fastapi import APIRouter
from billing_engine.monitoring.metrics import numbering_metrics

router = APIRouter(prefix="/api/metrics", tags=["Metrics"])

@router.get("/numbering")
async def get_numbering_metrics() -> Dict[str, Any]:
    """Normal vs emergency number allocations since process start."""
    return numbering_metrics.snapshot()
