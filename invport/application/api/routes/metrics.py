"""
Metrics Route

GET /metrics exposes Prometheus metrics in text exposition format.
"""

from fastapi import APIRouter, Response

from invport.infrastructure.monitoring.metrics_collector import get_metrics_collector

router = APIRouter(tags=["Monitoring"])


@router.get("/metrics", summary="Prometheus metrics")
async def get_prometheus_metrics():
    metrics = get_metrics_collector()
    return Response(content=metrics.get_prometheus_metrics(), media_type=metrics.get_content_type())
