from fastapi import APIRouter, Response

from backend.job_assist.utils.prometheus_metrics import get_metrics

router = APIRouter(tags=["ops"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/metrics")
def prometheus_metrics():
    data, content_type = get_metrics()
    return Response(content=data, media_type=content_type)
