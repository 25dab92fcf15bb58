from __future__ import annotations

from fastapi import APIRouter

from clinic_chat.api.deps import CurrentSession, StoreDep
from clinic_chat.api.v1.schemas.metrics import MetricsResponse
from clinic_chat.config import settings
from clinic_chat.services import metrics_service

router = APIRouter(prefix="/api/v1", tags=["dashboard"])


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(session: CurrentSession, store: StoreDep) -> MetricsResponse:
    metrics = await metrics_service.collect_metrics(session, store)
    return MetricsResponse.model_validate(metrics)


@router.get("/chat/quick-replies", response_model=list[str])
async def get_quick_replies(_session: CurrentSession) -> list[str]:
    return list(settings.QUICK_REPLIES)
