"""
报表路由
"""
from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from nexus.database import get_db
from nexus.models.schemas import MetricsResponse, PastOccupancyResponse, AccountSummaryResponse
from nexus.services.ledger_service import LedgerService
from nexus.services.metrics_service import MetricsService
from nexus.security.actor import Actor
from nexus.security.auth import require_front_desk

router = APIRouter(prefix="/reports", tags=["统计报表"])


@router.get("/metrics", response_model=MetricsResponse)
def get_metrics(
    start_date: date = Query(default_factory=date.today),
    end_date: date = Query(default_factory=date.today),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """区间经营指标"""
    try:
        return MetricsResponse(**MetricsService(db).metrics(start_date, end_date))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/past-occupancy", response_model=PastOccupancyResponse)
def get_past_occupancy(
    days: int = Query(default=3, ge=1, le=90),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """过去 N 天平均入住率"""
    return PastOccupancyResponse(**MetricsService(db).past_occupancy(days))


@router.get("/ledger-summary", response_model=AccountSummaryResponse)
def get_ledger_summary(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """分类账汇总"""
    return AccountSummaryResponse(**LedgerService(db).account_summary())
