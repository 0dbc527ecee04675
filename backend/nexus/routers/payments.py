"""
收款路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from nexus.database import get_db
from nexus.errors import BookingEngineError
from nexus.models.schemas import PaymentCreate, PaymentResponse
from nexus.services.payment_service import PaymentService
from nexus.security.actor import Actor
from nexus.security.auth import require_front_desk

router = APIRouter(prefix="/payments", tags=["收款"])


@router.get("", response_model=List[PaymentResponse])
def list_payments(
    booking_id: Optional[int] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """获取付款记录"""
    return PaymentService(db).list_payments(booking_id)


@router.post("", response_model=PaymentResponse)
def create_payment(
    data: PaymentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """登记付款"""
    try:
        return PaymentService(db).pay(
            data.booking_id, data.amount, data.mode, data.category, actor,
            idempotency_key=data.idempotency_key
        )
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
