"""
预订管理路由
客人只能看到并操作自己提交的预订；状态流转的角色校验在服务层完成
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from nexus.database import get_db
from nexus.errors import BookingEngineError, PermissionDenied
from nexus.models.ontology import BookingStatus
from nexus.models.schemas import (
    BookingCreate, BookingUpdate, BookingDecision, BookingResponse,
    AvailabilityResponse, GuestLookupResponse, InvoiceResponse, LedgerEntryResponse
)
from nexus.services.booking_service import BookingService
from nexus.services.risk_service import RiskScorer
from nexus.security.actor import Actor
from nexus.security.auth import get_current_actor, require_front_desk

router = APIRouter(prefix="/bookings", tags=["预订管理"])


def get_risk_scorer() -> RiskScorer:
    """风险评分依赖，测试中可覆盖"""
    return RiskScorer()


def _service(db: Session, risk_scorer: Optional[RiskScorer] = None) -> BookingService:
    return BookingService(db, risk_scorer=risk_scorer)


def _visible_booking(service: BookingService, booking_id: int, actor: Actor):
    booking = service.get_booking(booking_id)
    if actor.is_guest and booking.created_by != actor.id:
        raise PermissionDenied("客人只能查看自己的预订", {"booking_id": booking_id})
    return booking


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    status: Optional[BookingStatus] = None,
    room_id: Optional[int] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """获取预订列表"""
    created_by = actor.id if actor.is_guest else None
    return _service(db).list_bookings(status, room_id, created_by)


@router.get("/availability", response_model=AvailabilityResponse)
def check_availability(
    room_id: int,
    check_in_date: date,
    check_out_date: date,
    exclude_booking_id: Optional[int] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """查询房间在某时段是否可订"""
    try:
        available = _service(db).is_room_available(
            room_id, check_in_date, check_out_date, exclude_booking_id
        )
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return AvailabilityResponse(
        room_id=room_id,
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        available=available,
    )


@router.get("/guests/lookup", response_model=GuestLookupResponse)
def lookup_guest(
    phone: str = Query(..., min_length=3),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """按手机号查找回头客"""
    result = _service(db).find_guest_by_phone(phone)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="未找到该客人")
    return GuestLookupResponse(**result)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """获取预订详情"""
    try:
        return _visible_booking(_service(db), booking_id, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("", response_model=BookingResponse)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    risk_scorer: RiskScorer = Depends(get_risk_scorer)
):
    """创建预订；客人下单为待审批"""
    try:
        return _service(db, risk_scorer).create(data, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """修改预订；客人只能修改自己的预订，权限闸门在服务层"""
    try:
        return _service(db).update(booking_id, data, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{booking_id}/approve", response_model=BookingResponse)
def approve_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """审批待处理预订"""
    try:
        return _service(db).approve(booking_id, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/{booking_id}/reject", response_model=BookingResponse)
def reject_booking(
    booking_id: int,
    data: BookingDecision = BookingDecision(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """拒绝待处理预订"""
    try:
        return _service(db).reject(booking_id, actor, data.reason)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    data: BookingDecision = BookingDecision(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """取消待处理预订"""
    try:
        return _service(db).cancel(booking_id, actor, data.reason)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
def check_in(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """办理入住"""
    try:
        return _service(db).check_in(booking_id, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/{booking_id}/check-out", response_model=BookingResponse)
def check_out(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """办理退房；存在未付余额时返回 409"""
    try:
        return _service(db).check_out(booking_id, actor)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/{booking_id}/invoice", response_model=InvoiceResponse)
def get_invoice(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """生成发票"""
    service = _service(db)
    try:
        _visible_booking(service, booking_id, actor)
        return service.get_invoice(booking_id)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/{booking_id}/ledger", response_model=List[LedgerEntryResponse])
def get_ledger(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_front_desk)
):
    """预订的分类账条目"""
    service = _service(db)
    try:
        service.get_booking(booking_id)
    except BookingEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return service.ledger.entries(booking_id)
