"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, model_validator
from nexus.models.ontology import (
    RoomStatus, RoomCategory, BookingStatus, PaymentMode, PaymentCategory,
    LedgerEntryType, DeletionRequestStatus, UserRole
)


# ============== 认证 / 用户 Schemas ==============

class LoginRequest(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: UserRole
    full_name: str


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., max_length=100)
    role: UserRole


class UserResponse(BaseModel):
    id: int
    username: str
    full_name: str
    role: UserRole
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


# ============== 房间 Schemas ==============

class RoomCreate(BaseModel):
    number: str = Field(..., max_length=10)
    room_type: RoomCategory
    price: Decimal = Field(..., ge=0)
    ac_price: Optional[Decimal] = Field(None, ge=0)
    amenities: List[str] = Field(default_factory=list)


class RoomUpdate(BaseModel):
    room_type: Optional[RoomCategory] = None
    price: Optional[Decimal] = Field(None, ge=0)
    ac_price: Optional[Decimal] = Field(None, ge=0)
    amenities: Optional[List[str]] = None


class RoomStatusUpdate(BaseModel):
    status: RoomStatus


class RoomResponse(BaseModel):
    id: int
    number: str
    room_type: RoomCategory
    price: Decimal
    ac_price: Optional[Decimal] = None
    status: RoomStatus
    amenities: List[str] = Field(default_factory=list)
    is_ac_capable: bool
    model_config = ConfigDict(from_attributes=True)


# ============== 预订 Schemas ==============

class GuestInfo(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    phone: str = Field(..., min_length=3, max_length=20)
    email: Optional[str] = Field(None, max_length=100)
    id_proof: Optional[str] = Field(None, max_length=50)


class BookingCreate(BaseModel):
    room_id: int
    guest: GuestInfo
    check_in_date: date
    check_out_date: date
    payment_mode: PaymentMode = PaymentMode.CASH
    # 为空时按房价 x 晚数计算
    total_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    booked_as_ac: bool = False
    gst_included: bool = False
    discount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    remarks: str = ""

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("离店日期必须晚于入住日期")
        return self


class BookingUpdate(BaseModel):
    """部分更新；字段为 null 与未传入等价"""
    room_id: Optional[int] = None
    guest: Optional[GuestInfo] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    payment_mode: Optional[PaymentMode] = None
    total_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    booked_as_ac: Optional[bool] = None
    gst_included: Optional[bool] = None
    discount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    remarks: Optional[str] = None


class BookingDecision(BaseModel):
    reason: Optional[str] = None


class BookingResponse(BaseModel):
    id: int
    room_id: int
    guest_first_name: str
    guest_last_name: str
    guest_phone: str
    guest_email: Optional[str] = None
    guest_id_proof: Optional[str] = None
    check_in_date: date
    check_out_date: date
    status: BookingStatus
    payment_mode: PaymentMode
    total_amount: Decimal
    paid_amount: Decimal
    booked_as_ac: bool
    gst_included: bool
    discount: Decimal
    remarks: Optional[str] = None
    risk_score: Optional[int] = None
    risk_reason: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    room_id: int
    check_in_date: date
    check_out_date: date
    available: bool


class GuestLookupResponse(BaseModel):
    guest: GuestInfo
    last_visit: date


# ============== 发票 / 分类账 Schemas ==============

class InvoiceLineItemResponse(BaseModel):
    description: str
    amount: Decimal
    model_config = ConfigDict(from_attributes=True)


class InvoiceResponse(BaseModel):
    booking_id: int
    generated_at: datetime
    line_items: List[InvoiceLineItemResponse]
    total: Decimal
    discount: Decimal
    tax: Decimal
    grand_total: Decimal
    balance_due: Decimal
    model_config = ConfigDict(from_attributes=True)


class LedgerEntryResponse(BaseModel):
    id: int
    booking_id: int
    entry_type: LedgerEntryType
    amount: Decimal
    description: str
    reference_id: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AccountSummaryResponse(BaseModel):
    total_debit: Decimal
    total_credit: Decimal
    outstanding: Decimal
    transaction_count: int


# ============== 支付 Schemas ==============

class PaymentCreate(BaseModel):
    booking_id: int
    # 不在模式层限制正数，由服务层返回 InvalidAmount
    amount: Decimal = Field(..., decimal_places=2)
    mode: PaymentMode
    category: PaymentCategory = PaymentCategory.ROOM_SETTLEMENT
    idempotency_key: Optional[str] = Field(None, max_length=64)


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    amount: Decimal
    mode: PaymentMode
    category: PaymentCategory
    paid_at: datetime
    recorded_by: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 删除申请 Schemas ==============

class DeletionRequestCreate(BaseModel):
    booking_id: int
    reason: str = Field(..., min_length=1)


class DeletionDecision(BaseModel):
    approve: bool


class DeletionRequestResponse(BaseModel):
    id: int
    booking_id: int
    requested_by: str
    reason: str
    status: DeletionRequestStatus
    requested_at: datetime
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 报表 Schemas ==============

class MetricsResponse(BaseModel):
    start_date: date
    end_date: date
    occupancy_rate: float
    adr: Decimal
    rev_par: Decimal
    total_revenue: Decimal
    occupied_room_nights: int
    available_room_nights: int
    active_bookings: int
    check_ins_today: int
    check_outs_today: int
    pending_approvals: int
    pending_deletion_requests: int
    outstanding_balance: Decimal


class PastOccupancyResponse(BaseModel):
    average_occupancy: float
    days_analyzed: int


# ============== 审计 Schemas ==============

class AuditLogResponse(BaseModel):
    log_id: str
    timestamp: datetime
    actor_id: Optional[int] = None
    action: str
    detail: str
    severity: str
