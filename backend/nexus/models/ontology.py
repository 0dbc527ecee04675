"""
本体对象定义 (Ontology Objects)
房间、预订、支付、分类账与删除申请
金额统一使用 Decimal (Numeric 列)，日期为自然日
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, JSON,
    ForeignKey, Text, Enum as SQLEnum, Boolean, Numeric, Index, text
)
from sqlalchemy.orm import relationship
from nexus.database import Base


# ============== 枚举定义 ==============

class RoomStatus(str, Enum):
    """房间状态枚举"""
    VACANT = "Vacant"              # 空闲
    OCCUPIED = "Occupied"          # 入住中
    CLEANING = "Cleaning"          # 待清洁
    MAINTENANCE = "Maintenance"    # 维修中


class RoomCategory(str, Enum):
    """房型"""
    STANDARD = "Standard"
    DELUXE = "Deluxe"
    SUITE = "Suite"


class BookingStatus(str, Enum):
    """预订状态枚举"""
    PENDING = "Pending"            # 待审批（客人自助下单）
    CONFIRMED = "Confirmed"        # 已确认
    CHECKED_IN = "Checked-In"      # 已入住
    CHECKED_OUT = "Checked-Out"    # 已退房
    CANCELLED = "Cancelled"        # 已取消
    REJECTED = "Rejected"          # 已拒绝


# 不占用房间的状态
INACTIVE_BOOKING_STATUSES = (BookingStatus.CANCELLED, BookingStatus.REJECTED)

# 已结算（财务或运营上已承诺）的状态
SETTLED_BOOKING_STATUSES = (
    BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN, BookingStatus.CHECKED_OUT
)


class PaymentMode(str, Enum):
    """支付方式"""
    UPI = "UPI"
    CARD = "Card"
    CASH = "Cash"
    BANK = "Bank"


class PaymentCategory(str, Enum):
    """收款类别"""
    ROOM_SETTLEMENT = "Room Settlement"
    FOOD_AND_BEVERAGE = "Food & Beverage"
    SERVICES = "Services"
    DAMAGE_FEE = "Damage Fee"
    ADVANCE = "Advance"
    OTHER = "Other"
    FINAL_SETTLEMENT = "Final Settlement"


class LedgerEntryType(str, Enum):
    """分类账方向：Debit = 客人应付，Credit = 客人已付或冲减"""
    DEBIT = "Debit"
    CREDIT = "Credit"


class DeletionRequestStatus(str, Enum):
    """删除申请状态"""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class UserRole(str, Enum):
    """用户角色"""
    ADMIN = "Admin"
    MANAGER = "Manager"
    RECEPTIONIST = "Receptionist"
    STAFF = "Staff"
    HOUSEKEEPING = "Housekeeping"
    GUEST = "Guest"


class AuditSeverityLevel(str, Enum):
    """审计严重程度"""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


# ============== 本体对象定义 ==============

class Room(Base):
    """
    房间对象
    ac_price 非空即表示该房间可选空调
    version 用于按房间的乐观并发控制，每次预订写入都会递增
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String(10), unique=True, nullable=False)      # 房间号
    room_type = Column(SQLEnum(RoomCategory), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)                # 非空调价
    ac_price = Column(Numeric(12, 2), nullable=True)              # 空调价
    status = Column(SQLEnum(RoomStatus), default=RoomStatus.VACANT, nullable=False)
    amenities = Column(JSON, default=list)
    version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = relationship("Booking", back_populates="room")

    @property
    def is_ac_capable(self) -> bool:
        return self.ac_price is not None


class Booking(Base):
    """
    预订对象 - 聚合根
    客人信息在创建时复制为快照，不随客人档案变化
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)

    # 客人快照
    guest_first_name = Column(String(100), nullable=False)
    guest_last_name = Column(String(100), nullable=False, default="")
    guest_phone = Column(String(20), nullable=False, index=True)
    guest_email = Column(String(100))
    guest_id_proof = Column(String(50))

    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.PENDING, nullable=False)
    payment_mode = Column(SQLEnum(PaymentMode), default=PaymentMode.CASH, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)          # 税前房费
    paid_amount = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    booked_as_ac = Column(Boolean, default=False, nullable=False)
    gst_included = Column(Boolean, default=False, nullable=False)
    discount = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    remarks = Column(Text, default="")
    risk_score = Column(Integer)
    risk_reason = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_by = Column(Integer, ForeignKey("users.id"))

    room = relationship("Room", back_populates="bookings")
    creator = relationship("User", foreign_keys=[created_by])

    @property
    def guest_name(self) -> str:
        return f"{self.guest_first_name} {self.guest_last_name}".strip()

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days


class Payment(Base):
    """
    支付记录 - 写入后不可修改
    booking_id 为普通引用，预订被删除后支付记录仍保留
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    mode = Column(SQLEnum(PaymentMode), nullable=False)
    category = Column(SQLEnum(PaymentCategory), nullable=False)
    paid_at = Column(DateTime, default=datetime.utcnow)
    recorded_by = Column(String(100))
    recorded_by_id = Column(Integer)
    idempotency_key = Column(String(64), unique=True, nullable=True)


class LedgerEntry(Base):
    """
    分类账条目 - 仅追加
    同一预订 sum(Debit) - sum(Credit) 应等于当前应付余额
    """
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, nullable=False, index=True)
    entry_type = Column(SQLEnum(LedgerEntryType), nullable=False)
    amount = Column(Numeric(14, 4), nullable=False)
    description = Column(String(200), nullable=False)
    reference_id = Column(String(64))                 # 预订号或支付号
    created_at = Column(DateTime, default=datetime.utcnow)


class DeletionRequest(Base):
    """删除申请 - 每个预订最多一条待处理申请"""
    __tablename__ = "deletion_requests"
    __table_args__ = (
        Index(
            "uq_deletion_request_pending", "booking_id", unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, nullable=False, index=True)
    requested_by = Column(String(100), nullable=False)
    requested_by_id = Column(Integer)
    reason = Column(Text, nullable=False)
    status = Column(SQLEnum(DeletionRequestStatus), default=DeletionRequestStatus.PENDING, nullable=False)
    requested_at = Column(DateTime, default=datetime.utcnow)
    decided_by = Column(String(100))
    decided_at = Column(DateTime)


class User(Base):
    """
    用户对象
    员工与注册客人共用，按角色区分权限
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False)   # 客人为邮箱
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class AuditLogRecord(Base):
    """审计日志持久化表"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    log_id = Column(String(36), unique=True, nullable=False)
    actor_id = Column(Integer)
    action = Column(String(100), nullable=False)
    detail = Column(Text)
    severity = Column(SQLEnum(AuditSeverityLevel), default=AuditSeverityLevel.INFO)
    created_at = Column(DateTime, default=datetime.utcnow)
