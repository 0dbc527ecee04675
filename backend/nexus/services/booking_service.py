"""
预订生命周期服务 - 本体操作层
管理 Booking 聚合根：状态机、权限闸门、可用性检查、分类账补差与房间状态联动

状态流转：
    Pending -> Confirmed -> Checked-In -> Checked-Out
    Pending -> Cancelled / Rejected
删除不属于状态流转，由 DeletionService 处理。

并发：创建/修改预订时，可用性检查与写入在同一个房间临界区内完成
（进程内按房间加锁 + 数据库房间版本号 CAS，冲突时回滚重试）。
"""
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar
from sqlalchemy.orm import Session
from core.engine.audit import AuditEngine, AuditSeverity, audit_engine
from core.engine.locks import room_locks
from core.engine.state_machine import StateMachine, StateMachineConfig, StateTransition
from nexus.config import settings
from nexus.errors import (
    BookingNotFound, InvalidTransition, OutstandingBalance, PermissionDenied,
    RoomNotFound, RoomUnavailable, StaleRoomVersion
)
from nexus.models.ontology import (
    Booking, BookingStatus, LedgerEntryType, Room, RoomStatus, SETTLED_BOOKING_STATUSES
)
from nexus.models.schemas import BookingCreate, BookingUpdate
from nexus.security.actor import Actor, APPROVER_ROLES, CHECK_IN_EDITOR_ROLES
from nexus.services.availability_service import AvailabilityService
from nexus.services.invoice_service import (
    Invoice, ZERO, generate_invoice, quote_room_charge, to_money
)
from nexus.services.ledger_service import LedgerService
from nexus.services.risk_service import RiskAssessment, RiskScorer, UNAVAILABLE

logger = logging.getLogger(__name__)

T = TypeVar("T")

BOOKING_LIFECYCLE = StateMachine(StateMachineConfig(
    name="Booking",
    states=[s.value for s in BookingStatus],
    transitions=[
        StateTransition(BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value, "approve"),
        StateTransition(BookingStatus.PENDING.value, BookingStatus.REJECTED.value, "reject"),
        StateTransition(BookingStatus.PENDING.value, BookingStatus.CANCELLED.value, "cancel"),
        StateTransition(BookingStatus.CONFIRMED.value, BookingStatus.CHECKED_IN.value, "check_in"),
        StateTransition(BookingStatus.CHECKED_IN.value, BookingStatus.CHECKED_OUT.value, "check_out"),
    ],
    initial_state=BookingStatus.PENDING.value,
    final_states={
        BookingStatus.CHECKED_OUT.value, BookingStatus.CANCELLED.value, BookingStatus.REJECTED.value
    },
))

# 客人快照字段
GUEST_FIELDS = {
    "first_name": "guest_first_name",
    "last_name": "guest_last_name",
    "phone": "guest_phone",
    "email": "guest_email",
    "id_proof": "guest_id_proof",
}

# 这些字段变化且未显式给出房费时，按房价重新计价
REPRICE_FIELDS = ("room_id", "check_in_date", "check_out_date", "booked_as_ac")


class BookingService:
    """预订生命周期服务"""

    def __init__(self, db: Session, audit: Optional[AuditEngine] = None,
                 risk_scorer: Optional[RiskScorer] = None):
        self.db = db
        self.audit = audit or audit_engine
        self.risk_scorer = risk_scorer or RiskScorer()
        self.availability = AvailabilityService(db)
        self.ledger = LedgerService(db)

    # ============== 查询 ==============

    def get_booking(self, booking_id: int) -> Booking:
        """获取预订，不存在时抛出 BookingNotFound"""
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise BookingNotFound(f"预订 {booking_id} 不存在", {"booking_id": booking_id})
        return booking

    def list_bookings(self, status: Optional[BookingStatus] = None,
                      room_id: Optional[int] = None,
                      created_by: Optional[int] = None) -> List[Booking]:
        """获取预订列表"""
        query = self.db.query(Booking)
        if status:
            query = query.filter(Booking.status == status)
        if room_id:
            query = query.filter(Booking.room_id == room_id)
        if created_by:
            query = query.filter(Booking.created_by == created_by)
        return query.order_by(Booking.check_in_date.desc()).all()

    def get_invoice(self, booking_id: int) -> Invoice:
        return generate_invoice(self.get_booking(booking_id))

    def is_room_available(self, room_id: int, check_in_date: date, check_out_date: date,
                          exclude_booking_id: Optional[int] = None) -> bool:
        self._get_room(room_id)
        return self.availability.check(room_id, check_in_date, check_out_date, exclude_booking_id)

    def find_guest_by_phone(self, phone: str) -> Optional[Dict[str, Any]]:
        """按手机号查找回头客：返回最近一次预订的客人快照与离店日期"""
        booking = self.db.query(Booking).filter(
            Booking.guest_phone == phone
        ).order_by(Booking.created_at.desc(), Booking.id.desc()).first()
        if not booking:
            return None
        return {
            'guest': {
                field: getattr(booking, column) for field, column in GUEST_FIELDS.items()
            },
            'last_visit': booking.check_out_date,
        }

    # ============== 创建 ==============

    def create(self, data: BookingCreate, actor: Actor) -> Booking:
        """
        创建预订

        员工录入直接为 Confirmed，客人自助下单为 Pending。
        风险评分在房间临界区之外调用，失败降级为 0 分。
        """
        room = self._get_room(data.room_id)
        self._validate_ac(room, data.booked_as_ac)
        total_amount = (
            to_money(data.total_amount) if data.total_amount is not None
            else quote_room_charge(room, data.check_in_date, data.check_out_date, data.booked_as_ac)
        )

        # 预检查：明显冲突时不必调用外部评分
        if not self.availability.check(room.id, data.check_in_date, data.check_out_date):
            raise self._unavailable(room, data.check_in_date, data.check_out_date)

        risk = self._assess_risk(data, total_amount)
        status = BookingStatus.PENDING if actor.is_guest else BookingStatus.CONFIRMED

        def write(locked_room: Room) -> Booking:
            if not self.availability.check(locked_room.id, data.check_in_date, data.check_out_date):
                raise self._unavailable(locked_room, data.check_in_date, data.check_out_date)

            booking = Booking(
                room_id=locked_room.id,
                check_in_date=data.check_in_date,
                check_out_date=data.check_out_date,
                status=status,
                payment_mode=data.payment_mode,
                total_amount=total_amount,
                paid_amount=ZERO,
                booked_as_ac=data.booked_as_ac,
                gst_included=data.gst_included,
                discount=to_money(data.discount),
                remarks=data.remarks or "",
                risk_score=risk.score,
                risk_reason=risk.reason,
                created_by=actor.id or None,
            )
            self._apply_guest(booking, data.guest.model_dump())
            self.db.add(booking)
            self.db.flush()

            invoice = generate_invoice(booking)
            if invoice.grand_total > ZERO:
                self.ledger.record(booking.id, LedgerEntryType.DEBIT, invoice.grand_total,
                                   "Room Charges & Tax", str(booking.id))
            return booking

        booking = self._in_room_section(room.id, write)
        self.db.refresh(booking)

        if risk.score > settings.RISK_ALERT_THRESHOLD:
            self._record("FRAUD_FLAG",
                         f"High risk booking {booking.id} flagged. Score: {risk.score}. Reason: {risk.reason}",
                         AuditSeverity.WARNING, actor)
        self._record("BOOKING_CREATED",
                     f"Booking {booking.id} created for room {room.number} "
                     f"({booking.check_in_date} to {booking.check_out_date}) as {booking.status.value}",
                     AuditSeverity.INFO, actor)
        return booking

    # ============== 状态流转 ==============

    def approve(self, booking_id: int, actor: Actor) -> Booking:
        """审批客人自助预订"""
        booking = self.get_booking(booking_id)
        self._require_transition(booking, "approve")
        if actor.role not in APPROVER_ROLES:
            self._deny(actor, f"User {actor.display_name} attempted to approve booking {booking_id}",
                       "只有管理员、经理或前台可以审批预订")

        booking.status = BookingStatus(BOOKING_LIFECYCLE.fire(booking.status.value, "approve"))
        self.db.commit()
        self.db.refresh(booking)
        self._record("BOOKING_APPROVED", f"Booking {booking_id} approved", AuditSeverity.INFO, actor)
        return booking

    def reject(self, booking_id: int, actor: Actor, reason: Optional[str] = None) -> Booking:
        """拒绝客人自助预订"""
        booking = self.get_booking(booking_id)
        self._require_transition(booking, "reject")
        if actor.role not in APPROVER_ROLES:
            self._deny(actor, f"User {actor.display_name} attempted to reject booking {booking_id}",
                       "只有管理员、经理或前台可以拒绝预订")

        booking.status = BookingStatus(BOOKING_LIFECYCLE.fire(booking.status.value, "reject"))
        if reason:
            booking.remarks = self._append_remark(booking.remarks, f"Rejected: {reason}")
        self.db.commit()
        self.db.refresh(booking)
        self._record("BOOKING_REJECTED", f"Booking {booking_id} rejected. {reason or ''}".strip(),
                     AuditSeverity.WARNING, actor)
        return booking

    def cancel(self, booking_id: int, actor: Actor, reason: Optional[str] = None) -> Booking:
        """取消待审批预订；客人只能取消自己提交的预订"""
        booking = self.get_booking(booking_id)
        self._require_transition(booking, "cancel")
        if actor.is_guest and booking.created_by != actor.id:
            self._deny(actor, f"Guest {actor.display_name} attempted to cancel booking {booking_id}",
                       "客人只能取消自己的预订")

        booking.status = BookingStatus(BOOKING_LIFECYCLE.fire(booking.status.value, "cancel"))
        if reason:
            booking.remarks = self._append_remark(booking.remarks, f"Cancelled: {reason}")
        self.db.commit()
        self.db.refresh(booking)
        self._record("BOOKING_CANCELLED", f"Booking {booking_id} cancelled. {reason or ''}".strip(),
                     AuditSeverity.INFO, actor)
        return booking

    def check_in(self, booking_id: int, actor: Actor) -> Booking:
        """办理入住：房间置为 Occupied"""
        booking = self.get_booking(booking_id)
        self._require_transition(booking, "check_in")

        booking.status = BookingStatus(BOOKING_LIFECYCLE.fire(booking.status.value, "check_in"))
        booking.room.status = RoomStatus.OCCUPIED
        self.db.commit()
        self.db.refresh(booking)
        self._record("CHECK_IN", f"Guest checked in for booking {booking_id}", AuditSeverity.INFO, actor)
        return booking

    def check_out(self, booking_id: int, actor: Actor) -> Booking:
        """
        办理退房：房间置为 Cleaning

        存在超出容差的未付余额时拒绝退房（不回滚任何状态），
        由调用方收款后重试。
        """
        booking = self.get_booking(booking_id)
        self._require_transition(booking, "check_out")

        invoice = generate_invoice(booking)
        if invoice.balance_due > settings.CHECKOUT_BALANCE_TOLERANCE:
            self._record("REVENUE_LEAKAGE",
                         f"Attempted checkout of booking {booking_id} with balance due: ₹{invoice.balance_due:.2f}",
                         AuditSeverity.CRITICAL, actor)
            raise OutstandingBalance(
                f"无法退房，待付余额 ₹{invoice.balance_due:.2f}",
                {"booking_id": booking_id, "balance_due": str(invoice.balance_due)}
            )

        booking.status = BookingStatus(BOOKING_LIFECYCLE.fire(booking.status.value, "check_out"))
        booking.room.status = RoomStatus.CLEANING
        self.db.commit()
        self.db.refresh(booking)
        self._record("CHECK_OUT", f"Checkout complete for booking {booking_id}", AuditSeverity.INFO, actor)
        return booking

    # ============== 修改 ==============

    def update(self, booking_id: int, data: BookingUpdate, actor: Actor) -> Booking:
        """
        修改预订

        权限闸门先于可用性检查，且在房间临界区之外判定：
        0. 客人只能修改自己提交的预订
        1. 修改入住日期：仅 Admin / Manager
        2. 已结算预订修改离店日期：仅 Admin
        显式传入的 null 视为未修改。
        修改后按新旧应收合计的差额追加分类账条目，历史条目不改写。
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        current = self.get_booking(booking_id)
        self._check_update_gates(current, changes, actor)
        gated = (current.check_in_date, current.check_out_date, current.status)
        target_room = self._get_room(changes.get("room_id") or current.room_id)

        def write(locked_room: Room) -> Booking:
            booking = self.db.query(Booking).populate_existing().filter(
                Booking.id == booking_id
            ).first()
            if not booking:
                raise BookingNotFound(f"预订 {booking_id} 不存在", {"booking_id": booking_id})
            if (booking.check_in_date, booking.check_out_date, booking.status) != gated:
                raise InvalidTransition(
                    f"预订 {booking_id} 已被其他请求修改，请重试", {"booking_id": booking_id}
                )

            new_check_in = changes.get("check_in_date", booking.check_in_date)
            new_check_out = changes.get("check_out_date", booking.check_out_date)
            if new_check_out <= new_check_in:
                raise ValueError("离店日期必须晚于入住日期")

            if not self.availability.check(locked_room.id, new_check_in, new_check_out,
                                           exclude_booking_id=booking.id):
                raise self._unavailable(locked_room, new_check_in, new_check_out)

            booked_as_ac = changes.get("booked_as_ac", booking.booked_as_ac)
            self._validate_ac(locked_room, booked_as_ac)

            previous_invoice = generate_invoice(booking)
            reprice = "total_amount" not in changes and any(
                f in changes and changes[f] != getattr(booking, f) for f in REPRICE_FIELDS
            )

            for key, value in changes.items():
                if key == "guest":
                    self._apply_guest(booking, value)
                elif key in ("total_amount", "discount"):
                    setattr(booking, key, to_money(value))
                else:
                    setattr(booking, key, value)
            booking.room_id = locked_room.id
            if reprice:
                booking.total_amount = quote_room_charge(
                    locked_room, new_check_in, new_check_out, booked_as_ac
                )
            self.db.flush()

            new_invoice = generate_invoice(booking)
            self.ledger.record_delta(booking.id, previous_invoice.grand_total,
                                     new_invoice.grand_total, str(booking.id))
            return booking

        booking = self._in_room_section(target_room.id, write)
        self.db.refresh(booking)
        self._record("BOOKING_MODIFIED", f"Booking {booking_id} modified.", AuditSeverity.WARNING, actor)
        return booking

    # ============== 内部方法 ==============

    def _get_room(self, room_id: int) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise RoomNotFound(f"房间 {room_id} 不存在", {"room_id": room_id})
        return room

    def _claim_room(self, room_id: int) -> Room:
        """
        房间版本号比较交换

        UPDATE rooms SET version = v + 1 WHERE id = :id AND version = v
        未更新到行说明有并发写入，抛出 StaleRoomVersion 由外层重试。
        """
        room = self.db.query(Room).populate_existing().filter(Room.id == room_id).first()
        if not room:
            raise RoomNotFound(f"房间 {room_id} 不存在", {"room_id": room_id})

        expected = room.version
        claimed = self.db.query(Room).filter(
            Room.id == room_id, Room.version == expected
        ).update({Room.version: expected + 1}, synchronize_session=False)
        if claimed == 0:
            raise StaleRoomVersion(f"房间 {room_id} 版本冲突", {"room_id": room_id, "version": expected})

        self.db.refresh(room)
        return room

    def _in_room_section(self, room_id: int, work: Callable[[Room], T]) -> T:
        """在房间临界区内执行 work 并提交；版本冲突时回滚重试"""
        attempts = max(1, settings.ROOM_LOCK_MAX_RETRIES)
        for attempt in range(1, attempts + 1):
            with room_locks.hold(room_id):
                try:
                    room = self._claim_room(room_id)
                    result = work(room)
                    self.db.commit()
                    return result
                except StaleRoomVersion:
                    self.db.rollback()
                    logger.warning(f"Room {room_id} version conflict, retry {attempt}/{attempts}")
                except Exception:
                    self.db.rollback()
                    raise

        raise RoomUnavailable("房间正被其他请求修改，请稍后重试", {"room_id": room_id})

    def _assess_risk(self, data: BookingCreate, total_amount) -> RiskAssessment:
        draft = {
            "guest_name": f"{data.guest.first_name} {data.guest.last_name}".strip(),
            "phone": data.guest.phone,
            "check_in": data.check_in_date.isoformat(),
            "check_out": data.check_out_date.isoformat(),
            "total_amount": str(total_amount),
            "payment_mode": data.payment_mode.value,
        }
        try:
            return self.risk_scorer.score(draft)
        except Exception as e:
            logger.warning(f"Risk scorer raised, using neutral score: {e}")
            return UNAVAILABLE

    def _check_update_gates(self, booking: Booking, changes: Dict[str, Any], actor: Actor) -> None:
        """修改权限闸门；只做普通读取，拒绝时会话尚未持有写锁"""
        booking_id = booking.id
        if actor.is_guest and booking.created_by != actor.id:
            self._deny(actor, f"Guest {actor.display_name} attempted to modify Booking {booking_id}",
                       "客人只能修改自己的预订")

        new_check_in = changes.get("check_in_date", booking.check_in_date)
        if new_check_in != booking.check_in_date and actor.role not in CHECK_IN_EDITOR_ROLES:
            self._deny(actor,
                       f"User {actor.display_name} tried to change Check-In date for Booking {booking_id}",
                       "只有经理或管理员可以修改入住日期")

        new_check_out = changes.get("check_out_date", booking.check_out_date)
        is_settled = booking.status in SETTLED_BOOKING_STATUSES
        if new_check_out != booking.check_out_date and is_settled and not actor.is_admin:
            self._deny(actor,
                       f"User {actor.display_name} tried to change Check-Out date for settled Booking {booking_id}",
                       "已确认的预订只有管理员可以修改离店日期")

    def _require_transition(self, booking: Booking, trigger: str) -> None:
        if not BOOKING_LIFECYCLE.can_fire(booking.status.value, trigger):
            raise InvalidTransition(
                f"状态为 {booking.status.value} 的预订不能执行 {trigger}",
                {"booking_id": booking.id, "status": booking.status.value, "action": trigger}
            )

    def _deny(self, actor: Actor, detail: str, message: str) -> None:
        """记录 critical 审计后抛出 PermissionDenied"""
        self._record("UNAUTHORIZED_ATTEMPT", detail, AuditSeverity.CRITICAL, actor)
        raise PermissionDenied(message, {"role": actor.role.value})

    def _record(self, action: str, detail: str, severity: AuditSeverity, actor: Actor) -> None:
        self.audit.record(action, detail, severity, actor_id=actor.id)

    @staticmethod
    def _unavailable(room: Room, check_in_date: date, check_out_date: date) -> RoomUnavailable:
        return RoomUnavailable(
            f"房间 {room.number} 在 {check_in_date} 至 {check_out_date} 已被预订",
            {"room_id": room.id, "check_in_date": str(check_in_date), "check_out_date": str(check_out_date)}
        )

    @staticmethod
    def _validate_ac(room: Room, booked_as_ac: bool) -> None:
        if booked_as_ac and not room.is_ac_capable:
            raise ValueError(f"房间 {room.number} 不支持空调")

    @staticmethod
    def _apply_guest(booking: Booking, guest: Dict[str, Any]) -> None:
        for field, column in GUEST_FIELDS.items():
            if field in guest:
                value = guest[field]
                setattr(booking, column, "" if value is None and column == "guest_last_name" else value)

    @staticmethod
    def _append_remark(remarks: Optional[str], note: str) -> str:
        return f"{remarks}\n{note}" if remarks else note
