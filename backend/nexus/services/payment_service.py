"""
支付服务 - 本体操作层
登记客人付款，累加已付金额并追加分类账 Credit 条目

收款不会触发任何状态流转；是否重试退房由调用方决定。
"""
import logging
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from core.engine.audit import AuditEngine, AuditSeverity, audit_engine
from nexus.errors import BookingNotFound, InvalidAmount
from nexus.models.ontology import (
    Booking, LedgerEntryType, Payment, PaymentCategory, PaymentMode
)
from nexus.security.actor import Actor
from nexus.services.invoice_service import ZERO, to_decimal, to_money
from nexus.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class PaymentService:
    """支付服务"""

    def __init__(self, db: Session, audit: Optional[AuditEngine] = None):
        self.db = db
        self.audit = audit or audit_engine
        self.ledger = LedgerService(db)

    def pay(self, booking_id: int, amount: Decimal, mode: PaymentMode,
            category: PaymentCategory, actor: Actor,
            idempotency_key: Optional[str] = None) -> Payment:
        """
        登记一笔付款

        Args:
            booking_id: 预订ID
            amount: 金额，必须为正
            mode: 支付方式
            category: 收款类别
            actor: 操作人
            idempotency_key: 客户端重试键；同一预订重复提交时返回首次的付款记录

        Raises:
            InvalidAmount: 金额不为正
            BookingNotFound: 预订不存在
        """
        amount = to_money(amount)
        if amount <= ZERO:
            raise InvalidAmount(f"付款金额必须大于 0，收到 {amount}", {"amount": str(amount)})

        if idempotency_key:
            existing = self._existing_payment(booking_id, idempotency_key)
            if existing:
                logger.info(f"Duplicate payment submission {idempotency_key} for booking {booking_id}")
                return existing

        # 原子累加，避免并发收款的读-改-写丢失
        updated = self.db.query(Booking).filter(Booking.id == booking_id).update(
            {Booking.paid_amount: Booking.paid_amount + amount},
            synchronize_session=False
        )
        if updated == 0:
            self.db.rollback()
            raise BookingNotFound(f"预订 {booking_id} 不存在", {"booking_id": booking_id})

        try:
            payment = Payment(
                booking_id=booking_id,
                amount=amount,
                mode=mode,
                category=category,
                recorded_by=actor.display_name,
                recorded_by_id=actor.id,
                idempotency_key=idempotency_key,
            )
            self.db.add(payment)
            self.db.flush()

            self.ledger.record(
                booking_id, LedgerEntryType.CREDIT, amount,
                f"Payment Received: {category.value} ({mode.value})", str(payment.id)
            )
            self.db.commit()
        except IntegrityError:
            # 同一重试键的并发提交：回滚本次累加，返回先写入的付款
            self.db.rollback()
            existing = self._existing_payment(booking_id, idempotency_key) if idempotency_key else None
            if existing is None:
                raise
            logger.info(f"Concurrent payment submission {idempotency_key} for booking {booking_id}")
            return existing
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(payment)
        booking = self.db.query(Booking).populate_existing().filter(Booking.id == booking_id).first()
        logger.info(f"Booking {booking_id} paid_amount now {booking.paid_amount if booking else '?'}")

        self.audit.record(
            "PAYMENT_RECEIVED",
            f"Received ₹{amount} [{category.value}] via {mode.value} for booking {booking_id}",
            AuditSeverity.INFO,
            actor_id=actor.id,
        )
        return payment

    def _existing_payment(self, booking_id: int, idempotency_key: str) -> Optional[Payment]:
        existing = self.db.query(Payment).filter(
            Payment.idempotency_key == idempotency_key
        ).first()
        if existing and existing.booking_id != booking_id:
            raise ValueError("重试键已用于其他预订")
        return existing

    def list_payments(self, booking_id: Optional[int] = None) -> List[Payment]:
        """获取付款记录"""
        query = self.db.query(Payment)
        if booking_id is not None:
            query = query.filter(Payment.booking_id == booking_id)
        return query.order_by(Payment.paid_at, Payment.id).all()

    def total_paid(self, booking_id: int) -> Decimal:
        return sum((to_decimal(p.amount) for p in self.list_payments(booking_id)), ZERO)
