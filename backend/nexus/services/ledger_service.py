"""
分类账服务 - 仅追加

两类触发：预订创建/修改时的应收差额，以及每一笔收款。
条目从不修改或删除；预订被修改时追加一条冲正/补差条目，
因此预订的完整财务历史需要对条目求和得到。

本服务不提交事务，条目与触发它的预订/支付写入同一事务。
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from nexus.models.ontology import LedgerEntry, LedgerEntryType
from nexus.services.invoice_service import to_decimal, ZERO

logger = logging.getLogger(__name__)


class LedgerService:
    """分类账服务"""

    def __init__(self, db: Session):
        self.db = db

    def record(self, booking_id: int, entry_type: LedgerEntryType, amount: Decimal,
               description: str, reference_id: Optional[str] = None) -> LedgerEntry:
        """追加一条分类账条目"""
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError("分类账金额必须为正数")

        entry = LedgerEntry(
            booking_id=booking_id,
            entry_type=entry_type,
            amount=amount,
            description=description,
            reference_id=reference_id,
        )
        self.db.add(entry)
        self.db.flush()
        logger.info(f"Ledger {entry_type.value} {amount} for booking {booking_id}: {description}")
        return entry

    def record_delta(self, booking_id: int, old_total: Decimal, new_total: Decimal,
                     reference_id: Optional[str] = None) -> Optional[LedgerEntry]:
        """
        按应收合计的变化追加补差条目

        差额为正追加 Debit，为负追加等额 Credit，为零不追加。
        """
        diff = to_decimal(new_total) - to_decimal(old_total)
        if diff > ZERO:
            return self.record(booking_id, LedgerEntryType.DEBIT, diff,
                               "Booking Update: Additional Charges", reference_id)
        if diff < ZERO:
            return self.record(booking_id, LedgerEntryType.CREDIT, abs(diff),
                               "Booking Update: Reduction Adjustment", reference_id)
        return None

    def entries(self, booking_id: int) -> List[LedgerEntry]:
        """预订的全部条目（按写入顺序）"""
        return self.db.query(LedgerEntry).filter(
            LedgerEntry.booking_id == booking_id
        ).order_by(LedgerEntry.id).all()

    def balance(self, booking_id: int) -> Decimal:
        """sum(Debit) - sum(Credit)"""
        return self._net(self.entries(booking_id))

    def account_summary(self) -> Dict[str, Any]:
        """全账户汇总"""
        ledger = self.db.query(LedgerEntry).all()
        total_debit = sum(
            (to_decimal(e.amount) for e in ledger if e.entry_type == LedgerEntryType.DEBIT), ZERO
        )
        total_credit = sum(
            (to_decimal(e.amount) for e in ledger if e.entry_type == LedgerEntryType.CREDIT), ZERO
        )
        return {
            'total_debit': total_debit,
            'total_credit': total_credit,
            'outstanding': total_debit - total_credit,
            'transaction_count': len(ledger),
        }

    @staticmethod
    def _net(entries: List[LedgerEntry]) -> Decimal:
        net = ZERO
        for e in entries:
            if e.entry_type == LedgerEntryType.DEBIT:
                net += to_decimal(e.amount)
            else:
                net -= to_decimal(e.amount)
        return net
