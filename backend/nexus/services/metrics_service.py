"""
经营指标服务 - 本体操作层
按日期区间统计入住率、ADR、RevPAR 与按晚分摊的营收
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from nexus.models.ontology import (
    Booking, BookingStatus, DeletionRequest, DeletionRequestStatus, Room,
    INACTIVE_BOOKING_STATUSES
)
from nexus.services.invoice_service import ZERO, to_decimal, to_money
from nexus.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


def overlap_nights(check_in: date, check_out: date, range_start: date, range_end: date) -> int:
    """[check_in, check_out) 与 [range_start, range_end + 1 天) 的交集晚数"""
    start = max(check_in, range_start)
    end = min(check_out, range_end + timedelta(days=1))
    return max(0, (end - start).days)


class MetricsService:
    """经营指标服务"""

    def __init__(self, db: Session):
        self.db = db

    def _active_bookings(self) -> List[Booking]:
        return self.db.query(Booking).filter(
            Booking.status.notin_(INACTIVE_BOOKING_STATUSES)
        ).all()

    def metrics(self, start_date: date, end_date: date,
                today: Optional[date] = None) -> Dict[str, Any]:
        """
        区间经营指标

        Args:
            start_date: 区间起始日（含）
            end_date: 区间结束日（含）
            today: 快照统计所用的当天日期，默认取系统日期

        营收按 total_amount / 总晚数 分摊到区间内的每一晚；
        当日入住/离店与在住数始终按当天统计，不受区间影响。
        """
        if end_date < start_date:
            raise ValueError("结束日期不能早于开始日期")
        today = today or date.today()

        room_count = self.db.query(Room).count()
        days_in_range = max(1, (end_date - start_date).days + 1)
        available = room_count * days_in_range

        bookings = self._active_bookings()
        revenue = ZERO
        occupied = 0
        for b in bookings:
            overlap = overlap_nights(b.check_in_date, b.check_out_date, start_date, end_date)
            if overlap <= 0:
                continue
            nightly_rate = to_decimal(b.total_amount) / max(1, b.nights)
            revenue += nightly_rate * overlap
            occupied += overlap

        occupancy_rate = (occupied / available * 100) if available > 0 else 0
        adr = revenue / occupied if occupied > 0 else ZERO
        rev_par = revenue / available if available > 0 else ZERO

        active = len([
            b for b in bookings
            if b.status == BookingStatus.CHECKED_IN
            or (b.status == BookingStatus.CONFIRMED and b.check_in_date <= today < b.check_out_date)
        ])
        check_ins_today = len([
            b for b in bookings
            if b.status == BookingStatus.CONFIRMED and b.check_in_date == today
        ])
        check_outs_today = len([
            b for b in bookings
            if b.status == BookingStatus.CHECKED_IN and b.check_out_date == today
        ])
        pending_approvals = len([b for b in bookings if b.status == BookingStatus.PENDING])

        pending_deletions = self.db.query(DeletionRequest).filter(
            DeletionRequest.status == DeletionRequestStatus.PENDING
        ).count()

        summary = LedgerService(self.db).account_summary()

        return {
            'start_date': start_date,
            'end_date': end_date,
            'occupancy_rate': round(occupancy_rate, 1),
            'adr': to_money(adr),
            'rev_par': to_money(rev_par),
            'total_revenue': to_money(revenue),
            'occupied_room_nights': occupied,
            'available_room_nights': available,
            'active_bookings': active,
            'check_ins_today': check_ins_today,
            'check_outs_today': check_outs_today,
            'pending_approvals': pending_approvals,
            'pending_deletion_requests': pending_deletions,
            'outstanding_balance': to_money(summary['outstanding']),
        }

    def past_occupancy(self, days: int = 3, today: Optional[date] = None) -> Dict[str, Any]:
        """过去 N 天（不含今天）的平均每晚入住率"""
        today = today or date.today()
        room_count = self.db.query(Room).count()
        if room_count == 0 or days <= 0:
            return {'average_occupancy': 0.0, 'days_analyzed': 0}

        bookings = self._active_bookings()
        total_percent = 0.0
        for i in range(1, days + 1):
            night = today - timedelta(days=i)
            occupied = len([
                b for b in bookings if b.check_in_date <= night < b.check_out_date
            ])
            total_percent += occupied / room_count * 100

        average = total_percent / days
        logger.debug(f"Past {days}-day average occupancy: {average:.1f}%")
        return {'average_occupancy': round(average, 1), 'days_analyzed': days}
