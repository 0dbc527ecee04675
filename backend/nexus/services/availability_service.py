"""
可用性服务 - 判断房间在某时段是否空闲

区间均为左闭右开 [入住日, 离店日)：离店当天即可再次入住。
is_available 是纯函数，调用方需保证传入的预订快照与随后的写入
处于同一个房间临界区内。
"""
from datetime import date
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
from nexus.models.ontology import Booking, INACTIVE_BOOKING_STATUSES


def intervals_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """两个左闭右开区间是否相交"""
    return start_a < end_b and end_a > start_b


def find_conflicts(room_id: int, start_date: date, end_date: date,
                   bookings: Iterable[Booking],
                   exclude_booking_id: Optional[int] = None) -> List[Booking]:
    """返回与请求时段冲突的预订"""
    conflicts = []
    for b in bookings:
        if exclude_booking_id is not None and b.id == exclude_booking_id:
            continue
        if b.room_id != room_id or b.status in INACTIVE_BOOKING_STATUSES:
            continue
        if intervals_overlap(start_date, end_date, b.check_in_date, b.check_out_date):
            conflicts.append(b)
    return conflicts


def is_available(room_id: int, start_date: date, end_date: date,
                 bookings: Iterable[Booking],
                 exclude_booking_id: Optional[int] = None) -> bool:
    """房间在 [start_date, end_date) 内是否可订"""
    return not find_conflicts(room_id, start_date, end_date, bookings, exclude_booking_id)


class AvailabilityService:
    """从数据库读取房间预订快照并判断可用性"""

    def __init__(self, db: Session):
        self.db = db

    def room_bookings(self, room_id: int) -> List[Booking]:
        """房间的有效预订快照"""
        return self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.status.notin_(INACTIVE_BOOKING_STATUSES)
        ).all()

    def check(self, room_id: int, start_date: date, end_date: date,
              exclude_booking_id: Optional[int] = None) -> bool:
        return is_available(
            room_id, start_date, end_date,
            self.room_bookings(room_id), exclude_booking_id
        )

    def conflicts(self, room_id: int, start_date: date, end_date: date,
                  exclude_booking_id: Optional[int] = None) -> List[Booking]:
        return find_conflicts(
            room_id, start_date, end_date,
            self.room_bookings(room_id), exclude_booking_id
        )
