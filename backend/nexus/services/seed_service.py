"""
初始化数据
三层客房（标准间 / 豪华间 / 套房）与默认管理员，仅在表为空时写入
"""
import logging
from decimal import Decimal
from sqlalchemy.orm import Session
from nexus.config import settings
from nexus.models.ontology import Room, RoomCategory, RoomStatus, User, UserRole
from nexus.security.auth import get_password_hash

logger = logging.getLogger(__name__)

# (楼层, 房间数, 房型, 非空调价, 空调价, 设施)
ROOM_FLOORS = [
    (1, 10, RoomCategory.STANDARD, Decimal("2500"), Decimal("3500"),
     ["Wifi", "TV", "AC Option"]),
    (2, 10, RoomCategory.DELUXE, Decimal("4000"), Decimal("5000"),
     ["Wifi", "TV", "AC Option", "Mini Bar", "Balcony"]),
    (3, 5, RoomCategory.SUITE, Decimal("7000"), Decimal("8500"),
     ["Wifi", "TV", "AC Option", "Mini Bar", "Jacuzzi", "Balcony", "Lounge Access"]),
]


def init_rooms(db: Session) -> int:
    """初始化房间"""
    if db.query(Room).count() > 0:
        return 0

    created = 0
    for floor, count, category, price, ac_price, amenities in ROOM_FLOORS:
        for i in range(1, count + 1):
            db.add(Room(
                number=str(floor * 100 + i),
                room_type=category,
                price=price,
                ac_price=ac_price,
                status=RoomStatus.VACANT,
                amenities=list(amenities),
            ))
            created += 1
    db.commit()
    logger.info(f"Seeded {created} rooms")
    return created


def init_admin(db: Session) -> bool:
    """初始化默认管理员"""
    if db.query(User).filter(User.role == UserRole.ADMIN).first():
        return False

    db.add(User(
        username="admin",
        password_hash=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
        full_name="System Admin",
        role=UserRole.ADMIN,
        is_active=True,
    ))
    db.commit()
    logger.info("Seeded default admin user 'admin'")
    return True


def seed_database(db: Session) -> None:
    init_rooms(db)
    init_admin(db)
