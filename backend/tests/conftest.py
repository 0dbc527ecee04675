"""
Pytest 配置和共享 fixtures
"""
import os
import tempfile

# 测试中不调用外部 LLM，应用生命周期只写临时库
os.environ["ENABLE_LLM"] = "false"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(tempfile.gettempdir(), 'nexus_test.db')}"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from decimal import Decimal

from core.engine.audit import AuditEngine
from nexus.database import Base, get_db
from nexus.models import ontology
from nexus.models.ontology import Room, RoomCategory, RoomStatus, User, UserRole
from nexus.security.actor import Actor
from nexus.security.auth import get_password_hash, create_access_token
from nexus.services.risk_service import RiskAssessment
from nexus.main import app
from nexus.routers.bookings import get_risk_scorer


class StubRiskScorer:
    """固定返回分数的风险评分器"""

    def __init__(self, score=0, reason="stub"):
        self.assessment = RiskAssessment(score=score, reason=reason)
        self.calls = []

    def is_enabled(self):
        return True

    def score(self, draft):
        self.calls.append(draft)
        return self.assessment


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def audit():
    """独立的审计引擎，避免测试之间互相污染"""
    return AuditEngine()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_risk_scorer] = lambda: StubRiskScorer()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============== 用户 / Actor ==============

def make_user(db, username, role, full_name=None, password="123456"):
    user = User(
        username=username,
        password_hash=get_password_hash(password),
        full_name=full_name or username,
        role=role,
        is_active=True
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return make_user(db_session, "admin", UserRole.ADMIN, "管理员")


@pytest.fixture
def manager_user(db_session):
    return make_user(db_session, "manager", UserRole.MANAGER, "张经理")


@pytest.fixture
def receptionist_user(db_session):
    return make_user(db_session, "front1", UserRole.RECEPTIONIST, "李前台")


@pytest.fixture
def housekeeping_user(db_session):
    return make_user(db_session, "cleaner1", UserRole.HOUSEKEEPING, "刘阿姨")


@pytest.fixture
def guest_user(db_session):
    return make_user(db_session, "guest@example.com", UserRole.GUEST, "Ravi Kumar")


@pytest.fixture
def admin(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture
def manager(manager_user):
    return Actor.from_user(manager_user)


@pytest.fixture
def receptionist(receptionist_user):
    return Actor.from_user(receptionist_user)


@pytest.fixture
def housekeeper(housekeeping_user):
    return Actor.from_user(housekeeping_user)


@pytest.fixture
def guest(guest_user):
    return Actor.from_user(guest_user)


def _headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def admin_auth_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def manager_auth_headers(manager_user):
    return _headers(manager_user)


@pytest.fixture
def receptionist_auth_headers(receptionist_user):
    return _headers(receptionist_user)


@pytest.fixture
def housekeeping_auth_headers(housekeeping_user):
    return _headers(housekeeping_user)


@pytest.fixture
def guest_auth_headers(guest_user):
    return _headers(guest_user)


# ============== 房间 ==============

def make_room(db, number="101", price="2500", ac_price="3500",
              category=RoomCategory.STANDARD, status=RoomStatus.VACANT):
    room = Room(
        number=number,
        room_type=category,
        price=Decimal(price),
        ac_price=Decimal(ac_price) if ac_price is not None else None,
        status=status,
        amenities=["Wifi", "TV"],
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture
def sample_room(db_session):
    """标准间 101：非空调 2500，空调 3500"""
    return make_room(db_session, "101")


@pytest.fixture
def sample_room_102(db_session):
    return make_room(db_session, "102")


@pytest.fixture
def non_ac_room(db_session):
    return make_room(db_session, "103", ac_price=None)
