"""
Nexus 主应用入口
酒店预订生命周期与财务分类账引擎
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from core.engine.audit import audit_engine
from nexus.config import settings
from nexus.database import SessionLocal, init_db
from nexus.routers import auth, users, rooms, bookings, payments, deletions, reports, audit_logs
from nexus.services.audit_service import make_database_sink
from nexus.services.seed_service import seed_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 初始化数据库
    init_db()

    # 审计日志落库
    audit_engine.add_sink(make_database_sink(SessionLocal))

    if settings.SEED_ON_STARTUP:
        db = SessionLocal()
        try:
            seed_database(db)
        finally:
            db.close()

    logger.info(f"{settings.APP_NAME} started")
    yield

    audit_engine.clear_sinks()


# 创建应用
app = FastAPI(
    title="Nexus - 酒店预订与财务分类账引擎",
    description="预订生命周期、可用性、发票、收款、分类账与审计",
    version="1.0.0",
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 生产环境应限制具体域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(rooms.router)
app.include_router(bookings.router)
app.include_router(payments.router)
app.include_router(deletions.router)
app.include_router(reports.router)
app.include_router(audit_logs.router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "description": "酒店预订生命周期与财务分类账引擎"
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}
