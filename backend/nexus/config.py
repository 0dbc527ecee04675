"""
应用配置
从环境变量读取配置，支持 OpenAI 兼容 API 的风险评分
"""
import os
from decimal import Decimal
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Nexus Hotel Engine"
    DEBUG: bool = False

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./nexus.db"

    # JWT 配置
    SECRET_KEY: str = "nexus-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 风险评分 LLM 配置 (OpenAI 兼容 API)
    OPENAI_API_KEY: Optional[str] = os.environ.get("OPENAI_API_KEY")
    OPENAI_BASE_URL: str = os.environ.get(
        "OPENAI_BASE_URL",
        "https://api.deepseek.com"
    )
    LLM_MODEL: str = os.environ.get("LLM_MODEL", "deepseek-chat")
    ENABLE_LLM: bool = os.environ.get("ENABLE_LLM", "true").lower() == "true"
    RISK_TIMEOUT_SECONDS: float = 8.0
    RISK_ALERT_THRESHOLD: int = 80

    # 财务规则
    # 退房时允许的尾差（单位：货币单位），用于吸收浮点噪声
    CHECKOUT_BALANCE_TOLERANCE: Decimal = Decimal("1")

    # 并发控制：房间版本号冲突时的重试次数
    ROOM_LOCK_MAX_RETRIES: int = 5

    # 启动时初始化房间与默认管理员
    SEED_ON_STARTUP: bool = True
    DEFAULT_ADMIN_PASSWORD: str = "admin123"

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
