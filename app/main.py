from contextlib import asynccontextmanager
from typing import AsyncIterator
import logging

from app.core.config import settings
from app.core.database import init_database, close_database, database_service
from app.core.logging_config import setup_logging
from app.services.common_cache import rule_cache
from app.services.discount_service import DiscountService
from app.services.rule_sources import RepositoryRuleSource

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan() -> AsyncIterator[DiscountService]:
    """
    应用生命周期管理

    初始化数据库和规则缓存，产出绑定数据库规则来源的折扣服务
    """
    setup_logging()
    logger.info(f"正在启动 {settings.app_name} {settings.app_version}")

    try:
        await init_database()
        logger.info("PostgreSQL数据库初始化成功")
    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    if settings.rule_cache_enabled:
        try:
            await rule_cache.init_redis()
            logger.info("Redis初始化成功")
        except Exception as e:
            # 缓存不可用时直接读取数据库
            logger.warning(f"Redis不可用，折扣规则缓存已禁用: {e}")
            await rule_cache.close_redis()

    logger.info("应用启动完成")

    try:
        yield DiscountService(RepositoryRuleSource())
    finally:
        logger.info("正在关闭应用")
        await close_database()
        await rule_cache.close_redis()
        logger.info("应用关闭完成")


async def health_check() -> dict:
    """数据库和缓存健康检查"""
    db_status = await database_service.health_check()
    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "service": settings.app_name,
        "version": settings.app_version,
        "database": db_status,
        "rule_cache": "enabled" if rule_cache.available else "disabled",
    }
