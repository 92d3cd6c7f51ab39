"""
通用缓存工具
为折扣规则快照提供简单的Redis JSON缓存，Redis不可用时所有操作降级为未命中
"""

import json
import logging
from typing import Optional, Any
import redis.asyncio as redis

from app.core.config import settings

logger = logging.getLogger(__name__)


class SimpleCache:
    """简单缓存管理器"""

    def __init__(self, redis_client: Optional[redis.Redis] = None, key_prefix: str = ""):
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    @property
    def available(self) -> bool:
        return self.redis_client is not None

    async def init_redis(self) -> None:
        """初始化Redis连接"""
        if not self.redis_client:
            self.redis_client = redis.from_url(
                settings.redis_url_computed,
                encoding='utf-8',
                decode_responses=True,
                socket_timeout=30,
                socket_connect_timeout=30,
                retry_on_timeout=True,
                max_connections=20
            )

        # 测试连接
        try:
            await self.redis_client.ping()
            logger.info(f"{self.key_prefix}缓存Redis连接初始化成功")
        except Exception as e:
            logger.error(f"Redis连接失败: {e}")
            raise

    async def close_redis(self) -> None:
        """关闭Redis连接"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None

    def _get_key(self, key: str) -> str:
        """获取完整的缓存key"""
        return f"{self.key_prefix}{key}" if self.key_prefix else key

    async def get(self, key: str) -> Optional[Any]:
        """获取缓存值"""
        if not self.available:
            return None
        try:
            data = await self.redis_client.get(self._get_key(key))

            if data:
                return json.loads(data)

            return None

        except Exception as e:
            logger.error(f"获取缓存失败 {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """设置缓存值"""
        if not self.available:
            return False
        try:
            data = json.dumps(value, default=str, ensure_ascii=False)

            await self.redis_client.setex(self._get_key(key), ttl, data)
            return True

        except Exception as e:
            logger.error(f"设置缓存失败 {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """删除缓存"""
        if not self.available:
            return False
        try:
            result = await self.redis_client.delete(self._get_key(key))
            return result > 0

        except Exception as e:
            logger.error(f"删除缓存失败 {key}: {e}")
            return False


# 折扣规则快照缓存
rule_cache = SimpleCache(key_prefix="discount_rule:")
