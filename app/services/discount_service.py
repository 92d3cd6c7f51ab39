"""
折扣业务服务层
负责加载规则快照 (缓存优先)，再交给折扣引擎计算；
规则数据不可用时不打折，原价透传
"""

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import RuleSourceError
from app.models.discount import AvailableDiscount, DiscountCalculation, ItemDiscountOffer
from app.models.discount_rule import DiscountRule
from app.services.common_cache import SimpleCache, rule_cache
from app.services.discount_engine import DiscountEngine, discount_engine
from app.services.rule_matcher import coerce_rules
from app.services.rule_sources import RuleSource

logger = logging.getLogger(__name__)

RULES_CACHE_KEY = "snapshot"


class DiscountService:
    """折扣业务服务类"""

    def __init__(
        self,
        rule_source: RuleSource,
        engine: Optional[DiscountEngine] = None,
        cache: Optional[SimpleCache] = None,
        use_cache: Optional[bool] = None
    ):
        self.rule_source = rule_source
        self.engine = engine or discount_engine
        self.cache = cache or rule_cache
        self.use_cache = settings.rule_cache_enabled if use_cache is None else use_cache

    async def get_rules(self, use_cache: bool = True) -> List[DiscountRule]:
        """
        获取规则快照

        Args:
            use_cache: 是否优先读取缓存

        Returns:
            解析后的规则列表，配置不完整的规则已被跳过

        Raises:
            RuleSourceError: 规则来源不可用
        """
        rules, _ = await self.load_rules(use_cache=use_cache)
        return rules

    async def load_rules(self, use_cache: bool = True) -> Tuple[List[DiscountRule], List[str]]:
        """
        加载规则快照及被跳过的规则ID

        缓存中同时保存解析后的规则和被跳过的规则ID

        Raises:
            RuleSourceError: 规则来源不可用
        """
        use_cache = use_cache and self.use_cache

        if use_cache:
            cached = await self.cache.get(RULES_CACHE_KEY)
            if cached is not None:
                logger.debug(f"从缓存获取折扣规则 {len(cached['rules'])} 条")
                rules, _ = coerce_rules(cached["rules"])
                return rules, list(cached.get("skipped", []))

        try:
            records = await self.rule_source.fetch_rules()
        except RuleSourceError:
            raise
        except Exception as e:
            logger.error(f"读取折扣规则失败: {e}")
            raise RuleSourceError(f"读取折扣规则失败: {e}") from e

        rules, skipped = coerce_rules(records)
        if skipped:
            logger.warning(f"跳过配置不完整的折扣规则: {skipped}")

        if use_cache:
            snapshot = {
                "rules": [rule.model_dump(mode="json") for rule in rules],
                "skipped": skipped,
            }
            await self.cache.set(RULES_CACHE_KEY, snapshot, ttl=settings.rule_cache_ttl)

        return rules, skipped

    async def list_rules(self) -> List[DiscountRule]:
        """管理后台规则列表，直接读取来源"""
        return await self.get_rules(use_cache=False)

    async def invalidate_rules(self) -> bool:
        """规则变更后清除缓存"""
        return await self.cache.delete(RULES_CACHE_KEY)

    async def calculate_discounts(
        self,
        line_items: Iterable[Any],
        now: Optional[datetime] = None
    ) -> DiscountCalculation:
        """计算购物车折扣，规则不可用时返回原价透传结果"""
        line_items = list(line_items)
        if not line_items:
            return DiscountCalculation.empty()

        try:
            rules, skipped = await self.load_rules()
        except RuleSourceError as e:
            logger.error(f"折扣规则不可用，购物车按原价结算: {e.message}")
            return self.engine.fallback_calculation(line_items, error=e.message)

        result = self.engine.calculate_discounts(line_items, rules, now=now)
        if skipped:
            result = result.model_copy(
                update={"skipped_rules": skipped + [r for r in result.skipped_rules if r not in skipped]}
            )
        return result

    async def check_available_discounts(
        self,
        line_items: Iterable[Any],
        cart_total: Optional[Any] = None,
        now: Optional[datetime] = None
    ) -> List[AvailableDiscount]:
        """获取购物车可参与的优惠"""
        try:
            rules = await self.get_rules()
        except RuleSourceError as e:
            logger.warning(f"折扣规则不可用，不展示优惠: {e.message}")
            return []

        return self.engine.check_available_discounts(line_items, rules, cart_total=cart_total, now=now)

    async def check_item_discounts(
        self,
        product_id: Optional[str],
        category_id: Optional[str],
        quantity: int,
        now: Optional[datetime] = None,
        unit_price: Optional[Any] = None,
        include_cart_wide: bool = False
    ) -> List[ItemDiscountOffer]:
        """获取单个商品的优惠提示"""
        try:
            rules = await self.get_rules()
        except RuleSourceError as e:
            logger.warning(f"折扣规则不可用，不展示商品优惠: {e.message}")
            return []

        return self.engine.check_item_discounts(
            product_id,
            category_id,
            quantity,
            rules,
            now=now,
            unit_price=unit_price,
            include_cart_wide=include_cart_wide
        )
