"""
折扣引擎
输入购物车快照和规则快照，输出折扣计算结果和优惠提示
纯同步计算，不修改输入，不更新规则使用次数
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional

import structlog

from app.models.cart import CartLineItem
from app.models.discount import AvailableDiscount, DiscountCalculation, ItemDiscountOffer
from app.models.discount_rule import DiscountRule, DiscountRuleType
from app.services.discount_calculator import DiscountCalculator, cart_subtotal
from app.services.discount_messages import (
    amount_needed,
    format_discount_message,
    is_unlocked,
    quantity_needed,
)
from app.services.rule_matcher import (
    coerce_line_items,
    coerce_rules,
    filter_eligible_rules,
    matches_target,
    merge_line_items,
    scoped_items,
    sort_by_priority,
)

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DiscountEngine:
    """折扣引擎"""

    def __init__(self, calculator: Optional[DiscountCalculator] = None):
        self.calculator = calculator or DiscountCalculator()

    def calculate_discounts(
        self,
        line_items: Iterable[Any],
        rules: Iterable[Any],
        now: Optional[datetime] = None
    ) -> DiscountCalculation:
        """
        计算购物车折扣

        Args:
            line_items: 购物车行项目 (模型或原始字典)
            rules: 折扣规则 (模型或原始记录)，可包含未启用、过期或配置不完整的规则
            now: 计算时间，默认当前UTC时间

        Returns:
            折扣计算结果；非法行项目和不完整规则会被剔除并记录在结果中，
            计算过程出现意外错误时返回原价透传结果并附带错误信息
        """
        now = now or _utcnow()
        items, rejected = coerce_line_items(line_items)
        items = merge_line_items(items)

        try:
            parsed_rules, skipped = coerce_rules(rules)
            calculation = self.calculator.calculate(items, parsed_rules, now)
        except Exception as e:
            logger.error("折扣计算失败，返回原价", error=str(e), exc_info=True)
            return DiscountCalculation.passthrough(
                self.calculator.quantize(cart_subtotal(items)),
                error=f"折扣计算失败: {e}",
                rejected_items=rejected
            )

        return calculation.model_copy(update={
            "skipped_rules": skipped,
            "rejected_items": rejected,
        })

    def fallback_calculation(self, line_items: Iterable[Any], error: Optional[str] = None) -> DiscountCalculation:
        """规则数据不可用时的兜底结果: 不打折，原价透传"""
        items, rejected = coerce_line_items(line_items)
        return DiscountCalculation.passthrough(
            self.calculator.quantize(cart_subtotal(items)),
            error=error,
            rejected_items=rejected
        )

    def check_available_discounts(
        self,
        line_items: Iterable[Any],
        rules: Iterable[Any],
        cart_total: Optional[Any] = None,
        now: Optional[datetime] = None
    ) -> List[AvailableDiscount]:
        """
        获取当前购物车可参与的优惠 (不计算金额)

        Args:
            line_items: 购物车行项目
            rules: 折扣规则
            cart_total: 购物车金额，默认按行项目计算
            now: 计算时间

        Returns:
            按优先级排序的可参与优惠，附带是否已满足金额门槛及提示文案
        """
        now = now or _utcnow()
        items, _ = coerce_line_items(line_items)
        items = merge_line_items(items)
        if not items:
            return []

        try:
            parsed_rules, _ = coerce_rules(rules)
            total = Decimal(str(cart_total)) if cart_total is not None else cart_subtotal(items)

            available = []
            for rule in sort_by_priority(filter_eligible_rules(parsed_rules, now)):
                matched = scoped_items(rule, items)
                if not matched:
                    continue

                quantity = sum(item.quantity for item in matched)
                qualified = (
                    amount_needed(rule, total) == 0
                    and is_unlocked(rule, quantity)
                )
                available.append(
                    AvailableDiscount(
                        rule=rule,
                        qualified=qualified,
                        message=format_discount_message(rule, quantity=quantity, cart_total=total)
                    )
                )
        except Exception as e:
            logger.error("获取可用优惠失败", error=str(e), exc_info=True)
            return []

        return available

    def check_item_discounts(
        self,
        product_id: Optional[str],
        category_id: Optional[str],
        quantity: int,
        rules: Iterable[Any],
        now: Optional[datetime] = None,
        unit_price: Optional[Any] = None,
        include_cart_wide: bool = False
    ) -> List[ItemDiscountOffer]:
        """
        获取单个商品的优惠提示 (加购引导)

        Args:
            product_id: 商品ID
            category_id: 商品所属分类ID
            quantity: 当前数量
            rules: 折扣规则
            now: 计算时间
            unit_price: 商品单价，提供时计算下一次解锁可节省的金额
            include_cart_wide: 是否包含整单规则

        Returns:
            作用于该商品或分类的有效规则及提示文案
        """
        now = now or _utcnow()
        try:
            parsed_rules, _ = coerce_rules(rules)

            offers = []
            for rule in sort_by_priority(filter_eligible_rules(parsed_rules, now)):
                if not matches_target(rule, product_id, category_id, include_cart_wide):
                    continue

                needed = quantity_needed(rule, quantity)
                offers.append(
                    ItemDiscountOffer(
                        rule=rule,
                        message=format_discount_message(rule, quantity=quantity),
                        quantity_needed=needed,
                        potential_savings=self._potential_savings(rule, quantity + needed, unit_price)
                    )
                )
        except Exception as e:
            logger.error("获取商品优惠失败", product_id=product_id, error=str(e), exc_info=True)
            return []

        return offers

    def format_discount_message(self, rule: Any, quantity: int = 1, cart_total: Any = 0) -> str:
        """生成规则提示文案"""
        return format_discount_message(rule, quantity=quantity, cart_total=cart_total)

    def _potential_savings(
        self,
        rule: DiscountRule,
        quantity: int,
        unit_price: Optional[Any]
    ) -> Optional[Decimal]:
        """按目标数量估算单个商品可节省的金额"""
        if unit_price is None or quantity <= 0:
            return None
        if rule.type == DiscountRuleType.FIXED_AMOUNT:
            return rule.fixed_amount

        price = Decimal(str(unit_price))
        item = CartLineItem(product_id=rule.product_id or "preview", unit_price=price, quantity=quantity)
        savings = self.calculator.raw_discount(rule, [item], item.subtotal)
        if rule.max_discount is not None:
            savings = min(savings, rule.max_discount)
        return self.calculator.quantize(min(savings, item.subtotal))


# 全局折扣引擎实例
discount_engine = DiscountEngine()
