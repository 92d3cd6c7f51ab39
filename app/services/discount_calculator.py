"""
折扣金额计算
按优先级依次计算每条规则的折扣，各规则折扣累加，但累计折扣不超过原价合计
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Sequence

import structlog

from app.core.config import settings
from app.models.cart import CartLineItem
from app.models.discount import AppliedDiscount, DiscountCalculation
from app.models.discount_rule import DiscountRule, DiscountRuleType
from app.services.rule_matcher import filter_eligible_rules, scoped_items, sort_by_priority

logger = structlog.get_logger()

ZERO = Decimal("0")


def cart_subtotal(items: Sequence[CartLineItem]) -> Decimal:
    """购物车原价合计"""
    return sum((item.subtotal for item in items), ZERO)


class DiscountCalculator:
    """折扣金额计算器"""

    def __init__(self, money_quantum: Decimal = None):
        self.money_quantum = money_quantum or settings.money_quantum
        self._calculators = {
            DiscountRuleType.BOGO: self._pair_discount,
            DiscountRuleType.TWO_FOR_ONE: self._pair_discount,
            DiscountRuleType.PERCENT_CATEGORY: self._percentage_discount,
            DiscountRuleType.PERCENT_PRODUCT: self._percentage_discount,
            DiscountRuleType.FIXED_AMOUNT: self._fixed_amount_discount,
            DiscountRuleType.BUY_X_GET_Y: self._buy_x_get_y_discount,
        }

    def quantize(self, amount: Decimal) -> Decimal:
        """金额按配置精度四舍五入"""
        return amount.quantize(self.money_quantum, rounding=ROUND_HALF_UP)

    def calculate(
        self,
        items: Sequence[CartLineItem],
        rules: Sequence[DiscountRule],
        now: datetime
    ) -> DiscountCalculation:
        """
        计算购物车折扣

        Args:
            items: 已清洗的行项目
            rules: 已解析的规则 (可包含未启用或过期规则)
            now: 计算时间

        Returns:
            折扣计算结果
        """
        if not items:
            return DiscountCalculation.empty()

        original_total = self.quantize(cart_subtotal(items))
        remaining = original_total
        applied: List[AppliedDiscount] = []

        for rule in sort_by_priority(filter_eligible_rules(rules, now)):
            if remaining <= ZERO:
                break

            matched = scoped_items(rule, items)
            if not matched:
                continue

            if not self.meets_thresholds(rule, matched, original_total):
                logger.debug("规则未满足门槛", rule=rule.rule_id, cart_total=str(original_total))
                continue

            amount = self.rule_discount(rule, matched, original_total, remaining)
            if amount <= ZERO:
                continue

            remaining -= amount
            applied.append(
                AppliedDiscount(
                    rule_id=rule.rule_id,
                    name=rule.name,
                    description=rule.description,
                    rule_type=rule.rule_type,
                    discount_amount=amount,
                    product_ids=[item.product_id for item in matched]
                )
            )

        total_discount = original_total - remaining
        return DiscountCalculation(
            original_total=original_total,
            total_discount=total_discount,
            final_total=max(original_total - total_discount, ZERO),
            applied_discounts=applied
        )

    def meets_thresholds(
        self,
        rule: DiscountRule,
        matched: Sequence[CartLineItem],
        cart_total: Decimal
    ) -> bool:
        """检查最低金额和最低数量门槛"""
        if rule.min_cart_value is not None and cart_total < rule.min_cart_value:
            return False
        if rule.min_quantity is not None:
            if sum(item.quantity for item in matched) < rule.min_quantity:
                return False
        return True

    def raw_discount(
        self,
        rule: DiscountRule,
        matched: Sequence[CartLineItem],
        cart_total: Decimal
    ) -> Decimal:
        """按规则类型计算未封顶的折扣金额"""
        calculator = self._calculators[rule.rule_type]
        return calculator(rule, matched, cart_total)

    def rule_discount(
        self,
        rule: DiscountRule,
        matched: Sequence[CartLineItem],
        cart_total: Decimal,
        remaining: Decimal
    ) -> Decimal:
        """
        计算单条规则的实际折扣

        依次受 max_discount、作用范围小计、剩余应付金额约束
        """
        amount = self.raw_discount(rule, matched, cart_total)

        if rule.max_discount is not None:
            amount = min(amount, rule.max_discount)

        amount = min(amount, cart_subtotal(matched), remaining)
        return self.quantize(max(amount, ZERO))

    def _pair_discount(self, rule: DiscountRule, matched: Sequence[CartLineItem], cart_total: Decimal) -> Decimal:
        """买一送一 / 两件付一件: 每两件免一件"""
        return sum(
            ((item.quantity // 2) * item.unit_price for item in matched),
            ZERO
        )

    def _percentage_discount(self, rule: DiscountRule, matched: Sequence[CartLineItem], cart_total: Decimal) -> Decimal:
        """百分比折扣: 作用范围小计 × 百分比"""
        return self.quantize(cart_subtotal(matched) * rule.percentage / Decimal("100"))

    def _fixed_amount_discount(self, rule: DiscountRule, matched: Sequence[CartLineItem], cart_total: Decimal) -> Decimal:
        """满额立减: 门槛已在 meets_thresholds 中检查，整单只减一次"""
        return rule.fixed_amount

    def _buy_x_get_y_discount(self, rule: DiscountRule, matched: Sequence[CartLineItem], cart_total: Decimal) -> Decimal:
        """
        买X送Y: 按作用范围内商品总件数计算，每满X件赠送Y件

        赠品按作用范围内最低单价计价，总额不超过作用范围小计
        """
        total_quantity = sum(item.quantity for item in matched)
        free_units = (total_quantity // rule.buy_quantity) * rule.get_quantity

        total = ZERO
        for item in sorted(matched, key=lambda line: line.unit_price):
            if free_units <= 0:
                break
            units = min(free_units, item.quantity)
            total += units * item.unit_price
            free_units -= units
        return min(total, cart_subtotal(matched))
