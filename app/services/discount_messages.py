"""
折扣文案格式化
为购物车和商品详情页生成优惠提示，告知顾客当前优惠或距离解锁还差多少
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

import structlog
from pydantic import ValidationError

from app.config.discount_types import GENERIC_DISCOUNT_MESSAGE
from app.core.config import settings
from app.models.discount_rule import DiscountRule, DiscountRuleType, parse_rule

logger = structlog.get_logger()

ZERO = Decimal("0")


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_currency(amount: Any, currency: Optional[str] = None) -> str:
    """金额格式化，如 "₹ 100.00" """
    symbol = settings.currency_symbol if currency is None else currency
    return f"{symbol} {_to_decimal(amount):.2f}"


def format_number(value: Any) -> str:
    """去掉多余的小数位: 10.00 -> "10", 12.50 -> "12.5" """
    number = _to_decimal(value)
    if number == number.to_integral_value():
        return str(int(number))
    return f"{number.normalize():f}"


def quantity_needed(rule: DiscountRule, quantity: int) -> int:
    """还需加购多少件才能解锁规则"""
    quantity = max(int(quantity or 0), 0)
    needed = 0

    if rule.type in (DiscountRuleType.BOGO, DiscountRuleType.TWO_FOR_ONE):
        if quantity < 2:
            needed = 2 - quantity
        elif quantity % 2:
            needed = 1
    elif rule.type == DiscountRuleType.BUY_X_GET_Y:
        if quantity < rule.buy_quantity:
            needed = rule.buy_quantity - quantity

    if rule.min_quantity is not None and quantity < rule.min_quantity:
        needed = max(needed, rule.min_quantity - quantity)

    return needed


def is_unlocked(rule: DiscountRule, quantity: int) -> bool:
    """当前数量是否已享受到规则优惠 (不考虑金额门槛)"""
    quantity = max(int(quantity or 0), 0)
    if rule.min_quantity is not None and quantity < rule.min_quantity:
        return False
    if rule.type in (DiscountRuleType.BOGO, DiscountRuleType.TWO_FOR_ONE):
        return quantity >= 2
    if rule.type == DiscountRuleType.BUY_X_GET_Y:
        return quantity >= rule.buy_quantity
    return quantity > 0


def amount_needed(rule: DiscountRule, cart_total: Any) -> Decimal:
    """还需消费多少金额才能满足最低金额门槛"""
    if rule.min_cart_value is None:
        return ZERO
    return max(rule.min_cart_value - _to_decimal(cart_total), ZERO)


def _target_suffix(rule: DiscountRule) -> str:
    return f" {rule.target_name}" if rule.target_name else ""


def _percentage_benefit(rule: DiscountRule) -> str:
    percentage = format_number(rule.percentage)
    if rule.type == DiscountRuleType.PERCENT_CATEGORY:
        label = f"all {rule.category_name}" if rule.category_name else "all items in this category"
    else:
        label = rule.product_name or "this product"
    return f"{percentage}% off {label}"


def _build_message(rule: DiscountRule, quantity: int, cart_total: Decimal) -> str:
    """按规则类型生成文案"""
    target = _target_suffix(rule)

    if rule.type == DiscountRuleType.BOGO:
        needed = quantity_needed(rule, quantity)
        if needed:
            return f"Add {needed} more{target} to get one free!"
        return f"Buy one{target}, get one free!"

    if rule.type == DiscountRuleType.TWO_FOR_ONE:
        needed = quantity_needed(rule, quantity)
        if needed:
            return f"Add {needed} more{target} to pay for just 1 of every 2!"
        return f"Buy 2{target}, pay for just 1!"

    if rule.type in (DiscountRuleType.PERCENT_CATEGORY, DiscountRuleType.PERCENT_PRODUCT):
        benefit = _percentage_benefit(rule)
        short_amount = amount_needed(rule, cart_total)
        if short_amount > ZERO:
            return f"Add {format_currency(short_amount)} more to get {benefit}!"
        needed = quantity_needed(rule, quantity)
        if needed:
            return f"Add {needed} more to get {benefit}!"
        return f"{benefit}!"

    if rule.type == DiscountRuleType.FIXED_AMOUNT:
        amount = format_currency(rule.fixed_amount)
        short_amount = amount_needed(rule, cart_total)
        if short_amount > ZERO:
            return f"Add {format_currency(short_amount)} more to get {amount} off!"
        return f"{amount} off your order!"

    if rule.type == DiscountRuleType.BUY_X_GET_Y:
        needed = quantity_needed(rule, quantity)
        if needed:
            return f"Add {needed} more{target} to get {rule.get_quantity} free!"
        return f"Buy {rule.buy_quantity}{target}, get {rule.get_quantity} free!"

    return rule.name or GENERIC_DISCOUNT_MESSAGE


def format_discount_message(
    rule: Union[DiscountRule, Dict[str, Any]],
    quantity: int = 1,
    cart_total: Any = 0
) -> str:
    """
    生成规则的优惠提示文案

    Args:
        rule: 规则模型或原始规则记录
        quantity: 当前商品数量
        cart_total: 当前购物车金额

    Returns:
        已满足条件时说明优惠内容，否则说明还差多少；规则无法识别时返回通用文案
    """
    try:
        parsed = parse_rule(rule)
    except (ValidationError, TypeError, ValueError):
        name = rule.get("name") if isinstance(rule, dict) else None
        return name or GENERIC_DISCOUNT_MESSAGE

    try:
        return _build_message(parsed, quantity, _to_decimal(cart_total))
    except (TypeError, ValueError, InvalidOperation) as e:
        logger.warning("折扣文案生成失败", rule=parsed.rule_id, error=str(e))
        return parsed.name or GENERIC_DISCOUNT_MESSAGE


def describe_rule(rule: DiscountRule) -> str:
    """管理后台规则列表的一行描述"""
    if rule.type == DiscountRuleType.BOGO:
        return f"Buy one {rule.target_name or 'item'}, get one FREE"
    if rule.type == DiscountRuleType.TWO_FOR_ONE:
        return f"Buy 2 {rule.target_name or 'items'}, pay for just 1"
    if rule.type == DiscountRuleType.PERCENT_CATEGORY:
        return f"{format_number(rule.percentage)}% off all {rule.category_name or 'items'} in category"
    if rule.type == DiscountRuleType.PERCENT_PRODUCT:
        return f"{format_number(rule.percentage)}% off {rule.product_name or 'product'}"
    if rule.type == DiscountRuleType.FIXED_AMOUNT:
        condition = (
            f"orders over {format_currency(rule.min_cart_value)}"
            if rule.min_cart_value else "any order"
        )
        return f"{format_currency(rule.fixed_amount)} off {condition}"
    if rule.type == DiscountRuleType.BUY_X_GET_Y:
        return f"Buy {rule.buy_quantity} {rule.target_name or 'items'}, get {rule.get_quantity} FREE"
    return rule.description or "No description"
