"""
规则筛选与匹配
负责输入清洗、规则有效性过滤、优先级排序和作用范围匹配
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import structlog
from pydantic import ValidationError

from app.models.cart import CartLineItem
from app.models.discount_rule import DiscountRule, DiscountRuleType, RuleScope, parse_rule

logger = structlog.get_logger()


def _record_label(record: Any, index: int) -> str:
    """日志和结果中标识一条规则/行项目"""
    if isinstance(record, dict):
        for key in ("rule_id", "ruleId", "_id", "product_id", "id", "name"):
            if record.get(key):
                return str(record[key])
        product = record.get("product")
        if isinstance(product, dict) and (product.get("id") or product.get("_id")):
            return str(product.get("id") or product.get("_id"))
    for attr in ("rule_id", "product_id"):
        value = getattr(record, attr, None)
        if value:
            return str(value)
    return f"#{index}"


def coerce_rules(records: Iterable[Any]) -> Tuple[List[DiscountRule], List[str]]:
    """
    将规则记录转换为规则模型

    配置不完整的规则直接跳过并记录告警，不影响其他规则

    Returns:
        (有效规则列表, 被跳过的规则标识列表)
    """
    rules = []
    skipped = []

    for index, record in enumerate(records or []):
        try:
            rules.append(parse_rule(record))
        except (ValidationError, TypeError, ValueError) as e:
            label = _record_label(record, index)
            skipped.append(label)
            logger.warning("折扣规则配置不完整，已跳过", rule=label, error=str(e))

    return rules, skipped


def coerce_line_items(records: Iterable[Any]) -> Tuple[List[CartLineItem], List[str]]:
    """
    将购物车快照转换为行项目

    单价为负、数量小于1等非法行项目被剔除，不影响整个购物车

    Returns:
        (有效行项目列表, 被剔除的行项目标识列表)
    """
    items = []
    rejected = []

    for index, record in enumerate(records or []):
        if isinstance(record, CartLineItem):
            items.append(record)
            continue
        try:
            if isinstance(record, dict):
                items.append(CartLineItem.from_raw(record))
            else:
                items.append(CartLineItem.model_validate(record, from_attributes=True))
        except (ValidationError, TypeError, ValueError) as e:
            label = _record_label(record, index)
            rejected.append(label)
            logger.warning("购物车行项目数据非法，已剔除", item=label, error=str(e))

    return items, rejected


def merge_line_items(items: Sequence[CartLineItem]) -> List[CartLineItem]:
    """
    合并重复的商品行

    同一商品且单价、分类一致时数量累加；单价不一致的重复行保持独立
    """
    merged: List[CartLineItem] = []
    positions = {}

    for item in items:
        key = (item.product_id, item.unit_price, item.category_id)
        if key in positions:
            index = positions[key]
            existing = merged[index]
            merged[index] = existing.model_copy(update={"quantity": existing.quantity + item.quantity})
            logger.debug("合并重复商品行", product_id=item.product_id)
        else:
            positions[key] = len(merged)
            merged.append(item)

    return merged


def filter_eligible_rules(rules: Iterable[DiscountRule], now: datetime) -> List[DiscountRule]:
    """过滤出启用、在有效期内且未用完的规则"""
    return [rule for rule in rules if rule.is_eligible(now)]


def sort_by_priority(rules: Iterable[DiscountRule]) -> List[DiscountRule]:
    """按优先级降序排序，同优先级保持原顺序"""
    return sorted(rules, key=lambda rule: rule.priority, reverse=True)


def item_in_scope(rule: DiscountRule, item: CartLineItem) -> bool:
    """行项目是否在规则作用范围内"""
    if rule.scope == RuleScope.PRODUCT:
        return item.product_id == rule.product_id
    if rule.scope == RuleScope.CATEGORY:
        return item.category_id is not None and item.category_id == rule.category_id
    return True


def scoped_items(rule: DiscountRule, items: Sequence[CartLineItem]) -> List[CartLineItem]:
    """获取规则作用范围内的行项目"""
    return [item for item in items if item_in_scope(rule, item)]


def matches_target(
    rule: DiscountRule,
    product_id: Optional[str],
    category_id: Optional[str],
    include_cart_wide: bool = False
) -> bool:
    """规则是否作用于指定商品或分类"""
    if rule.scope == RuleScope.PRODUCT:
        return product_id is not None and rule.product_id == str(product_id)
    if rule.scope == RuleScope.CATEGORY:
        return category_id is not None and rule.category_id == str(category_id)
    return include_cart_wide


def active_rules(rules: Iterable[DiscountRule]) -> List[DiscountRule]:
    """所有启用状态的规则 (不检查有效期)"""
    return [rule for rule in rules if rule.active]


def rules_by_type(rules: Iterable[DiscountRule], rule_type: DiscountRuleType) -> List[DiscountRule]:
    """按类型筛选规则"""
    return [rule for rule in rules if rule.type == rule_type]


def rules_for_product(rules: Iterable[DiscountRule], product_id: str) -> List[DiscountRule]:
    """作用于指定商品的启用规则，包括整单规则"""
    return [
        rule for rule in active_rules(rules)
        if matches_target(rule, product_id, None, include_cart_wide=True)
    ]


def rules_for_category(rules: Iterable[DiscountRule], category_id: str) -> List[DiscountRule]:
    """作用于指定分类的启用规则，包括整单规则"""
    return [
        rule for rule in active_rules(rules)
        if matches_target(rule, None, category_id, include_cart_wide=True)
    ]
