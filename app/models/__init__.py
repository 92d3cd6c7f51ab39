"""
数据模型包初始化文件
"""

from .cart import Product, CartLineItem
from .discount_rule import (
    DiscountRuleType,
    RuleScope,
    DiscountRule,
    BogoRule,
    TwoForOneRule,
    PercentCategoryRule,
    PercentProductRule,
    FixedAmountRule,
    BuyXGetYRule,
    DiscountRuleCreate,
    DiscountRuleUpdate,
    parse_rule
)
from .discount import (
    AppliedDiscount,
    DiscountCalculation,
    AvailableDiscount,
    ItemDiscountOffer
)

__all__ = [
    "Product",
    "CartLineItem",
    "DiscountRuleType",
    "RuleScope",
    "DiscountRule",
    "BogoRule",
    "TwoForOneRule",
    "PercentCategoryRule",
    "PercentProductRule",
    "FixedAmountRule",
    "BuyXGetYRule",
    "DiscountRuleCreate",
    "DiscountRuleUpdate",
    "parse_rule",
    "AppliedDiscount",
    "DiscountCalculation",
    "AvailableDiscount",
    "ItemDiscountOffer"
]
