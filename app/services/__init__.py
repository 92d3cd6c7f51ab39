"""
服务包初始化文件
"""

from .discount_engine import DiscountEngine, discount_engine
from .discount_service import DiscountService
from .rule_sources import RuleSource, StaticRuleSource, RepositoryRuleSource

__all__ = [
    "DiscountEngine",
    "discount_engine",
    "DiscountService",
    "RuleSource",
    "StaticRuleSource",
    "RepositoryRuleSource"
]
