"""
仓库包初始化文件 - 数据库访问层
"""

from .discount_rule_repository import DiscountRuleRepository

__all__ = [
    "DiscountRuleRepository"
]
