"""
数据库模型包初始化文件
"""

from .discount_rule_db import DiscountRuleDB

__all__ = [
    "DiscountRuleDB"
]
