"""
业务异常定义
"""


class DiscountEngineError(Exception):
    """折扣引擎业务异常基类"""

    def __init__(self, message: str, code: str = "DISCOUNT_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class DiscountRuleError(DiscountEngineError, ValueError):
    """折扣规则配置错误 - 缺少必填参数或参数非法"""

    def __init__(self, message: str, rule_id: str = None):
        super().__init__(message, code="INVALID_DISCOUNT_RULE")
        self.rule_id = rule_id


class RuleSourceError(DiscountEngineError):
    """折扣规则来源不可用"""

    def __init__(self, message: str):
        super().__init__(message, code="RULE_SOURCE_UNAVAILABLE")
