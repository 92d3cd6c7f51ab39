"""
折扣规则类型静态配置 - 管理后台的类型说明及各类型必填参数
"""

from typing import Dict, Any, List

# 规则作用范围要求
SCOPE_PRODUCT = "product"
SCOPE_CATEGORY = "category"
SCOPE_PRODUCT_OR_CATEGORY = "product_or_category"
SCOPE_OPTIONAL = "optional"

# 无法识别规则时的兜底文案
GENERIC_DISCOUNT_MESSAGE = "Special discount available!"

# 折扣类型配置字典
DISCOUNT_TYPE_CONFIG: Dict[str, Dict[str, Any]] = {
    "BOGO": {
        "label": "Buy One Get One",
        "description": "Buy one item, get a second one free",
        "required_fields": [],
        "scope": SCOPE_PRODUCT_OR_CATEGORY,
    },
    "TWO_FOR_ONE": {
        "label": "Two For One",
        "description": "Buy two items, pay for just one",
        "required_fields": [],
        "scope": SCOPE_PRODUCT_OR_CATEGORY,
    },
    "PERCENT_CATEGORY": {
        "label": "Category Percentage",
        "description": "Percentage off every item in a category",
        "required_fields": ["percentage"],
        "scope": SCOPE_CATEGORY,
    },
    "PERCENT_PRODUCT": {
        "label": "Product Percentage",
        "description": "Percentage off a single product",
        "required_fields": ["percentage"],
        "scope": SCOPE_PRODUCT,
    },
    "FIXED_AMOUNT": {
        "label": "Fixed Amount",
        "description": "Flat amount off the order once the minimum is reached",
        "required_fields": ["fixed_amount"],
        "scope": SCOPE_OPTIONAL,
    },
    "BUY_X_GET_Y": {
        "label": "Buy X Get Y",
        "description": "Buy X units of a product or category, get Y units free",
        "required_fields": ["buy_quantity", "get_quantity"],
        "scope": SCOPE_PRODUCT_OR_CATEGORY,
    },
}


def get_discount_type_suggestions() -> Dict[str, Dict[str, str]]:
    """
    获取管理后台可选的折扣类型说明

    Returns:
        类型 -> {label, description} 字典
    """
    return {
        rule_type: {
            "label": config["label"],
            "description": config["description"],
        }
        for rule_type, config in DISCOUNT_TYPE_CONFIG.items()
    }


def get_required_fields(rule_type: str) -> List[str]:
    """获取指定类型的必填参数"""
    config = DISCOUNT_TYPE_CONFIG.get(getattr(rule_type, "value", rule_type))
    if not config:
        return []
    return list(config["required_fields"])


def get_scope_requirement(rule_type: str) -> str:
    """获取指定类型的作用范围要求"""
    config = DISCOUNT_TYPE_CONFIG.get(getattr(rule_type, "value", rule_type))
    if not config:
        return SCOPE_OPTIONAL
    return config["scope"]
