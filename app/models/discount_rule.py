"""
折扣规则数据模型
每种规则类型对应一个独立模型，通过 type 字段区分 (tagged union)
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Union, Literal, Annotated
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, validator, model_validator
from pydantic.alias_generators import to_camel
from enum import Enum

from app.config.discount_types import (
    SCOPE_PRODUCT,
    SCOPE_CATEGORY,
    SCOPE_PRODUCT_OR_CATEGORY,
    get_required_fields,
    get_scope_requirement,
)
from app.core.exceptions import DiscountRuleError


class DiscountRuleType(str, Enum):
    """折扣规则类型枚举"""
    BOGO = "BOGO"  # 买一送一
    TWO_FOR_ONE = "TWO_FOR_ONE"  # 两件付一件
    PERCENT_CATEGORY = "PERCENT_CATEGORY"  # 分类百分比折扣
    PERCENT_PRODUCT = "PERCENT_PRODUCT"  # 商品百分比折扣
    FIXED_AMOUNT = "FIXED_AMOUNT"  # 满额立减
    BUY_X_GET_Y = "BUY_X_GET_Y"  # 买X送Y


class RuleScope(str, Enum):
    """规则作用范围"""
    PRODUCT = "product"
    CATEGORY = "category"
    CART = "cart"


def _as_utc(value: datetime) -> datetime:
    """无时区时间按UTC处理，保证比较时不混用naive/aware"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DiscountRuleBase(BaseModel):
    """折扣规则公共字段"""

    rule_id: str = Field(..., min_length=1, description="规则ID")
    name: str = Field(..., min_length=1, description="规则名称")
    description: Optional[str] = Field(None, description="规则描述")
    type: DiscountRuleType = Field(..., description="规则类型")

    # 作用范围
    product_id: Optional[str] = Field(None, description="适用商品ID")
    product_name: Optional[str] = Field(None, description="适用商品名称")
    category_id: Optional[str] = Field(None, description="适用分类ID")
    category_name: Optional[str] = Field(None, description="适用分类名称")

    # 门槛与上限
    min_cart_value: Optional[Decimal] = Field(None, ge=0, description="最低购物车金额")
    min_quantity: Optional[int] = Field(None, ge=1, description="最低购买数量")
    max_discount: Optional[Decimal] = Field(None, ge=0, description="单规则最大折扣金额")
    max_uses: Optional[int] = Field(None, ge=0, description="总使用次数限制")
    current_uses: int = Field(default=0, ge=0, description="已使用次数")

    # 有效期与优先级
    start_date: Optional[datetime] = Field(None, description="生效时间")
    end_date: Optional[datetime] = Field(None, description="失效时间")
    priority: int = Field(default=0, description="优先级，数值越大越先计算")
    active: bool = Field(default=True, description="是否启用")

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True

    @validator("rule_id", "product_id", "category_id", pre=True)
    def normalize_ids(cls, v):
        """数字ID统一为字符串"""
        if v is None:
            return v
        return str(v)

    @validator("end_date")
    def validate_validity_period(cls, v, values):
        """验证有效期"""
        start = values.get("start_date")
        if v is not None and start is not None and _as_utc(v) < _as_utc(start):
            raise ValueError("失效时间不能早于生效时间")
        return v

    @model_validator(mode="after")
    def validate_scope(self):
        """验证规则作用范围是否符合类型要求"""
        requirement = get_scope_requirement(self.type)
        if requirement == SCOPE_PRODUCT and not self.product_id:
            raise ValueError(f"{self.type} 规则必须指定商品")
        if requirement == SCOPE_CATEGORY and not self.category_id:
            raise ValueError(f"{self.type} 规则必须指定分类")
        if requirement == SCOPE_PRODUCT_OR_CATEGORY and not (self.product_id or self.category_id):
            raise ValueError(f"{self.type} 规则必须指定商品或分类")
        return self

    @property
    def rule_type(self) -> DiscountRuleType:
        return DiscountRuleType(self.type)

    @property
    def scope(self) -> RuleScope:
        """规则实际作用范围 - 百分比规则按类型固定，其余规则商品优先"""
        requirement = get_scope_requirement(self.type)
        if requirement == SCOPE_PRODUCT:
            return RuleScope.PRODUCT
        if requirement == SCOPE_CATEGORY:
            return RuleScope.CATEGORY
        if self.product_id:
            return RuleScope.PRODUCT
        if self.category_id:
            return RuleScope.CATEGORY
        return RuleScope.CART

    @property
    def scope_id(self) -> Optional[str]:
        if self.scope == RuleScope.PRODUCT:
            return self.product_id
        if self.scope == RuleScope.CATEGORY:
            return self.category_id
        return None

    @property
    def target_name(self) -> Optional[str]:
        """用于展示的适用对象名称"""
        if self.scope == RuleScope.CATEGORY:
            return self.category_name
        return self.product_name or self.category_name

    @property
    def is_exhausted(self) -> bool:
        """使用次数是否已用完"""
        return self.max_uses is not None and self.current_uses >= self.max_uses

    def is_within_window(self, now: datetime) -> bool:
        """检查当前时间是否在有效期内，缺失的边界视为不限"""
        current = _as_utc(now)
        if self.start_date is not None and current < _as_utc(self.start_date):
            return False
        if self.end_date is not None and current > _as_utc(self.end_date):
            return False
        return True

    def is_eligible(self, now: datetime) -> bool:
        """规则是否可参与计算: 启用、在有效期内且未用完"""
        return self.active and self.is_within_window(now) and not self.is_exhausted


class BogoRule(DiscountRuleBase):
    """买一送一"""
    type: Literal["BOGO"] = "BOGO"


class TwoForOneRule(DiscountRuleBase):
    """两件付一件"""
    type: Literal["TWO_FOR_ONE"] = "TWO_FOR_ONE"


class PercentCategoryRule(DiscountRuleBase):
    """分类百分比折扣"""
    type: Literal["PERCENT_CATEGORY"] = "PERCENT_CATEGORY"
    percentage: Decimal = Field(..., ge=0, le=100, description="折扣百分比")


class PercentProductRule(DiscountRuleBase):
    """商品百分比折扣"""
    type: Literal["PERCENT_PRODUCT"] = "PERCENT_PRODUCT"
    percentage: Decimal = Field(..., ge=0, le=100, description="折扣百分比")


class FixedAmountRule(DiscountRuleBase):
    """满额立减"""
    type: Literal["FIXED_AMOUNT"] = "FIXED_AMOUNT"
    fixed_amount: Decimal = Field(..., gt=0, description="立减金额")


class BuyXGetYRule(DiscountRuleBase):
    """买X送Y"""
    type: Literal["BUY_X_GET_Y"] = "BUY_X_GET_Y"
    buy_quantity: int = Field(..., ge=1, description="需购买数量")
    get_quantity: int = Field(..., ge=1, description="赠送数量")


DiscountRule = Annotated[
    Union[
        BogoRule,
        TwoForOneRule,
        PercentCategoryRule,
        PercentProductRule,
        FixedAmountRule,
        BuyXGetYRule,
    ],
    Field(discriminator="type"),
]

RULE_MODELS = (
    BogoRule,
    TwoForOneRule,
    PercentCategoryRule,
    PercentProductRule,
    FixedAmountRule,
    BuyXGetYRule,
)

_rule_adapter = TypeAdapter(DiscountRule)


def normalize_rule_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    兼容管理后台接口返回的规则结构

    - "_id" 映射为 rule_id
    - 嵌套的 product/category 引用 {"_id", "name"} 拆分为 id 和 name
    """
    data = dict(record)

    if "_id" in data:
        rule_id = data.pop("_id")
        if "rule_id" not in data and "ruleId" not in data:
            data["rule_id"] = rule_id

    for ref in ("product", "category"):
        value = data.pop(ref, None)
        if isinstance(value, dict):
            ref_id = value.get("_id") or value.get("id")
            if ref_id is not None:
                data.setdefault(f"{ref}_id", ref_id)
            if value.get("name"):
                data.setdefault(f"{ref}_name", value["name"])
        elif value is not None:
            data.setdefault(f"{ref}_id", value)

    return data


def parse_rule(record: Union[Dict[str, Any], DiscountRuleBase]) -> DiscountRule:
    """
    解析单条规则记录

    Raises:
        ValidationError: 记录缺少类型必填参数或参数非法
    """
    if isinstance(record, RULE_MODELS):
        return record
    if isinstance(record, BaseModel):
        record = record.model_dump()
    return _rule_adapter.validate_python(normalize_rule_record(record))


class DiscountRuleCreate(BaseModel):
    """创建折扣规则请求模型"""

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: DiscountRuleType = Field(...)
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    fixed_amount: Optional[Decimal] = Field(None, gt=0)
    buy_quantity: Optional[int] = Field(None, ge=1)
    get_quantity: Optional[int] = Field(None, ge=1)
    min_cart_value: Optional[Decimal] = Field(None, ge=0)
    min_quantity: Optional[int] = Field(None, ge=1)
    max_discount: Optional[Decimal] = Field(None, ge=0)
    max_uses: Optional[int] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    priority: int = 0
    active: bool = True

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class DiscountRuleUpdate(BaseModel):
    """更新折扣规则请求模型"""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    type: Optional[DiscountRuleType] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    fixed_amount: Optional[Decimal] = Field(None, gt=0)
    buy_quantity: Optional[int] = Field(None, ge=1)
    get_quantity: Optional[int] = Field(None, ge=1)
    min_cart_value: Optional[Decimal] = Field(None, ge=0)
    min_quantity: Optional[int] = Field(None, ge=1)
    max_discount: Optional[Decimal] = Field(None, ge=0)
    max_uses: Optional[int] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    priority: Optional[int] = None
    active: Optional[bool] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


def _validation_messages(error: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}" if item["loc"] else item["msg"]
        for item in error.errors()
    ]


def build_rule(rule_data: DiscountRuleCreate, rule_id: str) -> DiscountRule:
    """
    根据创建请求构建规则

    Args:
        rule_data: 创建请求
        rule_id: 新规则ID

    Raises:
        DiscountRuleError: 缺少类型必填参数或参数非法
    """
    missing = [
        field for field in get_required_fields(rule_data.type)
        if getattr(rule_data, field) is None
    ]
    if missing:
        raise DiscountRuleError(
            f"{rule_data.type.value} 规则缺少必填参数: {', '.join(missing)}",
            rule_id=rule_id
        )

    data = rule_data.model_dump(exclude_none=True)
    data["type"] = rule_data.type.value
    data["rule_id"] = rule_id

    try:
        return parse_rule(data)
    except ValidationError as e:
        raise DiscountRuleError("; ".join(_validation_messages(e)), rule_id=rule_id) from e


def apply_rule_update(rule: DiscountRuleBase, update: DiscountRuleUpdate) -> DiscountRule:
    """
    应用更新请求，返回新的规则对象 (原规则不可变)

    Raises:
        DiscountRuleError: 更新后的规则不合法
    """
    data = rule.model_dump()
    changes = update.model_dump(exclude_unset=True)
    if changes.get("type") is not None:
        changes["type"] = DiscountRuleType(changes["type"]).value
    data.update(changes)

    try:
        return parse_rule(data)
    except ValidationError as e:
        raise DiscountRuleError("; ".join(_validation_messages(e)), rule_id=rule.rule_id) from e
