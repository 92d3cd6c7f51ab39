"""
折扣计算结果相关数据模型
"""

from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, validator

from app.models.discount_rule import DiscountRule, DiscountRuleType


class AppliedDiscount(BaseModel):
    """单条规则的折扣明细"""

    rule_id: str = Field(..., description="规则ID")
    name: str = Field(..., description="规则名称")
    description: Optional[str] = Field(None, description="规则描述")
    rule_type: DiscountRuleType = Field(..., description="规则类型")
    discount_amount: Decimal = Field(..., gt=0, description="折扣金额")
    product_ids: List[str] = Field(default_factory=list, description="命中的商品ID")


class DiscountCalculation(BaseModel):
    """折扣计算结果"""

    original_total: Decimal = Field(default=Decimal("0"), ge=0, description="原价合计")
    total_discount: Decimal = Field(default=Decimal("0"), ge=0, description="折扣合计")
    final_total: Decimal = Field(default=Decimal("0"), ge=0, description="应付金额")
    applied_discounts: List[AppliedDiscount] = Field(default_factory=list, description="已应用的折扣")

    # 软错误信息 - 不阻断购物车展示
    error: Optional[str] = Field(None, description="规则数据不可用等非致命错误")
    skipped_rules: List[str] = Field(default_factory=list, description="配置不完整被跳过的规则")
    rejected_items: List[str] = Field(default_factory=list, description="数据非法被剔除的行项目")

    @validator("final_total")
    def validate_final_total(cls, v, values):
        """验证应付金额"""
        if "original_total" in values and "total_discount" in values:
            expected = max(values["original_total"] - values["total_discount"], Decimal("0"))
            if abs(v - expected) > Decimal("0.01"):
                raise ValueError("应付金额计算错误")
        return v

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def savings_percentage(self) -> float:
        """节省比例 (百分数)"""
        if self.original_total == 0:
            return 0.0
        return float(self.total_discount / self.original_total * 100)

    @classmethod
    def empty(cls) -> "DiscountCalculation":
        """空购物车的计算结果"""
        return cls()

    @classmethod
    def passthrough(
        cls,
        original_total: Decimal,
        error: Optional[str] = None,
        rejected_items: Optional[List[str]] = None
    ) -> "DiscountCalculation":
        """不打折的兜底结果，原价直接透传"""
        return cls(
            original_total=original_total,
            total_discount=Decimal("0"),
            final_total=original_total,
            error=error,
            rejected_items=rejected_items or []
        )


class AvailableDiscount(BaseModel):
    """购物车当前可参与的优惠 (用于优惠角标展示)"""

    rule: DiscountRule
    qualified: bool = Field(..., description="是否已满足门槛")
    message: str = Field(..., description="展示文案")


class ItemDiscountOffer(BaseModel):
    """单个商品的优惠提示 (用于加购引导)"""

    rule: DiscountRule
    message: str = Field(..., description="展示文案")
    quantity_needed: int = Field(default=0, ge=0, description="还需加购的数量")
    potential_savings: Optional[Decimal] = Field(None, ge=0, description="达成后可节省金额")

    @property
    def is_unlocked(self) -> bool:
        return self.quantity_needed == 0
