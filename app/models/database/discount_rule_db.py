"""
折扣规则数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Text, Boolean, DateTime
from sqlalchemy.sql import func
from app.core.database import Base


class DiscountRuleDB(Base):
    """折扣规则表 (由管理后台维护，折扣引擎只读)"""

    __tablename__ = "discount_rules"

    # 主键和基本信息
    rule_id = Column(String(50), primary_key=True, comment="规则ID")
    name = Column(String(200), nullable=False, comment="规则名称")
    description = Column(Text, comment="规则描述")
    rule_type = Column(String(30), nullable=False, index=True, comment="规则类型")

    # 作用范围
    product_id = Column(String(50), index=True, comment="适用商品ID")
    product_name = Column(String(200), comment="适用商品名称")
    category_id = Column(String(50), index=True, comment="适用分类ID")
    category_name = Column(String(200), comment="适用分类名称")

    # 折扣参数
    percentage = Column(Numeric(5, 2), comment="折扣百分比")
    fixed_amount = Column(Numeric(10, 2), comment="立减金额")
    buy_quantity = Column(Integer, comment="需购买数量")
    get_quantity = Column(Integer, comment="赠送数量")

    # 门槛与上限
    min_cart_value = Column(Numeric(10, 2), comment="最低购物车金额")
    min_quantity = Column(Integer, comment="最低购买数量")
    max_discount = Column(Numeric(10, 2), comment="单规则最大折扣金额")
    max_uses = Column(Integer, comment="总使用次数限制")
    current_uses = Column(Integer, default=0, comment="已使用次数")

    # 有效期与优先级
    start_date = Column(DateTime(timezone=True), index=True, comment="生效时间")
    end_date = Column(DateTime(timezone=True), index=True, comment="失效时间")
    priority = Column(Integer, default=0, comment="优先级")
    active = Column(Boolean, default=True, index=True, comment="是否启用")

    # 时间戳
    created_at = Column(DateTime(timezone=True), server_default=func.now(), comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), comment="更新时间")

    __table_args__ = (
        {'comment': '折扣规则表'}
    )
