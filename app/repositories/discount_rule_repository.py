"""
折扣规则数据库操作层 (只读)
"""

from typing import List, Optional, Dict, Any
from datetime import datetime, timezone

from sqlalchemy import select, and_, or_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.discount_rule import DiscountRule, parse_rule
from app.models.database.discount_rule_db import DiscountRuleDB


class DiscountRuleRepository:
    """折扣规则数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_rule_id(self, rule_id: str) -> Optional[DiscountRuleDB]:
        """根据规则ID获取规则"""
        result = await self.db.execute(
            select(DiscountRuleDB).where(DiscountRuleDB.rule_id == rule_id)
        )
        return result.scalar_one_or_none()

    async def get_all_rules(self) -> List[DiscountRuleDB]:
        """获取全部规则 (管理后台列表)"""
        query = select(DiscountRuleDB).order_by(
            desc(DiscountRuleDB.priority),
            DiscountRuleDB.created_at
        )
        result = await self.db.execute(query)
        return result.scalars().all()

    async def get_active_rules(
        self,
        current_time: Optional[datetime] = None
    ) -> List[DiscountRuleDB]:
        """获取当前启用、在有效期内且未用完的规则"""
        if current_time is None:
            current_time = datetime.now(timezone.utc)

        query = select(DiscountRuleDB).where(
            and_(
                DiscountRuleDB.active == True,
                or_(DiscountRuleDB.start_date.is_(None), DiscountRuleDB.start_date <= current_time),
                or_(DiscountRuleDB.end_date.is_(None), DiscountRuleDB.end_date >= current_time),
                or_(
                    DiscountRuleDB.max_uses.is_(None),
                    DiscountRuleDB.current_uses < DiscountRuleDB.max_uses
                )
            )
        ).order_by(desc(DiscountRuleDB.priority), DiscountRuleDB.created_at)

        result = await self.db.execute(query)
        return result.scalars().all()

    async def get_rules_for_product(self, product_id: str) -> List[DiscountRuleDB]:
        """获取指定商品的启用规则"""
        query = select(DiscountRuleDB).where(
            and_(
                DiscountRuleDB.active == True,
                DiscountRuleDB.product_id == product_id
            )
        ).order_by(desc(DiscountRuleDB.priority))

        result = await self.db.execute(query)
        return result.scalars().all()

    async def get_rules_for_category(self, category_id: str) -> List[DiscountRuleDB]:
        """获取指定分类的启用规则"""
        query = select(DiscountRuleDB).where(
            and_(
                DiscountRuleDB.active == True,
                DiscountRuleDB.category_id == category_id
            )
        ).order_by(desc(DiscountRuleDB.priority))

        result = await self.db.execute(query)
        return result.scalars().all()

    def to_record(self, db_rule: DiscountRuleDB) -> Dict[str, Any]:
        """
        转换为原始规则记录

        不在此处校验类型必填参数，配置不完整的规则由折扣引擎跳过
        """
        record = {
            "rule_id": db_rule.rule_id,
            "name": db_rule.name,
            "description": db_rule.description,
            "type": db_rule.rule_type,
            "product_id": db_rule.product_id,
            "product_name": db_rule.product_name,
            "category_id": db_rule.category_id,
            "category_name": db_rule.category_name,
            "percentage": db_rule.percentage,
            "fixed_amount": db_rule.fixed_amount,
            "buy_quantity": db_rule.buy_quantity,
            "get_quantity": db_rule.get_quantity,
            "min_cart_value": db_rule.min_cart_value,
            "min_quantity": db_rule.min_quantity,
            "max_discount": db_rule.max_discount,
            "max_uses": db_rule.max_uses,
            "current_uses": db_rule.current_uses or 0,
            "start_date": db_rule.start_date,
            "end_date": db_rule.end_date,
            "priority": db_rule.priority or 0,
            "active": db_rule.active,
        }
        # 空值参数不传入模型，由类型模型判断是否必填
        return {key: value for key, value in record.items() if value is not None}

    def to_model(self, db_rule: DiscountRuleDB) -> DiscountRule:
        """
        转换为规则模型

        Raises:
            ValidationError: 规则缺少类型必填参数
        """
        return parse_rule(self.to_record(db_rule))
