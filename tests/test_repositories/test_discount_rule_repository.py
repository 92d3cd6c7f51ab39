"""
折扣规则Repository测试 - 使用模拟会话
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database.discount_rule_db import DiscountRuleDB
from app.models.discount_rule import PercentProductRule
from app.repositories.discount_rule_repository import DiscountRuleRepository


def _mock_result(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    result.scalar_one_or_none.return_value = rows[0] if rows else None
    return result


@pytest.mark.asyncio
class TestDiscountRuleRepositoryQueries:
    """折扣规则查询测试类"""

    @pytest.fixture
    def mock_session(self):
        """模拟AsyncSession"""
        return AsyncMock(spec=AsyncSession)

    async def test_get_by_rule_id(self, mock_session, sample_rule_db):
        """测试根据规则ID获取规则"""
        mock_session.execute.return_value = _mock_result([sample_rule_db])
        repo = DiscountRuleRepository(mock_session)

        rule = await repo.get_by_rule_id("rule_db_001")

        assert rule is sample_rule_db
        mock_session.execute.assert_called_once()

    async def test_get_nonexistent_rule(self, mock_session):
        """测试获取不存在的规则"""
        mock_session.execute.return_value = _mock_result([])
        repo = DiscountRuleRepository(mock_session)

        assert await repo.get_by_rule_id("missing") is None

    async def test_get_active_rules(self, mock_session, sample_rule_db, now):
        """测试获取启用规则"""
        mock_session.execute.return_value = _mock_result([sample_rule_db])
        repo = DiscountRuleRepository(mock_session)

        rules = await repo.get_active_rules(current_time=now)

        assert rules == [sample_rule_db]

        query = mock_session.execute.call_args.args[0]
        sql = str(query)
        assert "discount_rules.active" in sql
        assert "discount_rules.max_uses" in sql
        assert "ORDER BY discount_rules.priority DESC" in sql

    async def test_get_rules_for_product_and_category(self, mock_session, sample_rule_db):
        """测试按商品和分类获取规则"""
        mock_session.execute.return_value = _mock_result([sample_rule_db])
        repo = DiscountRuleRepository(mock_session)

        assert await repo.get_rules_for_product("prod_lamp") == [sample_rule_db]
        assert await repo.get_rules_for_category("cat_lighting") == [sample_rule_db]
        assert mock_session.execute.call_count == 2

    async def test_get_all_rules(self, mock_session, sample_rule_db):
        """测试获取全部规则"""
        mock_session.execute.return_value = _mock_result([sample_rule_db])
        repo = DiscountRuleRepository(mock_session)

        assert await repo.get_all_rules() == [sample_rule_db]


class TestDiscountRuleRepositoryConversion:
    """数据库对象转换测试类"""

    @pytest.fixture
    def repo(self):
        return DiscountRuleRepository(MagicMock(spec=AsyncSession))

    def test_to_record_drops_empty_columns(self, repo, sample_rule_db):
        """测试空列不出现在原始记录中"""
        record = repo.to_record(sample_rule_db)

        assert record["type"] == "PERCENT_PRODUCT"
        assert record["percentage"] == Decimal("20.00")
        assert "fixed_amount" not in record
        assert "category_id" not in record

    def test_to_model(self, repo, sample_rule_db, now):
        """测试转换为规则模型"""
        rule = repo.to_model(sample_rule_db)

        assert isinstance(rule, PercentProductRule)
        assert rule.rule_id == "rule_db_001"
        assert rule.product_name == "Desk Lamp"
        assert rule.max_discount == Decimal("150.00")
        assert rule.priority == 4
        assert rule.is_eligible(now) is True

    def test_to_model_missing_parameter(self, repo):
        """测试缺少类型必填参数的行"""
        db_rule = DiscountRuleDB(
            rule_id="rule_bad",
            name="Broken",
            rule_type="BUY_X_GET_Y",
            product_id="prod_lamp",
            buy_quantity=2
        )

        with pytest.raises(ValidationError):
            repo.to_model(db_rule)

    def test_defaults_for_unset_columns(self, repo):
        """测试未持久化对象的默认值"""
        db_rule = DiscountRuleDB(
            rule_id="rule_min",
            name="Flat 10",
            rule_type="FIXED_AMOUNT",
            fixed_amount=Decimal("10")
        )

        record = repo.to_record(db_rule)

        assert record["current_uses"] == 0
        assert record["priority"] == 0
        assert "active" not in record
        assert repo.to_model(db_rule).active is True
