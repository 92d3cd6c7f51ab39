"""
测试配置文件 - pytest fixtures和共用配置
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone

from app.models.cart import CartLineItem, Product
from app.models.database.discount_rule_db import DiscountRuleDB
from app.models.discount_rule import (
    BogoRule,
    BuyXGetYRule,
    FixedAmountRule,
    PercentCategoryRule,
    PercentProductRule,
    TwoForOneRule,
)
from app.services.discount_engine import DiscountEngine


# 配置pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest.fixture
def now():
    """固定计算时间，保证结果可复现"""
    return datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """折扣引擎实例"""
    return DiscountEngine()


@pytest.fixture
def sample_product():
    """示例商品"""
    return Product(
        product_id="prod_shirt",
        name="Cotton Shirt",
        price=Decimal("200.00"),
        category_id="cat_apparel",
        stock=25
    )


@pytest.fixture
def shirt_item():
    """单价200的衬衫行项目 (3件)"""
    return CartLineItem(
        product_id="prod_shirt",
        name="Cotton Shirt",
        unit_price=Decimal("200.00"),
        category_id="cat_apparel",
        quantity=3
    )


@pytest.fixture
def mug_item():
    """单价50的杯子行项目 (5件)"""
    return CartLineItem(
        product_id="prod_mug",
        name="Coffee Mug",
        unit_price=Decimal("50.00"),
        category_id="cat_kitchen",
        quantity=5
    )


@pytest.fixture
def bogo_rule():
    """衬衫买一送一"""
    return BogoRule(
        rule_id="rule_bogo",
        name="Shirt BOGO",
        product_id="prod_shirt",
        product_name="Cotton Shirt",
        priority=10
    )


@pytest.fixture
def two_for_one_rule():
    """杯子两件付一件"""
    return TwoForOneRule(
        rule_id="rule_241",
        name="Mug 2 for 1",
        product_id="prod_mug",
        product_name="Coffee Mug"
    )


@pytest.fixture
def category_rule():
    """服装分类5折，单规则最多减100"""
    return PercentCategoryRule(
        rule_id="rule_apparel_50",
        name="Apparel Half Price",
        category_id="cat_apparel",
        category_name="Apparel",
        percentage=Decimal("50"),
        max_discount=Decimal("100")
    )


@pytest.fixture
def product_rule():
    """杯子9折"""
    return PercentProductRule(
        rule_id="rule_mug_10",
        name="Mug 10% Off",
        product_id="prod_mug",
        product_name="Coffee Mug",
        percentage=Decimal("10")
    )


@pytest.fixture
def fixed_rule():
    """满500减100"""
    return FixedAmountRule(
        rule_id="rule_fixed_100",
        name="Save 100",
        fixed_amount=Decimal("100"),
        min_cart_value=Decimal("500")
    )


@pytest.fixture
def buy_x_get_y_rule():
    """杯子买3送1"""
    return BuyXGetYRule(
        rule_id="rule_mug_3_1",
        name="Mug Buy 3 Get 1",
        product_id="prod_mug",
        product_name="Coffee Mug",
        buy_quantity=3,
        get_quantity=1
    )


@pytest.fixture
def expired_rule(now):
    """已过期规则"""
    return PercentProductRule(
        rule_id="rule_expired",
        name="Old Sale",
        product_id="prod_shirt",
        percentage=Decimal("20"),
        start_date=now - timedelta(days=30),
        end_date=now - timedelta(days=1)
    )


@pytest.fixture
def rule_record():
    """管理后台接口返回的原始规则记录"""
    return {
        "_id": "64f0c0ffee",
        "name": "Kitchen 15% Off",
        "type": "PERCENT_CATEGORY",
        "percentage": 15,
        "category": {"_id": "cat_kitchen", "name": "Kitchen"},
        "minCartValue": 0,
        "priority": 3,
        "active": True,
    }


@pytest.fixture
def sample_rule_db(now):
    """示例DiscountRuleDB对象"""
    return DiscountRuleDB(
        rule_id="rule_db_001",
        name="Lamp 20% Off",
        description="Desk lamp weekend sale",
        rule_type="PERCENT_PRODUCT",
        product_id="prod_lamp",
        product_name="Desk Lamp",
        percentage=Decimal("20.00"),
        max_discount=Decimal("150.00"),
        current_uses=3,
        max_uses=50,
        start_date=now - timedelta(days=2),
        end_date=now + timedelta(days=2),
        priority=4,
        active=True
    )
