"""
购物车相关数据模型
折扣引擎只读取购物车快照，不负责购物车的存储
"""

from decimal import Decimal
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, validator


def _normalize_identifier(value: Any) -> Optional[str]:
    """统一ID格式: 兼容 {"_id": ...} 引用和数字ID"""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("_id") or value.get("id")
        if value is None:
            return None
    return str(value)


class Product(BaseModel):
    """商品模型 (目录只读引用)"""

    product_id: str = Field(..., min_length=1, description="商品ID")
    name: str = Field(..., description="商品名称")
    price: Decimal = Field(..., ge=0, description="单价")
    category_id: Optional[str] = Field(None, description="分类ID")
    stock: int = Field(default=0, ge=0, description="库存")

    @validator("product_id", "category_id", pre=True)
    def normalize_ids(cls, v):
        return _normalize_identifier(v)

    @property
    def in_stock(self) -> bool:
        return self.stock > 0


class CartLineItem(BaseModel):
    """购物车行项目快照"""

    product_id: str = Field(..., min_length=1, description="商品ID")
    name: str = Field(default="", description="商品名称")
    unit_price: Decimal = Field(..., ge=0, description="单价")
    category_id: Optional[str] = Field(None, description="分类ID")
    quantity: int = Field(..., ge=1, description="数量")

    class Config:
        frozen = True

    @validator("product_id", "category_id", pre=True)
    def normalize_ids(cls, v):
        return _normalize_identifier(v)

    @validator("unit_price", pre=True)
    def normalize_price(cls, v):
        """浮点价格先转字符串，避免二进制精度误差"""
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @property
    def subtotal(self) -> Decimal:
        """行小计"""
        return self.unit_price * self.quantity

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "CartLineItem":
        """根据商品创建行项目"""
        return cls(
            product_id=product.product_id,
            name=product.name,
            unit_price=product.price,
            category_id=product.category_id,
            quantity=quantity
        )

    @classmethod
    def from_raw(cls, record: Dict[str, Any]) -> "CartLineItem":
        """
        从原始字典创建行项目

        同时兼容扁平结构和前端购物车的嵌套结构:
        {"product": {"id", "name", "price", "category"}, "quantity"}
        """
        product = record.get("product")
        if not isinstance(product, dict):
            return cls(**record)

        return cls(
            product_id=product.get("id") or product.get("_id") or product.get("product_id"),
            name=product.get("name", ""),
            unit_price=product.get("price"),
            category_id=product.get("category") or product.get("category_id"),
            quantity=record.get("quantity", record.get("qty"))
        )
