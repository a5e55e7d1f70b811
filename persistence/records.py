from __future__ import annotations

import re
from datetime import date as Date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EntryType = Literal["income", "expense"]
PaymentMethod = Literal["cash", "card", "wechat", "alipay", "bank_transfer", "other"]
TransactionStatus = Literal["active", "deleted", "archived"]

HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


class StoredRecord(BaseModel):
    """
    Fields every stored document carries. `_id` is exposed as `id` because pydantic
    reserves leading-underscore names.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    id: str | None = Field(default=None, alias="_id")
    createdAt: str | None = None
    updatedAt: str | None = None


class TransactionRecord(StoredRecord):
    userId: str | None = None
    type: EntryType
    amount: float = Field(gt=0)
    categoryId: str = Field(min_length=1)
    description: str = Field(min_length=1, max_length=200)
    merchant: str | None = Field(default=None, max_length=100)
    transactionDate: Date
    paymentMethod: PaymentMethod = "other"
    tags: list[str] = Field(default_factory=list)
    isRecurring: bool = False
    notes: str | None = Field(default=None, max_length=500)
    status: TransactionStatus = "active"

    @field_validator("transactionDate")
    @classmethod
    def _not_in_future(cls, value: Date) -> Date:
        if value > Date.today():
            raise ValueError("transactionDate cannot be in the future")
        return value

    @field_validator("tags")
    @classmethod
    def _short_tags(cls, value: list[str]) -> list[str]:
        cleaned = [t.strip() for t in value if t.strip()]
        if any(len(t) > 20 for t in cleaned):
            raise ValueError("tags must be at most 20 characters")
        return cleaned

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type == "income" else -self.amount


class CategoryMetadata(BaseModel):
    createdBy: Literal["system", "user"] = "user"


class CategoryRecord(StoredRecord):
    name: str = Field(min_length=1, max_length=30)
    type: EntryType
    icon: str = "💰"
    color: str = "#667eea"
    description: str | None = Field(default=None, max_length=100)
    isDefault: bool = False
    userId: str | None = None
    sortOrder: int = 0
    isActive: bool = True
    metadata: CategoryMetadata = Field(default_factory=CategoryMetadata)

    @field_validator("color")
    @classmethod
    def _hex_color(cls, value: str) -> str:
        if not HEX_COLOR_RE.match(value):
            raise ValueError("color must be a hex color such as #667eea")
        return value


DEFAULT_CATEGORIES: list[dict[str, Any]] = [
    # income
    {"name": "工资收入", "type": "income", "icon": "💼", "color": "#4CAF50"},
    {"name": "投资收入", "type": "income", "icon": "📈", "color": "#2196F3"},
    {"name": "兼职收入", "type": "income", "icon": "💻", "color": "#FF9800"},
    {"name": "奖金收入", "type": "income", "icon": "🎁", "color": "#E91E63"},
    {"name": "其他收入", "type": "income", "icon": "💰", "color": "#9C27B0"},
    # expense
    {"name": "餐饮美食", "type": "expense", "icon": "🍔", "color": "#FF5722"},
    {"name": "交通出行", "type": "expense", "icon": "🚗", "color": "#607D8B"},
    {"name": "购物消费", "type": "expense", "icon": "🛍️", "color": "#FFC107"},
    {"name": "住房房租", "type": "expense", "icon": "🏠", "color": "#795548"},
    {"name": "娱乐休闲", "type": "expense", "icon": "🎮", "color": "#3F51B5"},
    {"name": "医疗健康", "type": "expense", "icon": "🏥", "color": "#F44336"},
    {"name": "教育培训", "type": "expense", "icon": "📚", "color": "#009688"},
    {"name": "通讯网络", "type": "expense", "icon": "📱", "color": "#673AB7"},
    {"name": "水电煤气", "type": "expense", "icon": "💡", "color": "#00BCD4"},
    {"name": "其他支出", "type": "expense", "icon": "💸", "color": "#757575"},
]


def default_categories(entry_type: EntryType | None = None) -> list[CategoryRecord]:
    records = [
        CategoryRecord(**c, isDefault=True, sortOrder=i, metadata=CategoryMetadata(createdBy="system"))
        for i, c in enumerate(DEFAULT_CATEGORIES)
    ]
    if entry_type is None:
        return records
    return [r for r in records if r.type == entry_type]
