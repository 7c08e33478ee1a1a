"""Pydantic schemas for API payloads."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictInt, field_validator

from .models import StockTransaction, TransactionType


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class CategoryRead(CategoryBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_date: datetime
    modified_date: Optional[datetime] = None


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    contact_person: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    contact_person: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class SupplierRead(SupplierBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_date: datetime
    modified_date: Optional[datetime] = None


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    sku: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    unit_price: Decimal = Field(Decimal("0.00"), ge=0, le=Decimal("999999.99"), decimal_places=2)
    minimum_stock: int = Field(10, ge=0)
    category_id: int
    supplier_id: Optional[int] = None
    is_active: bool = True


class ProductCreate(ProductBase):
    opening_stock: int = Field(0, ge=0, description="Posted as a StockIn once the product exists")


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sku: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    unit_price: Optional[Decimal] = Field(None, ge=0, le=Decimal("999999.99"), decimal_places=2)
    minimum_stock: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None
    is_active: Optional[bool] = None


class ProductRead(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    current_stock: int
    is_low_stock: bool
    created_date: datetime
    modified_date: Optional[datetime] = None


class StockPosting(BaseModel):
    """Posting request. Business rules are enforced by the engine, not here."""

    product_id: int
    transaction_type: TransactionType
    quantity: StrictInt
    remarks: str

    @field_validator("transaction_type", mode="before")
    @classmethod
    def _parse_transaction_type(cls, value: object) -> TransactionType:
        return TransactionType.parse(value)


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    transaction_type: TransactionType
    quantity: int
    remarks: str
    stock_before: int
    stock_after: int
    created_by: str
    created_date: datetime


class RecentTransactionRead(TransactionRead):
    product_name: str
    category_name: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: StockTransaction) -> "RecentTransactionRead":
        category = entry.product.category
        return cls(
            **TransactionRead.model_validate(entry).model_dump(),
            product_name=entry.product.name,
            category_name=category.name if category else None,
        )


class EntryIssueRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: int
    problem: str


class ConsistencyReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    stored_stock: int
    replayed_stock: int
    entry_count: int
    drift: int
    consistent: bool
    issues: list[EntryIssueRead]


class DashboardRead(BaseModel):
    total_products: int
    total_categories: int
    low_stock_count: int
    total_stock_value: Decimal
    low_stock_products: list[ProductRead]
    recent_transactions: list[RecentTransactionRead]
