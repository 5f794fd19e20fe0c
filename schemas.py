"""
Database Schemas for the Catalogue

Each Pydantic model below describes a document stored in MongoDB or an input
accepted by the API. Collection names are the lowercase of the document class:

Collections:
- product
- comment
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ProductCategory(str, Enum):
    STYLE = "STYLE"
    FOOD = "FOOD"
    TECH = "TECH"
    SPORT = "SPORT"


class SortingValue(str, Enum):
    createdAt = "createdAt"
    price = "price"


class SortingOrder(str, Enum):
    asc = "asc"
    desc = "desc"


# -----------------------------
# Inputs
# -----------------------------

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: float = Field(..., ge=0, description="Price")
    category: ProductCategory = Field(..., description="Product category")


class CommentCreate(BaseModel):
    title: str = Field(..., min_length=1, description="Comment title")
    body: Optional[str] = Field(None, description="Comment text")
    stars: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")


class ProductFilter(BaseModel):
    """Missing fields match everything: all categories, any rating, any price."""
    categories: List[ProductCategory] = Field(default_factory=lambda: list(ProductCategory))
    min_stars: float = Field(0, description="Lowest accepted average rating")
    min_price: float = Field(0, description="Lowest accepted price")
    max_price: Optional[float] = Field(None, description="Highest accepted price, unbounded when None")


class ProductSort(BaseModel):
    value: SortingValue = SortingValue.createdAt
    order: SortingOrder = SortingOrder.asc


# -----------------------------
# Documents
# -----------------------------

class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    id: str
    name: str
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    category: ProductCategory
    created_at: datetime
    comments: List[str] = Field(default_factory=list, description="Comment ids, oldest first")
    stars: float = Field(0, ge=0, le=5, description="Mean of the comments' stars")


class Comment(BaseModel):
    """
    Comments collection schema
    Collection name: "comment"
    """
    id: str
    title: str
    body: Optional[str] = None
    stars: int = Field(..., ge=1, le=5)
    date: datetime
