"""
Catalogue operations.

Plain functions taking the catalogue store as their first argument, so the
same code runs against MongoDB or any object with the same methods.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from pymongo import ASCENDING, DESCENDING

from catalogue import NotFound, ValidationFailure
from database import StoreError
from schemas import (
    Comment,
    CommentCreate,
    Product,
    ProductCreate,
    ProductFilter,
    ProductSort,
    SortingOrder,
    SortingValue,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SORT_FIELDS = {
    SortingValue.createdAt: "created_at",
    SortingValue.price: "price",
}


def _now() -> datetime:
    # MongoDB keeps milliseconds only
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _validate(model: Type[M], data: Union[M, Dict[str, Any], None]) -> M:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationFailure(f"Invalid {model.__name__}: {details}") from e


def build_products_query(product_filter: ProductFilter) -> Dict[str, Any]:
    price: Dict[str, float] = {"$gte": product_filter.min_price}
    if product_filter.max_price is not None:
        price["$lte"] = product_filter.max_price
    return {
        "category": {"$in": [c.value for c in product_filter.categories]},
        "stars": {"$gte": product_filter.min_stars},
        "price": price,
    }


def build_products_sort(sort: ProductSort) -> List[tuple]:
    direction = ASCENDING if sort.order == SortingOrder.asc else DESCENDING
    return [(SORT_FIELDS[sort.value], direction), ("_id", direction)]


def create_product(catalogue, product_input) -> Product:
    product_in = _validate(ProductCreate, product_input)
    data = product_in.model_dump(mode="json")
    data["created_at"] = _now()
    product = Product(**catalogue.insert_product(data))
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


def create_comment(catalogue, comment_input, product_id: str) -> Comment:
    """
    Store a comment and attach it to its product.

    The product's comment list and stars are updated in a single atomic store
    operation. When the product does not exist, or attaching fails, the stored
    comment is removed again before the error is raised.
    """
    comment_in = _validate(CommentCreate, comment_input)
    data = comment_in.model_dump()
    data["date"] = _now()
    data["product_id"] = str(product_id)
    comment = Comment(**catalogue.insert_comment(data))

    try:
        product = catalogue.apply_comment(product_id, comment.id, comment.stars)
    except StoreError:
        _discard_comment(catalogue, comment.id)
        raise
    if product is None:
        logger.warning("Product %s not found, removing comment %s", product_id, comment.id)
        _discard_comment(catalogue, comment.id)
        raise NotFound(f"Product {product_id} not found")

    logger.info("Added comment %s to product %s", comment.id, product_id)
    return comment


def _discard_comment(catalogue, comment_id: str) -> None:
    try:
        catalogue.delete_comment(comment_id)
    except StoreError as e:
        logger.error("Could not remove unattached comment %s: %s", comment_id, e)


def get_product(catalogue, product_id: str) -> Product:
    doc = catalogue.find_product(product_id)
    if doc is None:
        raise NotFound(f"Product {product_id} not found")
    return Product(**doc)


def list_products(catalogue, product_filter=None, sort=None) -> List[Product]:
    product_filter = _validate(ProductFilter, product_filter)
    sort = _validate(ProductSort, sort)
    docs = catalogue.find_products(build_products_query(product_filter), build_products_sort(sort))
    return [Product(**d) for d in docs]


def product_comments(catalogue, comment_ids: Sequence[str], last: Optional[int] = None) -> List[Comment]:
    if last is not None:
        if last < 0:
            raise ValidationFailure("last must not be negative")
        if last == 0:
            return []
    return [Comment(**d) for d in catalogue.find_comments(list(comment_ids), last)]
