"""
GraphQL schema for the catalogue, served with a GraphiQL console.

Resolvers fetch the catalogue store from the request context, which FastAPI
fills through the ``get_catalogue`` dependency.
"""

import dataclasses
import logging
import os
import signal
from datetime import datetime
from typing import Annotated, List, Optional

import strawberry
from fastapi import Depends, Request
from strawberry.extensions import SchemaExtension
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

import resolvers
import schemas
from catalogue import Catalogue
from database import StoreUnavailable

logger = logging.getLogger(__name__)

ProductCategory = strawberry.enum(schemas.ProductCategory)
SortingValue = strawberry.enum(schemas.SortingValue)
SortingOrder = strawberry.enum(schemas.SortingOrder)


def get_catalogue(request: Request) -> Catalogue:
    return request.app.state.catalogue


async def get_context(catalogue: Catalogue = Depends(get_catalogue)) -> dict:
    return {"catalogue": catalogue}


def _catalogue(info: Info):
    return info.context["catalogue"]


def _input(value) -> Optional[dict]:
    if value is None:
        return None
    return {k: v for k, v in dataclasses.asdict(value).items() if v is not None}


# -----------------------------
# Types
# -----------------------------

@strawberry.type
class Comment:
    id: strawberry.ID
    title: str
    body: Optional[str]
    stars: int
    date: datetime

    @classmethod
    def from_model(cls, comment: schemas.Comment) -> "Comment":
        return cls(
            id=strawberry.ID(comment.id),
            title=comment.title,
            body=comment.body,
            stars=comment.stars,
            date=comment.date,
        )


@strawberry.type
class Product:
    id: strawberry.ID
    name: str
    description: Optional[str]
    price: float
    category: ProductCategory
    created_at: datetime
    stars: float
    comment_ids: strawberry.Private[List[str]]

    @strawberry.field(description="Comments in the order they were added, or the `last` most recent, newest first")
    def comments(self, info: Info, last: Optional[int] = None) -> List[Comment]:
        found = resolvers.product_comments(_catalogue(info), self.comment_ids, last)
        return [Comment.from_model(c) for c in found]

    @classmethod
    def from_model(cls, product: schemas.Product) -> "Product":
        return cls(
            id=strawberry.ID(product.id),
            name=product.name,
            description=product.description,
            price=product.price,
            category=product.category,
            created_at=product.created_at,
            stars=product.stars,
            comment_ids=list(product.comments),
        )


# -----------------------------
# Inputs
# -----------------------------

@strawberry.input
class ProductCreateInput:
    name: str
    price: float
    category: ProductCategory
    description: Optional[str] = None


@strawberry.input
class CommentCreateInput:
    title: str
    stars: int
    body: Optional[str] = None


@strawberry.input
class ProductFilterInput:
    categories: Optional[List[ProductCategory]] = None
    min_stars: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


@strawberry.input
class ProductSortInput:
    value: SortingValue
    order: SortingOrder


# -----------------------------
# Operations
# -----------------------------

@strawberry.type
class Query:
    @strawberry.field
    def product(
        self,
        info: Info,
        product_id: Annotated[strawberry.ID, strawberry.argument(name="id")],
    ) -> Optional[Product]:
        return Product.from_model(resolvers.get_product(_catalogue(info), product_id))

    @strawberry.field
    def products(
        self,
        info: Info,
        product_filter: Annotated[Optional[ProductFilterInput], strawberry.argument(name="filter")] = None,
        sort: Optional[ProductSortInput] = None,
    ) -> List[Product]:
        found = resolvers.list_products(_catalogue(info), _input(product_filter), _input(sort))
        return [Product.from_model(p) for p in found]


@strawberry.type
class Mutation:
    @strawberry.mutation
    def create_product(self, info: Info, product: ProductCreateInput) -> Product:
        created = resolvers.create_product(_catalogue(info), _input(product))
        return Product.from_model(created)

    @strawberry.mutation
    def create_comment(self, info: Info, comment: CommentCreateInput, product_id: strawberry.ID) -> Comment:
        created = resolvers.create_comment(_catalogue(info), _input(comment), product_id)
        return Comment.from_model(created)


# -----------------------------
# Operation log
# -----------------------------

def _summarize(value) -> str:
    if isinstance(value, dict):
        return str(value.get("id", value))
    if isinstance(value, list):
        return f"[{len(value)} items]"
    return str(value)


def shutdown() -> None:
    os.kill(os.getpid(), signal.SIGTERM)


class OperationLogger(SchemaExtension):
    """
    Log one line per operation: its type and each top-level field with a short
    form of its result. A lost database connection stops the server.
    """

    def on_operation(self):
        yield
        result = self.execution_context.result
        if result is None:
            return
        operation = "invalid"
        if self.execution_context.graphql_document is not None:
            try:
                operation = self.execution_context.operation_type.value
            except RuntimeError:
                # no operation matching the requested operation name
                pass
        data = getattr(result, "data", None) or {}
        fields = " ".join(f"{name} {_summarize(value)}" for name, value in data.items())
        logger.info("%s %s", operation, fields)

        for error in getattr(result, "errors", None) or []:
            if isinstance(error.original_error, StoreUnavailable):
                logger.critical("Stopping server: %s", error.original_error)
                shutdown()
                break


schema = strawberry.Schema(query=Query, mutation=Mutation, extensions=[OperationLogger])


def create_graphql_router() -> GraphQLRouter:
    return GraphQLRouter(schema, graphql_ide="graphiql", context_getter=get_context)
