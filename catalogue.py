"""
Catalogue store: products and comments kept in two MongoDB collections.

Every method takes and returns plain dicts with a string ``id`` in place of
the MongoDB ``_id``. A product references its comments by id; the stars of
those comments are mirrored in the product's ``ratings`` list so the mean can
be recomputed by the server in the same update that attaches a comment.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from database import CatalogueError, create_document, get_documents, guarded, serialize, to_obj_id

logger = logging.getLogger(__name__)

PRODUCTS = "product"
COMMENTS = "comment"


class ValidationFailure(CatalogueError):
    pass


class NotFound(CatalogueError):
    pass


def _product_out(doc: Optional[dict]) -> Optional[dict]:
    doc = serialize(doc)
    if doc:
        doc["comments"] = [str(c) for c in doc.get("comments", [])]
        doc.pop("ratings", None)
    return doc


class Catalogue:
    def __init__(self, db: Database):
        self.db = db

    @guarded
    def insert_product(self, data: Dict[str, Any]) -> dict:
        data = {**data, "comments": [], "ratings": [], "stars": 0}
        product_id = create_document(self.db, PRODUCTS, data)
        return _product_out({"_id": product_id, **data})

    @guarded
    def insert_comment(self, data: Dict[str, Any]) -> dict:
        comment_id = create_document(self.db, COMMENTS, data)
        return {"id": comment_id, **data}

    @guarded
    def find_product(self, product_id: str) -> Optional[dict]:
        oid = to_obj_id(product_id)
        if oid is None:
            return None
        return _product_out(self.db[PRODUCTS].find_one({"_id": oid}))

    @guarded
    def find_products(self, query: Dict[str, Any], sort: Sequence[Tuple[str, int]]) -> List[dict]:
        return [_product_out(d) for d in get_documents(self.db, PRODUCTS, query, sort=sort)]

    @guarded
    def find_comments(self, comment_ids: Sequence[str], last: Optional[int] = None) -> List[dict]:
        """
        Load comments by id.

        Without ``last`` the comments come back in the order of ``comment_ids``;
        with it, the ``last`` most recent ones, newest first.
        """
        oids = [oid for oid in map(to_obj_id, comment_ids) if oid is not None]
        query = {"_id": {"$in": oids}}
        if last is not None:
            docs = get_documents(self.db, COMMENTS, query, limit=last,
                                 sort=[("date", DESCENDING), ("_id", DESCENDING)])
            return [serialize(d) for d in docs]
        by_id = {d["_id"]: d for d in get_documents(self.db, COMMENTS, query)}
        return [serialize(by_id[oid]) for oid in oids if oid in by_id]

    @guarded
    def apply_comment(self, product_id: str, comment_id: str, stars: int) -> Optional[dict]:
        """
        Attach a comment to a product and recompute its stars in one atomic update.

        Returns the updated product, or None when no product has this id.
        """
        oid = to_obj_id(product_id)
        if oid is None:
            return None
        pipeline = [
            {"$set": {
                "comments": {"$concatArrays": [{"$ifNull": ["$comments", []]}, [to_obj_id(comment_id)]]},
                "ratings": {"$concatArrays": [{"$ifNull": ["$ratings", []]}, [stars]]},
            }},
            {"$set": {"stars": {"$avg": "$ratings"}}},
        ]
        doc = self.db[PRODUCTS].find_one_and_update(
            {"_id": oid}, pipeline, return_document=ReturnDocument.AFTER
        )
        return _product_out(doc)

    @guarded
    def delete_comment(self, comment_id: str) -> bool:
        oid = to_obj_id(comment_id)
        if oid is None:
            return False
        return self.db[COMMENTS].delete_one({"_id": oid}).deleted_count > 0

    @guarded
    def status(self) -> dict:
        return {
            "database_name": self.db.name,
            "collections": self.db.list_collection_names(),
        }
