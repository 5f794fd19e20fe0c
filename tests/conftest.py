"""
Shared fixtures: an in-memory catalogue with the same methods as
``catalogue.Catalogue``, and a TestClient wired to it.
"""

import threading

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient


def _matches(doc: dict, query: dict) -> bool:
    for field, cond in query.items():
        value = doc.get(field)
        if "$in" in cond and value not in cond["$in"]:
            return False
        if "$gte" in cond and not value >= cond["$gte"]:
            return False
        if "$lte" in cond and not value <= cond["$lte"]:
            return False
    return True


class InMemoryCatalogue:
    def __init__(self):
        self.products = {}
        self.comments = {}
        self.ratings = {}
        self._lock = threading.Lock()

    def insert_product(self, data):
        doc = {**data, "id": str(ObjectId()), "comments": [], "stars": 0}
        self.products[doc["id"]] = doc
        self.ratings[doc["id"]] = []
        return dict(doc)

    def insert_comment(self, data):
        doc = {**data, "id": str(ObjectId())}
        self.comments[doc["id"]] = doc
        return dict(doc)

    def find_product(self, product_id):
        doc = self.products.get(product_id)
        return {**doc, "comments": list(doc["comments"])} if doc else None

    def find_products(self, query, sort):
        docs = [dict(d) for d in self.products.values() if _matches(d, query)]
        for field, direction in reversed(sort):
            key = "id" if field == "_id" else field
            docs.sort(key=lambda d: d[key], reverse=direction < 0)
        return docs

    def find_comments(self, comment_ids, last=None):
        docs = [dict(self.comments[i]) for i in comment_ids if i in self.comments]
        if last is not None:
            docs.sort(key=lambda d: (d["date"], d["id"]), reverse=True)
            docs = docs[:last]
        return docs

    def apply_comment(self, product_id, comment_id, stars):
        with self._lock:
            doc = self.products.get(product_id)
            if doc is None:
                return None
            doc["comments"].append(comment_id)
            self.ratings[product_id].append(stars)
            doc["stars"] = sum(self.ratings[product_id]) / len(self.ratings[product_id])
            return self.find_product(product_id)

    def delete_comment(self, comment_id):
        return self.comments.pop(comment_id, None) is not None

    def status(self):
        return {"database_name": "Catalogue", "collections": ["comment", "product"]}


@pytest.fixture
def catalogue():
    return InMemoryCatalogue()


@pytest.fixture
def client(catalogue):
    from graphql_api import get_catalogue
    from main import app

    app.dependency_overrides[get_catalogue] = lambda: catalogue
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def graphql(client):
    def run(query, **variables):
        response = client.post("/graphql", json={"query": query, "variables": variables})
        return response.json()
    return run
