from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

import database


@patch("database.MongoClient")
def test_connect_pings_and_returns_database(mongo_client):
    client = mongo_client.return_value
    db = database.connect("mongodb://db:27017", "Catalogue", 100)

    mongo_client.assert_called_once_with("mongodb://db:27017", serverSelectionTimeoutMS=100, tz_aware=True)
    client.admin.command.assert_called_once_with("ping")
    assert db is client.__getitem__.return_value
    client.__getitem__.assert_called_once_with("Catalogue")


@patch("database.MongoClient")
def test_connect_failure_aborts(mongo_client):
    client = mongo_client.return_value
    client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

    with pytest.raises(database.StoreUnavailable):
        database.connect("mongodb://db:27017", "Catalogue", 100)
    client.close.assert_called_once()


def test_to_obj_id():
    oid = ObjectId()
    assert database.to_obj_id(str(oid)) == oid
    assert database.to_obj_id("nope") is None
    assert database.to_obj_id(None) is None


def test_create_document_accepts_dicts():
    db = MagicMock()
    oid = ObjectId()
    db.__getitem__.return_value.insert_one.return_value.inserted_id = oid

    assert database.create_document(db, "comment", {"title": "ok"}) == str(oid)
    db.__getitem__.assert_called_with("comment")
