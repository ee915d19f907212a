"""DynamoDB depoları unit testleri (boto3 MagicMock ile)."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from warehouse_ledger.config import Settings
from warehouse_ledger.errors import TransportError
from warehouse_ledger.repositories import (
    LocationRepository,
    MovementRepository,
    ProductRepository,
    unwrap,
)
from warehouse_ledger.repositories.dynamodb import MAX_TRANSACTION_ITEMS, to_dynamo, to_json


def _client_error(code="ValidationException"):
    return ClientError({"Error": {"Code": code, "Message": "hata"}}, "Operation")


def _repo(cls):
    resource = MagicMock()
    client = MagicMock()
    repo = cls(Settings(), dynamodb_resource=resource, dynamodb_client=client)
    return repo, resource.Table.return_value, client


class TestConversions:
    def test_to_json(self):
        assert to_json({"a": Decimal("2"), "b": [Decimal("1.5")]}) == {"a": 2, "b": [1.5]}

    def test_to_dynamo(self):
        assert to_dynamo({"p": 9.99, "q": 3}) == {"p": Decimal("9.99"), "q": 3}


class TestEnvelope:
    def test_unwrap_success(self):
        assert unwrap({"success": True, "data": [1]}, "op") == [1]

    def test_unwrap_failure_message(self):
        with pytest.raises(TransportError) as exc:
            unwrap({"success": False, "error": "Bağlantı koptu"}, "products.get_all")
        assert exc.value.message == "Bağlantı koptu"
        assert exc.value.operation == "products.get_all"

    def test_unwrap_non_dict(self):
        with pytest.raises(TransportError):
            unwrap(None, "op")


class TestProductRepository:
    def test_get_all_paginates_scan(self):
        repo, table, _ = _repo(ProductRepository)
        table.scan.side_effect = [
            {"Items": [{"product_id": "2", "name": "b", "stock": Decimal("3")}], "LastEvaluatedKey": {"product_id": "2"}},
            {"Items": [{"product_id": "1", "name": "a", "stock": Decimal("1")}]},
        ]
        resp = repo.get_all({"limit": 1, "page": 2})
        assert resp["success"]
        assert resp["data"] == [{"product_id": "2", "name": "b", "stock": 3}]
        assert resp["pagination"] == {"page": 2, "limit": 1, "total": 2, "pages": 2}
        assert table.scan.call_args_list[1].kwargs["ExclusiveStartKey"] == {"product_id": "2"}

    def test_get_all_by_category_queries_index(self):
        repo, table, _ = _repo(ProductRepository)
        table.query.side_effect = [
            {"Items": [{"product_id": "2", "name": "b", "category": "kablo"}], "LastEvaluatedKey": {"product_id": "2"}},
            {"Items": [{"product_id": "1", "name": "a", "category": "kablo"}]},
        ]
        resp = repo.get_all({"category": "kablo"})
        assert [p["product_id"] for p in resp["data"]] == ["1", "2"]
        first = table.query.call_args_list[0].kwargs
        assert first["IndexName"] == "CategoryIndex"
        assert first["KeyConditionExpression"] == Key("category").eq("kablo")
        assert table.query.call_args_list[1].kwargs["ExclusiveStartKey"] == {"product_id": "2"}
        table.scan.assert_not_called()

    def test_get_categories(self):
        repo, table, _ = _repo(ProductRepository)
        table.scan.return_value = {"Items": [
            {"product_id": "1", "category": "c1", "category_name": "Kablo"},
            {"product_id": "2", "category": "c2"},
            {"product_id": "3"},
        ]}
        assert repo.get_categories()["data"] == {"c1": "Kablo", "c2": "c2"}

    def test_scan_error_becomes_failure(self):
        repo, table, _ = _repo(ProductRepository)
        table.scan.side_effect = _client_error()
        resp = repo.get_all()
        assert resp["success"] is False
        assert "hata" in resp["error"]


class TestLocationRepository:
    def test_sorted_by_code(self):
        repo, table, _ = _repo(LocationRepository)
        table.scan.return_value = {"Items": [{"code": "B"}, {"code": "A"}]}
        assert [i["code"] for i in repo.get_all()["data"]] == ["A", "B"]


class TestMovementRepository:
    """Hareket kayıtları ve atomik parti tamamlama."""

    def test_create_conditional_put(self):
        repo, table, _ = _repo(MovementRepository)
        resp = repo.create({"movement_id": "M1", "quantity": 2, "batch_number": None, "notes": ""})
        assert resp["data"] == {"movement_id": "M1", "quantity": 2}
        kwargs = table.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_not_exists(movement_id)"

    def test_update_builds_expression(self):
        repo, table, _ = _repo(MovementRepository)
        table.update_item.return_value = {"Attributes": {"movement_id": "M1", "notes": "n"}}
        resp = repo.update("M1", {"notes": "n"})
        assert resp["data"]["notes"] == "n"
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #f0 = :v0"
        assert kwargs["ExpressionAttributeNames"] == {"#f0": "notes"}

    def test_update_requires_fields(self):
        repo, _, _ = _repo(MovementRepository)
        assert repo.update("M1", {})["success"] is False

    def test_delete_failure(self):
        repo, table, _ = _repo(MovementRepository)
        table.delete_item.side_effect = _client_error("ConditionalCheckFailedException")
        assert repo.delete("M1")["success"] is False

    def test_complete_batch_single_transaction(self):
        repo, _, client = _repo(MovementRepository)
        resp = repo.complete_batch("B1", ["M1", "M2"], {"P1": {"A": 7, "B": 3}})

        assert resp == {"success": True, "data": {"batch_number": "B1", "completed_count": 2}}
        client.transact_write_items.assert_called_once()
        items = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert len(items) == 3
        product_update = items[0]["Update"]
        assert product_update["TableName"] == "Products"
        assert product_update["ExpressionAttributeValues"][":ls"] == {
            "M": {"A": {"N": "7"}, "B": {"N": "3"}}
        }
        assert items[1]["Update"]["Key"] == {"movement_id": {"S": "M1"}}
        assert items[1]["Update"]["ConditionExpression"] == "#s <> :done"

    def test_complete_batch_with_new_movements(self):
        repo, _, client = _repo(MovementRepository)
        repo.complete_batch("M9", [], {"P1": {"A": 1}}, new_movements=[
            {"movement_id": "M9", "quantity": 1, "status": "completed"},
        ])
        items = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert items[0]["Put"]["Item"]["movement_id"] == {"S": "M9"}
        assert items[0]["Put"]["TableName"] == "StockMovements"

    def test_cancelled_transaction(self):
        repo, _, client = _repo(MovementRepository)
        client.transact_write_items.side_effect = _client_error("TransactionCanceledException")
        resp = repo.complete_batch("B1", ["M1"], {"P1": {"A": 1}})
        assert resp["success"] is False
        assert "Transaction failed" in resp["error"]

    def test_too_many_items(self):
        repo, _, client = _repo(MovementRepository)
        ids = [f"M{i}" for i in range(MAX_TRANSACTION_ITEMS + 1)]
        assert repo.complete_batch("B1", ids, {})["success"] is False
        client.transact_write_items.assert_not_called()

    def test_create_many(self):
        repo, _, client = _repo(MovementRepository)
        resp = repo.create_many([{"movement_id": "M1"}, {"movement_id": "M2"}])
        assert resp["success"]
        assert len(client.transact_write_items.call_args.kwargs["TransactItems"]) == 2
