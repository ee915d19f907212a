"""DynamoDB tabanlı ürün, lokasyon ve stok hareketi depoları.

Tüm metotlar zarf biçiminde yanıt döndürür:
    {"success": True, "data": ..., "pagination": {...}}
    {"success": False, "error": "..."}
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from warehouse_ledger.config import Settings

logger = logging.getLogger(__name__)

# DynamoDB transaction başına öğe sınırı
MAX_TRANSACTION_ITEMS = 100
PRODUCT_CATEGORY_INDEX = "CategoryIndex"


def to_json(obj: Any) -> Any:
    """Decimal değerleri int/float'a çevirir."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: to_json(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [to_json(i) for i in obj]
    return obj


def to_dynamo(obj: Any) -> Any:
    """float değerleri DynamoDB'nin kabul ettiği Decimal'e çevirir."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: to_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [to_dynamo(i) for i in obj]
    return obj


def _failure(operation: str, error: Exception) -> dict:
    logger.error("DynamoDB hatası [%s]: %s", operation, error)
    return {"success": False, "error": str(error)}


def _paginate(items: list, params: Optional[dict]) -> dict:
    params = params or {}
    limit = int(params.get("limit") or 0)
    page = max(1, int(params.get("page") or 1))
    total = len(items)
    if limit <= 0:
        return {"success": True, "data": items, "pagination": {"page": 1, "limit": total, "total": total, "pages": 1}}
    start = (page - 1) * limit
    return {
        "success": True,
        "data": items[start:start + limit],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": max(1, math.ceil(total / limit))},
    }


class DynamoDBRepository:
    """Tek bir DynamoDB tablosu üzerinde çalışan depo tabanı."""

    def __init__(
        self,
        table_name: str,
        region_name: str = "us-west-2",
        dynamodb_resource: Optional[Any] = None,
        dynamodb_client: Optional[Any] = None,
    ):
        self.table_name = table_name
        self.region_name = region_name
        # AWS istemcileri - dependency injection destekli
        self.dynamodb = dynamodb_resource or boto3.resource("dynamodb", region_name=region_name)
        self._client = dynamodb_client
        self.table = self.dynamodb.Table(table_name)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("dynamodb", region_name=self.region_name)
        return self._client

    def _scan_all(self, filter_expression: Optional[Any] = None) -> list[dict]:
        kwargs: dict[str, Any] = {}
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression
        items: list[dict] = []
        while True:
            resp = self.table.scan(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return to_json(items)
            kwargs["ExclusiveStartKey"] = last_key

    def _query_all(self, index_name: str, key_condition: Any) -> list[dict]:
        kwargs: dict[str, Any] = {"IndexName": index_name, "KeyConditionExpression": key_condition}
        items: list[dict] = []
        while True:
            resp = self.table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return to_json(items)
            kwargs["ExclusiveStartKey"] = last_key

class ProductRepository(DynamoDBRepository):
    """Products tablosu (PK: product_id, GSI: CategoryIndex)."""

    def __init__(self, settings: Optional[Settings] = None, **kwargs: Any):
        settings = settings or Settings.from_env()
        kwargs.setdefault("region_name", settings.region_name)
        super().__init__(settings.products_table, **kwargs)

    def get_all(self, params: Optional[dict] = None) -> dict:
        params = params or {}
        try:
            if params.get("category"):
                items = self._query_all(PRODUCT_CATEGORY_INDEX, Key("category").eq(params["category"]))
            else:
                items = self._scan_all()
        except (ClientError, BotoCoreError) as e:
            return _failure("products.get_all", e)
        items.sort(key=lambda item: str(item.get("name", "")))
        return _paginate(items, params)

    def get_categories(self) -> dict:
        """Kategori anahtarı -> görünen ad eşlemesi."""
        try:
            items = self._scan_all()
        except (ClientError, BotoCoreError) as e:
            return _failure("products.get_categories", e)
        categories: dict[str, str] = {}
        for item in items:
            key = item.get("category")
            if key:
                categories.setdefault(key, item.get("category_name") or key)
        return {"success": True, "data": categories}


class LocationRepository(DynamoDBRepository):
    """Locations tablosu (PK: code)."""

    def __init__(self, settings: Optional[Settings] = None, **kwargs: Any):
        settings = settings or Settings.from_env()
        kwargs.setdefault("region_name", settings.region_name)
        super().__init__(settings.locations_table, **kwargs)

    def get_all(self, params: Optional[dict] = None) -> dict:
        params = params or {}
        try:
            expression = None
            if params.get("zone"):
                expression = Attr("zone").eq(params["zone"])
            items = self._scan_all(expression)
        except (ClientError, BotoCoreError) as e:
            return _failure("locations.get_all", e)
        items.sort(key=lambda item: str(item.get("code", "")))
        return _paginate(items, params)


class MovementRepository(DynamoDBRepository):
    """StockMovements tablosu (PK: movement_id, GSI: BatchIndex)."""

    def __init__(self, settings: Optional[Settings] = None, **kwargs: Any):
        settings = settings or Settings.from_env()
        kwargs.setdefault("region_name", settings.region_name)
        super().__init__(settings.movements_table, **kwargs)
        self.products_table_name = settings.products_table

    def get_all(self, params: Optional[dict] = None) -> dict:
        params = params or {}
        filters = []
        for key in ("status", "movement_type", "product_id", "batch_number"):
            if params.get(key):
                filters.append(Attr(key).eq(params[key]))
        expression = None
        if filters:
            expression = filters[0]
            for f in filters[1:]:
                expression = expression & f
        try:
            items = self._scan_all(expression)
        except (ClientError, BotoCoreError) as e:
            return _failure("movements.get_all", e)
        items.sort(key=lambda item: str(item.get("timestamp", "")), reverse=True)
        return _paginate(items, params)

    def create(self, data: dict) -> dict:
        item = {k: v for k, v in data.items() if v is not None and v != ""}
        try:
            self.table.put_item(
                Item=to_dynamo(item),
                ConditionExpression="attribute_not_exists(movement_id)",
            )
        except (ClientError, BotoCoreError) as e:
            return _failure("movements.create", e)
        return {"success": True, "data": item}

    def update(self, movement_id: str, patch: dict) -> dict:
        if not patch:
            return {"success": False, "error": "Güncellenecek alan yok"}
        names = {f"#f{i}": key for i, key in enumerate(patch)}
        values = {f":v{i}": to_dynamo(value) for i, value in enumerate(patch.values())}
        expression = "SET " + ", ".join(f"#f{i} = :v{i}" for i in range(len(patch)))
        try:
            resp = self.table.update_item(
                Key={"movement_id": movement_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(movement_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except (ClientError, BotoCoreError) as e:
            return _failure("movements.update", e)
        return {"success": True, "data": to_json(resp.get("Attributes", {}))}

    def delete(self, movement_id: str) -> dict:
        try:
            self.table.delete_item(
                Key={"movement_id": movement_id},
                ConditionExpression="attribute_exists(movement_id)",
            )
        except (ClientError, BotoCoreError) as e:
            return _failure("movements.delete", e)
        return {"success": True, "data": {"movement_id": movement_id}}

    def _put_items(self, items: list[dict], serializer: TypeSerializer) -> list[dict]:
        puts = []
        for item in items:
            clean = {k: v for k, v in item.items() if v is not None and v != ""}
            puts.append({"Put": {
                "TableName": self.table_name,
                "Item": {k: serializer.serialize(to_dynamo(v)) for k, v in clean.items()},
                "ConditionExpression": "attribute_not_exists(movement_id)",
            }})
        return puts

    def _transact(self, operation: str, transact_items: list[dict]) -> Optional[dict]:
        """Transaction'ı çalıştırır; hata varsa başarısız zarf döndürür."""
        if len(transact_items) > MAX_TRANSACTION_ITEMS:
            return {
                "success": False,
                "error": f"Parti çok büyük: {len(transact_items)} öğe (en fazla {MAX_TRANSACTION_ITEMS})",
            }
        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "TransactionCanceledException":
                logger.error("Transaction iptal edildi [%s]: %s", operation, e)
                return {"success": False, "error": "Transaction failed - batch changed or condition not met"}
            return _failure(operation, e)
        except BotoCoreError as e:
            return _failure(operation, e)
        return None

    def create_many(self, items: list[dict]) -> dict:
        """Çok kalemli taslak transferi tek transaction'da oluşturur."""
        serializer = TypeSerializer()
        failure = self._transact("movements.create_many", self._put_items(items, serializer))
        if failure:
            return failure
        return {"success": True, "data": items}

    def complete_batch(
        self,
        batch_id: str,
        movement_ids: list[str],
        product_ledgers: dict[str, dict[str, int]],
        new_movements: Optional[list[dict]] = None,
    ) -> dict:
        """Partiyi tek bir DynamoDB transaction'ı ile tamamlar.

        Ürünlerin yeni locationStock değerleri ve hareketlerin 'completed'
        durumu birlikte yazılır; herhangi bir koşul tutmazsa hiçbiri yazılmaz.
        new_movements doğrudan tamamlanmış olarak oluşturulan kayıtlardır.
        """
        serializer = TypeSerializer()
        ts = datetime.now(timezone.utc).isoformat()
        transact_items = self._put_items(new_movements or [], serializer)
        for product_id, ledger in product_ledgers.items():
            transact_items.append({"Update": {
                "TableName": self.products_table_name,
                "Key": {"product_id": {"S": product_id}},
                "UpdateExpression": "SET location_stock = :ls, updated_at = :ts",
                "ConditionExpression": "attribute_exists(product_id)",
                "ExpressionAttributeValues": {
                    ":ls": serializer.serialize(ledger),
                    ":ts": {"S": ts},
                },
            }})
        for movement_id in movement_ids:
            transact_items.append({"Update": {
                "TableName": self.table_name,
                "Key": {"movement_id": {"S": movement_id}},
                "UpdateExpression": "SET #s = :done",
                "ConditionExpression": "#s <> :done",
                "ExpressionAttributeNames": {"#s": "status"},
                "ExpressionAttributeValues": {":done": {"S": "completed"}},
            }})

        failure = self._transact("movements.complete_batch", transact_items)
        if failure:
            return failure
        return {
            "success": True,
            "data": {
                "batch_number": batch_id,
                "completed_count": len(movement_ids) + len(new_movements or []),
            },
        }
