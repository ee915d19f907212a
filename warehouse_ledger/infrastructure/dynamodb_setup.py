"""DynamoDB tablo oluşturma ve başlangıç verisi yükleme.

4 tablo: Products, Locations, StockMovements, UserSettings
"""

from __future__ import annotations

import json
import sys
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from warehouse_ledger.config import Settings
from warehouse_ledger.repositories.dynamodb import to_dynamo

BOTO_CONFIG = Config(retries={"max_attempts": 3})


def table_definitions(settings: Settings) -> list[dict]:
    return [
        {
            "TableName": settings.products_table,
            "KeySchema": [
                {"AttributeName": "product_id", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "product_id", "AttributeType": "S"},
                {"AttributeName": "category", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "CategoryIndex",
                    "KeySchema": [
                        {"AttributeName": "category", "KeyType": "HASH"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": settings.locations_table,
            "KeySchema": [
                {"AttributeName": "code", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "code", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": settings.movements_table,
            "KeySchema": [
                {"AttributeName": "movement_id", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "movement_id", "AttributeType": "S"},
                {"AttributeName": "batch_number", "AttributeType": "S"},
                {"AttributeName": "timestamp", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "BatchIndex",
                    "KeySchema": [
                        {"AttributeName": "batch_number", "KeyType": "HASH"},
                        {"AttributeName": "timestamp", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": settings.settings_table,
            "KeySchema": [
                {"AttributeName": "setting_key", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "setting_key", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]


def create_tables(settings: Optional[Settings] = None, client: Optional[Any] = None) -> list[str]:
    """Eksik tabloları oluşturur, oluşturulan tablo adlarını döndürür."""
    settings = settings or Settings.from_env()
    dynamodb = client or boto3.client("dynamodb", region_name=settings.region_name, config=BOTO_CONFIG)

    created = []
    for table_def in table_definitions(settings):
        table_name = table_def["TableName"]
        try:
            dynamodb.describe_table(TableName=table_name)
            print(f"  ⏭️  {table_name} zaten mevcut, atlanıyor")
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceNotFoundException":
                print(f"  🔨 {table_name} oluşturuluyor...")
                dynamodb.create_table(**table_def)
                # Tablonun aktif olmasını bekle
                waiter = dynamodb.get_waiter("table_exists")
                waiter.wait(TableName=table_name)
                print(f"  ✓  {table_name} oluşturuldu")
                created.append(table_name)
            else:
                raise
    return created


def load_data_to_table(table_name: str, data: list, settings: Optional[Settings] = None,
                       dynamodb_resource: Optional[Any] = None) -> int:
    """Kayıtları batch write ile tabloya yükler."""
    settings = settings or Settings.from_env()
    dynamodb = dynamodb_resource or boto3.resource("dynamodb", region_name=settings.region_name)
    table = dynamodb.Table(table_name)
    with table.batch_writer() as batch:
        for item in data:
            batch.put_item(Item=to_dynamo(item))
    print(f"  ✓  {table_name}: {len(data)} kayıt yüklendi")
    return len(data)


def load_seed_file(path: str, settings: Optional[Settings] = None,
                   dynamodb_resource: Optional[Any] = None) -> dict[str, int]:
    """{"products": [...], "locations": [...]} biçimindeki JSON dosyasını yükler."""
    settings = settings or Settings.from_env()
    with open(path, "r", encoding="utf-8") as f:
        seed = json.load(f)

    targets = {
        "products": settings.products_table,
        "locations": settings.locations_table,
        "movements": settings.movements_table,
    }
    counts = {}
    for key, table_name in targets.items():
        if seed.get(key):
            counts[key] = load_data_to_table(table_name, seed[key], settings, dynamodb_resource)
    return counts


def delete_tables(settings: Optional[Settings] = None, client: Optional[Any] = None) -> None:
    """Tüm tabloları siler (dikkatli kullan)."""
    settings = settings or Settings.from_env()
    dynamodb = client or boto3.client("dynamodb", region_name=settings.region_name, config=BOTO_CONFIG)
    for table_def in table_definitions(settings):
        table_name = table_def["TableName"]
        try:
            dynamodb.delete_table(TableName=table_name)
            print(f"  🗑️  {table_name} silindi")
        except ClientError:
            print(f"  ⏭️  {table_name} bulunamadı, atlanıyor")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "--delete":
        print("🗑️  Tablolar siliniyor...")
        delete_tables()
    else:
        print("🏗️  DynamoDB tabloları oluşturuluyor...\n")
        create_tables()
        if len(sys.argv) > 2 and sys.argv[1] == "--seed":
            load_seed_file(sys.argv[2])
