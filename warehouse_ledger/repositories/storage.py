"""Kalıcı anahtar-değer deposu (preset ve son aramalar için)."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from warehouse_ledger.config import Settings
from warehouse_ledger.errors import TransportError

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """JSON serileştirilebilir değerleri anahtar altında saklar."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStorage(KeyValueStorage):
    """Testler ve yerel kullanım için bellek içi depo. Değerler JSON olarak tutulur."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def raw(self, key: str) -> Optional[str]:
        return self._data.get(key)


class DynamoDBKeyValueStorage(KeyValueStorage):
    """UserSettings tablosu (PK: setting_key, 'value' alanında JSON string)."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        dynamodb_resource: Optional[Any] = None,
    ):
        settings = settings or Settings.from_env()
        self.dynamodb = dynamodb_resource or boto3.resource("dynamodb", region_name=settings.region_name)
        self.table = self.dynamodb.Table(settings.settings_table)

    def get(self, key: str) -> Optional[Any]:
        try:
            resp = self.table.get_item(Key={"setting_key": key})
        except (ClientError, BotoCoreError) as e:
            raise TransportError(str(e), operation="settings.get") from e
        item = resp.get("Item")
        if not item or "value" not in item:
            return None
        try:
            return json.loads(item["value"])
        except (TypeError, ValueError):
            logger.warning("Bozuk ayar değeri yok sayıldı: %s", key)
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            self.table.put_item(Item={
                "setting_key": key,
                "value": json.dumps(value, ensure_ascii=False),
            })
        except (ClientError, BotoCoreError) as e:
            raise TransportError(str(e), operation="settings.set") from e

    def remove(self, key: str) -> None:
        try:
            self.table.delete_item(Key={"setting_key": key})
        except (ClientError, BotoCoreError) as e:
            raise TransportError(str(e), operation="settings.remove") from e
