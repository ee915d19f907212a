"""Depo yanıt zarfı yardımcıları."""

from __future__ import annotations

from typing import Any

from warehouse_ledger.errors import TransportError


def unwrap(response: Any, operation: str) -> Any:
    """Başarılı zarfın 'data' alanını döndürür, aksi halde TransportError fırlatır."""
    if not isinstance(response, dict):
        raise TransportError(f"Beklenmeyen yanıt: {operation}", operation=operation)
    if not response.get("success"):
        message = response.get("error") or response.get("message") or f"İşlem başarısız: {operation}"
        raise TransportError(str(message), operation=operation)
    return response.get("data")
