"""Çekirdek hata sınıfları."""

from __future__ import annotations


class LedgerError(Exception):
    """Tüm çekirdek hatalarının tabanı."""
    pass


class ValidationError(LedgerError):
    """Transfer isteği geçersiz; depoya hiçbir çağrı yapılmadı."""
    pass


class InsufficientStockError(ValidationError):
    """Kaynak lokasyonda yeterli stok yok."""
    pass


class TransportError(LedgerError):
    """Depo (repository) çağrısı başarısız oldu. Mesaj kullanıcıya aynen iletilir."""

    def __init__(self, message: str, operation: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation


class DataShapeError(LedgerError):
    """Bozuk kalıcı ya da dış veri.

    Çağırana fırlatılmaz; okuma katmanı güvenli varsayılana düşer.
    """
    pass
