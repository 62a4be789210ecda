# storefront/domain/errors.py
from enum import Enum


class BlockReason(str, Enum):
    NO_ZONES_CONFIGURED = "NoZonesConfigured"
    OUT_OF_RANGE = "OutOfRange"
    ADDRESS_NOT_FOUND = "AddressNotFound"


class CheckoutError(Exception):
    """
    Baza dla bledow domeny koszyk/dostawa/zamowienie.
    kind jest stabilna nazwa zwracana klientowi API.
    """

    kind = "CheckoutError"
    retryable = False

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.kind
        super().__init__(self.detail)


class ValidationError(CheckoutError):
    kind = "ValidationError"


class NotFound(CheckoutError):
    kind = "NotFound"


class EmptyCart(CheckoutError):
    kind = "EmptyCart"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or "Koszyk jest pusty")


class DeliveryBlocked(CheckoutError):
    kind = "DeliveryBlocked"

    def __init__(self, reason: BlockReason, detail: str | None = None):
        self.reason = reason
        super().__init__(detail or f"Dostawa niemozliwa: {reason.value}")


class InvalidStatusTransition(CheckoutError):
    kind = "InvalidStatusTransition"


# bledy infrastruktury, klient moze ponowic raz z tymi samymi danymi
class ConcurrencyConflict(CheckoutError):
    kind = "ConcurrencyConflict"
    retryable = True


class PersistenceFailure(CheckoutError):
    kind = "PersistenceFailure"
    retryable = True
