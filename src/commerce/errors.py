"""Error taxonomy of the commerce core.

Every failure a caller can observe is one of these kinds. The HTTP layer
renders them as ``{"success": false, "error": ..., "kind": ...}`` with the
status code carried by the class.
"""


class CommerceError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "kind": self.kind}


class InvalidTransition(CommerceError):
    """Requested status change is not an edge of the order lifecycle,
    or the order is no longer in the state the caller expected."""

    kind = "InvalidTransition"
    status_code = 409

    def __init__(self, order_id: str, current: str, target: str, message: str | None = None):
        super().__init__(message or f"Cannot transition order {order_id} from {current} to {target}")
        self.order_id = order_id
        self.current = current
        self.target = target


class InsufficientBalance(CommerceError):
    kind = "InsufficientBalance"
    status_code = 422

    def __init__(self, account_id: str, balance: int, delta: int):
        super().__init__(f"Insufficient mileage balance for {account_id}: balance {balance}, requested {-delta}")
        self.account_id = account_id
        self.balance = balance
        self.delta = delta


class OverflowRejected(CommerceError):
    kind = "OverflowRejected"
    status_code = 422


class NotFound(CommerceError):
    kind = "NotFound"
    status_code = 404


class TransientStoreFailure(CommerceError):
    """Storage was unavailable; the whole operation can be retried."""

    kind = "TransientStoreFailure"
    status_code = 503


class DuplicatePosting(CommerceError):
    """Idempotency key already posted. Not a failure for callers of ``post``."""

    kind = "DuplicatePosting"
    status_code = 200

    def __init__(self, entry):
        super().__init__(f"Ledger entry {entry.idempotency_key} already posted")
        self.entry = entry
