# =========================================================
# DOMAIN ERRORS
#
# ValidationError   -> raised before any write, nothing to undo
# ConsistencyError  -> record changed under the caller, not retried
# PersistenceError  -> store rejected a write; partial completion
#                      is described step by step
# =========================================================


class DukaError(Exception):
    """Base class for every error raised by the service layer."""


# =========================================================
# VALIDATION
# =========================================================
class ValidationError(DukaError):
    pass


class EmptyCartError(ValidationError):
    def __init__(self):
        super().__init__("Your cart is empty")


class MissingPaymentMethodError(ValidationError):
    def __init__(self, method=None):
        if method:
            message = f"Unknown payment method: {method}"
        else:
            message = "Please select a payment method"
        super().__init__(message)


class MissingCustomerError(ValidationError):
    def __init__(self):
        super().__init__("Please enter customer name")


class MissingReferenceError(ValidationError):
    def __init__(self):
        super().__init__("Please enter the mobile money transaction reference")


class InvalidPartialAmountError(ValidationError):
    def __init__(self, amount, total):
        super().__init__(
            f"Partial payment must be greater than 0 and less than the total "
            f"({amount} of {total})"
        )
        self.amount = amount
        self.total = total


class InvalidPaymentAmountError(ValidationError):
    def __init__(self, amount, outstanding):
        super().__init__(
            f"Payment must be greater than 0 and at most the outstanding "
            f"balance ({amount} of {outstanding})"
        )
        self.amount = amount
        self.outstanding = outstanding


class InvalidProductError(ValidationError):
    pass


class InvalidImageError(ValidationError):
    pass


# =========================================================
# CONSISTENCY
# =========================================================
class ConsistencyError(DukaError):
    pass


class BalanceAlreadyClearedError(ConsistencyError):
    def __init__(self, balance_id):
        super().__init__(f"Balance {balance_id} is already cleared")
        self.balance_id = balance_id


# =========================================================
# PERSISTENCE
# =========================================================
class PersistenceError(DukaError):
    pass


class StoreError(PersistenceError):
    pass


class DocumentNotFoundError(PersistenceError):
    def __init__(self, collection, document_id):
        super().__init__(f"{collection}/{document_id} not found")
        self.collection = collection
        self.document_id = document_id


class SaleWriteError(PersistenceError):
    def __init__(self, cause):
        super().__init__(f"Sale was not recorded: {cause}")


class CheckoutIncompleteError(PersistenceError):
    """The sale is recorded but one or more follow-up writes failed.

    Nothing is rolled back. ``failures`` holds one message per failed step
    so the shop can reconcile by hand.
    """

    def __init__(self, result, failures):
        self.result = result
        self.failures = failures
        super().__init__(
            f"Sale {result.sale.id} recorded with {len(failures)} "
            f"step(s) needing manual reconciliation"
        )


class LedgerWriteError(PersistenceError):
    def __init__(self, balance_id, cause):
        super().__init__(f"Payment was not applied to balance {balance_id}: {cause}")
        self.balance_id = balance_id


class SaleMirrorError(PersistenceError):
    def __init__(self, balance, sale_id, cause):
        super().__init__(
            f"Payment recorded on balance {balance.id} but sale {sale_id} "
            f"not yet updated: {cause}"
        )
        self.balance = balance
        self.sale_id = sale_id


# =========================================================
# BLOB STORAGE
# =========================================================
class BlobStorageError(DukaError):
    pass
