# storefront/domain/errors.py


class StoreError(Exception):
    """Base for every error a service raises on purpose.

    `status_code` is the HTTP status the API layer answers with, `detail`
    is an optional extra string returned next to the message.
    """

    status_code = 500

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(StoreError):
    status_code = 400


class ExpiredError(ValidationError):
    pass


class UsageExceededError(ValidationError):
    pass


class MinimumPurchaseError(ValidationError):
    def __init__(self, message: str, min_purchase):
        super().__init__(message)
        self.min_purchase = min_purchase


class NotFoundError(StoreError):
    status_code = 404


class ConflictError(StoreError):
    status_code = 409


class UnauthorizedError(StoreError):
    status_code = 401


class ForbiddenError(StoreError):
    status_code = 403


class UpstreamStoreError(StoreError):
    status_code = 500
