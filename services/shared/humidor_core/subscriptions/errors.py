"""Subscription engine exceptions."""


class SubscriptionError(Exception):
    """Base class for subscription engine errors."""


class SubscriptionBackendError(SubscriptionError):
    """A document backend call failed.

    Attributes:
        operation: Backend operation that failed (``get``, ``merge``, ...).
        user_id: User whose document was being accessed.
    """

    def __init__(self, message: str, *, operation: str, user_id: str):
        super().__init__(message)
        self.operation = operation
        self.user_id = user_id
