"""Custom exceptions for cartflow."""


class CartflowError(Exception):
    """Base exception for all cartflow errors."""

    pass


class InvalidLineItemError(CartflowError):
    """Raised when a line item carries a negative price or a quantity below 1."""

    def __init__(self, line_id: str, reason: str):
        self.line_id = line_id
        self.reason = reason
        super().__init__(f"Invalid line item {line_id}: {reason}")


class DuplicateLineItemError(CartflowError):
    """Raised when adding a line whose id is already in the cart or saved list."""

    def __init__(self, line_id: str):
        self.line_id = line_id
        super().__init__(f"Line item already exists: {line_id}")


class OutOfStockError(CartflowError):
    """Raised when moving an out-of-stock saved item back into the cart."""

    def __init__(self, line_id: str, name: str | None = None):
        self.line_id = line_id
        self.name = name
        label = f"'{name}'" if name else line_id
        super().__init__(f"Item {label} is out of stock")


class CheckoutBlockedError(CartflowError):
    """Raised when checkout is started from a cart that cannot be checked out."""

    def __init__(self, reason: str, line_ids: list[str] | None = None):
        self.reason = reason
        self.line_ids = line_ids or []
        msg = f"Cannot proceed to checkout: {reason}"
        if self.line_ids:
            msg = f"{msg} ({', '.join(self.line_ids)})"
        super().__init__(msg)


class StepValidationError(CartflowError):
    """Raised when a checkout step's form fails validation.

    The wizard stays on the failing step; ``field_errors`` maps each
    offending field name to a user-facing message.
    """

    def __init__(self, step: str, field_errors: dict[str, str]):
        self.step = step
        self.field_errors = dict(field_errors)
        fields = ", ".join(sorted(self.field_errors))
        super().__init__(f"Step '{step}' has invalid fields: {fields}")


class InvalidTransitionError(CartflowError):
    """Raised when a checkout action is not allowed from the current step."""

    def __init__(self, current: str, action: str, target: str | None = None):
        self.current = current
        self.action = action
        self.target = target
        msg = f"Cannot {action} from step '{current}'"
        if target:
            msg = f"Cannot {action} to '{target}' from step '{current}'"
        super().__init__(msg)


class UnknownShippingMethodError(CartflowError):
    """Raised when selecting a shipping method id that is not offered."""

    def __init__(self, method_id: str, available: list[str]):
        self.method_id = method_id
        self.available = available
        super().__init__(
            f"Unknown shipping method: {method_id}. Available: {', '.join(available)}"
        )


class CheckoutCompletedError(CartflowError):
    """Raised when acting on a checkout whose order was already placed."""

    def __init__(self, order_number: str | None = None):
        self.order_number = order_number
        msg = "Checkout already completed"
        if order_number:
            msg = f"{msg} (order {order_number})"
        super().__init__(msg)


class SessionNotFoundError(CartflowError):
    """Raised when a session ID doesn't exist."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class CheckoutNotStartedError(CartflowError):
    """Raised when a checkout action is issued before checkout was started."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"No checkout in progress for session {session_id}")


class InvalidCartFileError(CartflowError):
    """Raised when a cart JSON file can't be read or has an invalid shape."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid cart file {path}: {reason}")


class OrderSubmissionError(CartflowError):
    """Raised by an order submitter when the external order API rejects an order."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Order submission failed: {reason}")
