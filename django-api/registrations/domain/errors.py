"""Domain error codes for the registrations module.

Errors are grouped by kind (validation, not found, conflict, ...). Handlers map
the kind to an HTTP status; services only raise.
"""

from dataclasses import dataclass, field
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    PROMO_CODE_NOT_FOUND = "PROMO_CODE_NOT_FOUND"
    PROMO_CODE_INVALID = "PROMO_CODE_INVALID"
    PROMO_CODE_LIMIT_REACHED = "PROMO_CODE_LIMIT_REACHED"
    EVENT_NOT_REGISTRABLE = "EVENT_NOT_REGISTRABLE"
    EVENT_FULL = "EVENT_FULL"
    DUPLICATE_REGISTRATION = "DUPLICATE_REGISTRATION"
    REGISTRATION_ALREADY_CANCELLED = "REGISTRATION_ALREADY_CANCELLED"
    ALREADY_PAID = "ALREADY_PAID"
    REFUND_NOT_ALLOWED = "REFUND_NOT_ALLOWED"
    RECEIPT_NOT_AVAILABLE = "RECEIPT_NOT_AVAILABLE"
    SETTLEMENT_CONFLICT = "SETTLEMENT_CONFLICT"
    SETTLEMENT_FAILED = "SETTLEMENT_FAILED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass(eq=False)
class ValidationError(DomainError):
    """Malformed input. Carries field-level detail."""

    errors: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def for_field(cls, name: str, message: str) -> "ValidationError":
        return cls(
            code=ErrorCode.VALIDATION_FAILED,
            message="Validation failed",
            errors={name: [message]},
        )


class UnauthorizedError(DomainError):
    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)


class ForbiddenError(DomainError):
    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(code=ErrorCode.FORBIDDEN, message=message)


class NotFoundError(DomainError):
    """Base for unresolved references."""


class ConflictError(DomainError):
    """Base for requests that clash with current state."""


class GatewayError(DomainError):
    """The payment provider failed or answered with an error."""

    def __init__(self, message: str = "Payment provider error") -> None:
        super().__init__(code=ErrorCode.GATEWAY_ERROR, message=message)


class GatewayTimeoutError(GatewayError):
    """The payment provider did not answer in time."""

    def __init__(self, message: str = "Payment provider timeout. Please try again.") -> None:
        DomainError.__init__(self, code=ErrorCode.GATEWAY_TIMEOUT, message=message)


class EventNotFoundError(NotFoundError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")
        self.event_id = event_id


class RegistrationNotFoundError(NotFoundError):
    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND, message="Registration not found"
        )
        self.registration_id = registration_id


class PaymentNotFoundError(NotFoundError):
    def __init__(self, reference: str) -> None:
        super().__init__(code=ErrorCode.PAYMENT_NOT_FOUND, message="Payment not found")
        self.reference = reference


class PromoNotFoundError(NotFoundError):
    """Raised when a promo code disappears between validation and redemption."""

    def __init__(self, promo_code_id: str) -> None:
        super().__init__(
            code=ErrorCode.PROMO_CODE_NOT_FOUND, message="Promo code not found"
        )
        self.promo_code_id = promo_code_id


class PromoInvalidError(ValidationError):
    """Unknown, inactive, expired, exhausted or foreign-event promo code."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.PROMO_CODE_INVALID,
            message="Validation failed",
            errors={"promo_code": [reason]},
        )


class PromoLimitReachedError(ConflictError):
    def __init__(self, promo_code_id: str) -> None:
        super().__init__(
            code=ErrorCode.PROMO_CODE_LIMIT_REACHED,
            message="Promo code usage limit reached",
        )
        self.promo_code_id = promo_code_id


class EventNotRegistrableError(ConflictError):
    """Raised for events that already started or took place."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_REGISTRABLE,
            message="Cannot register for past events",
        )
        self.event_id = event_id


class EventFullError(ConflictError):
    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_FULL, message="Event has reached full capacity"
        )
        self.event_id = event_id


class DuplicateRegistrationError(ConflictError):
    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_REGISTRATION,
            message="Already registered for this event",
        )
        self.event_id = event_id


class RegistrationAlreadyCancelledError(ConflictError):
    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_ALREADY_CANCELLED,
            message="Registration is already cancelled",
        )
        self.registration_id = registration_id


class AlreadyPaidError(ConflictError):
    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_PAID, message="Registration is already paid"
        )
        self.registration_id = registration_id


class RefundNotAllowedError(ConflictError):
    def __init__(self, payment_id: str, status: str) -> None:
        super().__init__(
            code=ErrorCode.REFUND_NOT_ALLOWED,
            message="Only completed payments can be refunded",
        )
        self.payment_id = payment_id
        self.status = status


class ReceiptNotAvailableError(ConflictError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(
            code=ErrorCode.RECEIPT_NOT_AVAILABLE,
            message="Receipt is only available for completed payments",
        )
        self.payment_id = payment_id


class SettlementConflictError(ConflictError):
    """A terminal status arrived that contradicts the recorded one."""

    def __init__(self, invoice_id: str, current: str, incoming: str) -> None:
        super().__init__(
            code=ErrorCode.SETTLEMENT_CONFLICT,
            message=f"Cannot apply {incoming} to a {current} payment",
        )
        self.invoice_id = invoice_id
        self.current = current
        self.incoming = incoming


class SettlementFailedError(DomainError):
    """Settlement mutation failed unexpectedly. The provider should retry."""

    def __init__(self, invoice_id: str) -> None:
        super().__init__(
            code=ErrorCode.SETTLEMENT_FAILED, message="Webhook processing failed"
        )
        self.invoice_id = invoice_id


class InvalidSignatureError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SIGNATURE, message="Invalid webhook signature"
        )
