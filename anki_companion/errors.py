class CompanionError(RuntimeError):
    """Base class for every failure raised by the card pipeline."""


class ProviderNotConfiguredError(CompanionError):
    pass


class TransportError(CompanionError):
    """The completion provider was unreachable, timed out or answered non-2xx."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body


class EmptyResponseError(CompanionError):
    pass


class ResponseParseError(CompanionError):
    pass


class ValidationError(CompanionError):
    """Parsed model output does not match the expected field schema."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class EmptyInputError(CompanionError):
    """A lookup was requested for blank input."""


class UnsupportedNoteTypeError(CompanionError):
    pass


class NotFoundError(CompanionError):
    pass


class EmptySelectionError(CompanionError):
    pass


class NoReadyCardsError(CompanionError):
    pass


class EmptyDraftListError(CompanionError):
    pass


class MissingCardError(CompanionError):
    pass


class RateLimitedError(CompanionError):
    def __init__(self, retry_after_seconds: int, limit: int, reset_at: float):
        super().__init__("Too many requests. Please wait before trying again.")
        self.retry_after_seconds = retry_after_seconds
        self.limit = limit
        self.reset_at = reset_at
