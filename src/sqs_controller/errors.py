"""Error taxonomy for queue reconciliation.

Every error raised by the core derives from SQSControllerError so the
driver can record a failed pass without catching unrelated exceptions.
Provider and parsing failures are always chained (raise ... from e) so
the original botocore or json error stays visible in logs.
"""

from __future__ import annotations


class SQSControllerError(Exception):
    """Base class for all queue reconciliation errors."""

    pass


class ProviderReadError(SQSControllerError):
    """Raised when listing queues or reading attributes/tags fails."""

    pass


class AmbiguousMatchError(SQSControllerError):
    """Raised when more than one queue matches the desired name.

    Never auto-resolved: picking one candidate could adopt a queue
    that belongs to someone else.
    """

    def __init__(self, name: str, urls: list[str]) -> None:
        self.name = name
        self.urls = urls
        super().__init__(f"found multiple SQS queues matching queue name {name!r}: {urls}")


class MalformedAttributeError(SQSControllerError):
    """Raised when a provider attribute or policy body cannot be interpreted."""

    pass


class ValidationError(SQSControllerError):
    """Raised when a change set is not legal for the queue.

    Attributes:
        field: Path of the offending field (e.g. "name", "url").
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class RequiredFieldError(ValidationError):
    """A field that must be set for creation is missing."""

    def __init__(self, field: str) -> None:
        super().__init__(field, "Required value")


class ImmutableFieldError(ValidationError):
    """A field that can only be set by the provider at creation was changed."""

    def __init__(self, field: str) -> None:
        super().__init__(field, "field cannot be changed after creation")


class RenderError(SQSControllerError):
    """Raised when applying a change set to a target fails."""

    pass
