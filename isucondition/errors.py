"""
Error taxonomy for the condition pipeline.

Expected failures (unknown Isu, malformed input) are returned to callers as
`Result.err`; integrity and storage faults are raised and abort the request.
"""


class IsuConditionError(Exception):
    """Base class for every error raised by the condition pipeline."""


class ClassificationError(IsuConditionError):
    """A condition string has an out-of-range number of active flags."""

    def __init__(self, condition: str, true_count: int) -> None:
        super().__init__(f"unexpected warn count: {true_count} in condition {condition!r}")
        self.condition = condition
        self.true_count = true_count


class StoreError(IsuConditionError):
    """Reading from or writing to the condition store failed."""

    retryable = True


class IsuNotFoundError(IsuConditionError):
    """The Isu does not exist or is not owned by the requesting user."""

    def __init__(self, jia_isu_uuid: str) -> None:
        super().__init__(f"not found: isu {jia_isu_uuid}")
        self.jia_isu_uuid = jia_isu_uuid


class InvalidConditionFormatError(IsuConditionError, ValueError):
    """A condition string does not follow the `name=true|false` encoding."""
