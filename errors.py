"""Exception taxonomy for the refresh pipeline and its callers."""


class CareerAssistError(Exception):
    """Base class for all application errors."""


class ConfigError(CareerAssistError):
    """Settings are missing or invalid; raised at startup."""


class GenerationFailed(CareerAssistError):
    """Every model candidate failed (or one failed fatally).

    ``outcomes`` holds the per-candidate AttemptOutcome records so callers can
    decide whether another pass through the model list is worthwhile.
    """

    def __init__(self, message, outcomes=None):
        super().__init__(message)
        self.outcomes = list(outcomes or [])

    @property
    def service_unavailable(self) -> bool:
        return any(o.service_unavailable for o in self.outcomes)


class MalformedResponse(CareerAssistError):
    """Model output is not well-formed JSON or does not match the schema."""


class PersistenceError(CareerAssistError):
    """A single store operation failed (bad entry, constraint, DB error)."""


class NoUsableEntries(PersistenceError):
    """A generated batch had no entry that could be stored."""

    def __init__(self, message, skipped=0):
        super().__init__(message)
        self.skipped = skipped


class Unauthorized(CareerAssistError):
    """No signed-in caller."""


class NotFound(CareerAssistError):
    """A prerequisite record (user, industry) is missing."""
