from __future__ import annotations


class PlannerError(Exception):
    """Base class for every error raised by the planner core."""


class ValidationError(PlannerError):
    """A required field is missing or empty on create."""


class NotFoundError(PlannerError):
    """The operation targets an id that is not in the store."""


class StoreUnavailableError(PlannerError):
    """The persistent store is not configured or the user is not signed in yet."""


class BatchCommitError(PlannerError):
    """An atomic batch write failed; nothing from the batch was persisted."""


class ExternalProviderError(PlannerError):
    """AI plan generation failed: credential, quota or malformed response."""
