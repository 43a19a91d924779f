from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid weights, threshold or runtime settings. Never retried."""


class EmptyInputError(ValueError):
    """A segment sequence that must not be empty was empty."""


class CollaboratorError(RuntimeError):
    """ASR, storage, ledger or metadata failure; safe to retry the whole call."""

    retryable = True


class ValidationTimeoutError(CollaboratorError):
    pass
