# utils/document_tracker/errors.py
"""Exceptions raised by the document tracker gateway, auth and webhook layers."""

from typing import Dict, Optional


class DocumentTrackerError(Exception):
    """Base class for document tracker errors."""


class SettingsMissingError(DocumentTrackerError):
    """The singleton settings row does not exist or cannot be read."""


class WriteError(DocumentTrackerError):
    """A create/update/delete against the backend failed."""

    def __init__(self, action: str, detail: str = ""):
        self.action = action
        self.detail = detail
        message = f"Failed to {action}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ValidationError(DocumentTrackerError):
    """Form input rejected before any network call."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))

    def for_field(self, name: str) -> Optional[str]:
        return self.errors.get(name)


class AuthorizationError(DocumentTrackerError):
    """The current user may not perform this action."""


class AuthError(DocumentTrackerError):
    """The hosted auth service rejected a request."""


class WebhookError(DocumentTrackerError):
    """Base class for automation trigger failures."""


class WebhookNotConfiguredError(WebhookError):
    """No endpoint URL or no shared secret is configured."""


class WebhookURLNotAllowedError(WebhookError):
    """The endpoint URL failed transport / address checks."""


class WebhookResponseError(WebhookError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "", body: str = ""):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"Webhook returned {status_code}: {reason}".rstrip(": "))
