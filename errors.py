"""Failures raised by the listing core and turned into HTTP responses in main.py."""


class MarketError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(MarketError):
    """The id does not resolve to an entity."""

    status_code = 404


class Forbidden(MarketError):
    """The caller is not allowed to act on the entity."""

    status_code = 403


class InvalidState(MarketError):
    """The entity's current state does not allow the transition."""

    status_code = 400


class ValidationError(MarketError):
    """A required field is missing or malformed."""

    status_code = 422
