"""Failure taxonomy for bin lookups."""


class BinLookupError(Exception):
    """Base class for lookup failures that are reported to the caller."""

    error_code = "LOOKUP_ERROR"
    http_status = 500

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def to_envelope(self) -> dict:
        envelope = {"error": self.message, "error_code": self.error_code}
        if self.hint:
            envelope["hint"] = self.hint
        return envelope


class InputError(BinLookupError):
    """The request does not carry what the chosen council needs."""

    error_code = "INPUT_ERROR"
    http_status = 400


class NotFoundError(BinLookupError):
    """The council does not recognise the address or postcode."""

    error_code = "NOT_FOUND"
    http_status = 404


class UpstreamAuthError(BinLookupError):
    """The address directory rejected the supplied API key."""

    error_code = "UPSTREAM_AUTH"
    http_status = 401


class AdapterExecutionError(BinLookupError):
    """Fetching from the council source failed."""

    error_code = "ADAPTER_FAILED"
    http_status = 502

    def __init__(self, message: str, hint: str | None = None, diagnostic: str | None = None) -> None:
        super().__init__(message, hint)
        self.diagnostic = diagnostic


class ParseError(BinLookupError):
    """The source answered, but not with anything we can read."""

    error_code = "PARSE_ERROR"
    http_status = 502

    def __init__(self, message: str, hint: str | None = None, diagnostic: str | None = None) -> None:
        super().__init__(message, hint)
        self.diagnostic = diagnostic
