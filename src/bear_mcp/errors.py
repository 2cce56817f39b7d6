"""Exceptions raised while talking to Bear."""


class BearError(Exception):
    """Base class for failures dispatching to or hearing back from Bear."""


class DispatchError(BearError):
    """The `open` invocation failed or wrote diagnostics to stderr."""


class CallbackError(BearError):
    """No usable callback came back from Bear."""


class CallbackTimeoutError(CallbackError):
    def __init__(self, timeout: float):
        super().__init__(f"Callback timeout after {timeout:g}s")
        self.timeout = timeout


class CallbackDecodeError(CallbackError):
    pass


class BearCallbackError(CallbackError):
    """Bear answered through x-error."""

    def __init__(self, error_code: str, error_message: str):
        super().__init__(error_message or f"Bear reported error code {error_code}")
        self.error_code = error_code
        self.error_message = error_message
