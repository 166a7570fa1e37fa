"""Errors raised by the interactive login flow"""


class LoginError(Exception):
    """A login attempt that settled with a failure

    Attributes:
        kind: authorization_denied, no_code, window_closed, timeout,
              exchange_failed or unexpected
        message: User-facing description
    """

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message
