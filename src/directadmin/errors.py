from __future__ import annotations


class DirectAdminError(RuntimeError):
    pass


class DirectAdminConnectionError(DirectAdminError):
    """Transport level failure (DNS, TCP, TLS, HTTP status)."""


class AuthenticationError(DirectAdminConnectionError):
    pass


class UnexpectedContentTypeError(DirectAdminError):
    """The server answered with HTML where structured data was expected.

    This usually means a wrong URL, a proxy in between or a login page.
    """

    def __init__(self, message: str, *, snippet: str = "") -> None:
        super().__init__(message)
        self.snippet = snippet


class ApiError(DirectAdminError):
    def __init__(self, message: str, *, details: str = "", text: str = "") -> None:
        super().__init__(message)
        self.details = details
        self.text = text


class DecodeError(DirectAdminError, ValueError):
    pass


class ContextMismatchError(DirectAdminError):
    pass


class UnknownUserTypeError(DirectAdminError):
    pass


class InsufficientPrivilegeError(DirectAdminError):
    pass
