from abc import ABC


class BaseCustomException(Exception, ABC):
    """
    Base class for all custom exceptions.

    Every exception carries a machine-readable ``kind`` and a
    human-readable ``message``; the exception handler serializes both.
    """

    def __init__(self, message: str | None = None):
        self.message = message or self.get_default_message()
        super().__init__(self.message)

    def get_default_message(self) -> str:
        """
        Return default error message.

        Returns
        -------
        str
            Default error message
        """
        return "Unknown error"

    def get_kind(self) -> str:
        """
        Return machine-readable error kind.

        Returns
        -------
        str
            Error kind
        """
        return "error.unknown"

    def get_status_code(self) -> int:
        """
        Return HTTP status code for exception.

        Returns
        -------
        int
            HTTP status code
        """
        return 500


class BadRequestException(BaseCustomException):
    """Bad request exception (400)."""

    def get_kind(self) -> str:
        return "error.bad_request"

    def get_status_code(self) -> int:
        return 400


class NetworkNotSupportedException(BadRequestException):
    """Network not supported exception."""

    def get_default_message(self) -> str:
        return "Network is not supported"

    def get_kind(self) -> str:
        return "error.network.not_supported"


class InvalidAddressException(BadRequestException):
    """Invalid address exception."""

    def get_default_message(self) -> str:
        return "Address is not a valid base58 account address"

    def get_kind(self) -> str:
        return "error.address.invalid"


class UpstreamException(BaseCustomException):
    """Base class for failures of an upstream RPC or GraphQL call."""

    def get_default_message(self) -> str:
        return "Upstream request failed"

    def get_kind(self) -> str:
        return "error.upstream.failed"

    def get_status_code(self) -> int:
        return 502


class UpstreamTimeoutException(UpstreamException):
    """Upstream call exceeded its timeout."""

    def get_default_message(self) -> str:
        return "Upstream request timed out"

    def get_kind(self) -> str:
        return "error.upstream.timeout"

    def get_status_code(self) -> int:
        return 504


class UpstreamProtocolException(UpstreamException):
    """Upstream answered with a malformed or error response."""

    def get_default_message(self) -> str:
        return "Upstream returned a malformed response"

    def get_kind(self) -> str:
        return "error.upstream.protocol"


class UpstreamConnectionException(UpstreamException):
    """Upstream could not be reached."""

    def get_default_message(self) -> str:
        return "Upstream is unreachable"

    def get_kind(self) -> str:
        return "error.upstream.unavailable"


class UpstreamAddressException(UpstreamException):
    """Upstream rejected the address format."""

    def get_default_message(self) -> str:
        return "Upstream rejected the address"

    def get_kind(self) -> str:
        return "error.upstream.invalid_address"

    def get_status_code(self) -> int:
        return 400


class StorageException(BaseCustomException):
    """Persistent store is unavailable or failed."""

    def get_default_message(self) -> str:
        return "Transaction storage is unavailable"

    def get_kind(self) -> str:
        return "error.storage.unavailable"

    def get_status_code(self) -> int:
        return 503
