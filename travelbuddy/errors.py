import enum


class ResultStatus(str, enum.Enum):
    SUCCESS = "Success"
    USER_NOT_FOUND = "UserNotFound"
    RESOURCE_NOT_FOUND = "ResourceNotFound"
    UNAUTHORIZED = "Unauthorized"
    VALIDATION_ERROR = "ValidationError"
    INVALID_OPERATION = "InvalidOperation"
    BLOCKED = "Blocked"
    ERROR = "Error"


# HTTP code and error-body code for each failure status.
HTTP_STATUS = {
    ResultStatus.USER_NOT_FOUND: (404, "USER_NOT_FOUND"),
    ResultStatus.RESOURCE_NOT_FOUND: (404, "RESOURCE_NOT_FOUND"),
    ResultStatus.UNAUTHORIZED: (403, "UNAUTHORIZED"),
    ResultStatus.VALIDATION_ERROR: (400, "VALIDATION_ERROR"),
    ResultStatus.INVALID_OPERATION: (400, "INVALID_OPERATION"),
    ResultStatus.BLOCKED: (400, "BLOCKED"),
    ResultStatus.ERROR: (500, "ERROR"),
}


class ServiceError(Exception):
    """A domain operation that could not be carried out.

    Raised by the service layer instead of returning a status object; the API
    layer turns it into an error response using ``HTTP_STATUS``.
    """

    def __init__(self, status: ResultStatus, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    @property
    def http_status(self) -> int:
        return HTTP_STATUS.get(self.status, (500, "ERROR"))[0]

    @property
    def code(self) -> str:
        return HTTP_STATUS.get(self.status, (500, "ERROR"))[1]

    def __repr__(self) -> str:
        return f"ServiceError({self.status.value}, {self.message!r})"


def user_not_found(message: str = "User not found") -> ServiceError:
    return ServiceError(ResultStatus.USER_NOT_FOUND, message)


def not_found(message: str) -> ServiceError:
    return ServiceError(ResultStatus.RESOURCE_NOT_FOUND, message)


def unauthorized(message: str) -> ServiceError:
    return ServiceError(ResultStatus.UNAUTHORIZED, message)


def invalid(message: str) -> ServiceError:
    return ServiceError(ResultStatus.VALIDATION_ERROR, message)


def invalid_operation(message: str) -> ServiceError:
    return ServiceError(ResultStatus.INVALID_OPERATION, message)
