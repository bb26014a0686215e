class LibraryError(Exception):
    """Base exception for library errors.

    ``status_code`` classifies the failure for the HTTP layer: 4xx for
    client-fixable errors, 5xx for storage faults.
    """

    status_code = 500
    message = "Internal error"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(LibraryError):
    """Missing or malformed input."""

    status_code = 400
    message = "Invalid request"


class NotFoundError(LibraryError):
    """Referenced book, member or loan does not exist."""

    status_code = 404

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"{entity.capitalize()} not found")


class UnavailableError(LibraryError):
    """No copies of the book are left to lend."""

    status_code = 409
    message = "No copies available"


class AlreadyReturnedError(LibraryError):
    """The loan has already been closed."""

    status_code = 409
    message = "Already returned"


class ConflictError(LibraryError):
    """Uniqueness or integrity violation reported by the store."""

    status_code = 409
    message = "Conflict with an existing record"


class StorageError(LibraryError):
    """Connection or transaction infrastructure failure."""

    status_code = 503
    message = "Storage unavailable"
