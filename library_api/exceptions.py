"""
Domain Exceptions

Errors raised by the service layer and translated into HTTP responses by
the exception handler registered in main.create_app().

Only write paths and existence checks raise these. Read paths that talk to
the upstream catalog or the cache degrade to empty/partial results instead.
"""


class LibraryError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(LibraryError):
    status_code = 400


class ForbiddenError(LibraryError):
    status_code = 403


class NotFoundError(LibraryError):
    status_code = 404


class ConflictError(LibraryError):
    status_code = 409


class BookNotFoundError(NotFoundError):
    """The upstream catalog has no usable record for a work id."""

    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book {book_id} not found")
        self.book_id = book_id
