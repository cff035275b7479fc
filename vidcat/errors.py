from __future__ import annotations


class VidcatError(Exception):
    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ResourceNotFound(VidcatError):
    status_code = 404


class InvalidRangeSyntax(VidcatError):
    status_code = 400


class RangeNotSatisfiable(VidcatError):
    status_code = 416

    def __init__(self, detail: str, total: int) -> None:
        super().__init__(detail)
        self.total = total


class IncompleteRead(VidcatError):
    status_code = 500


class UnsupportedMediaType(VidcatError):
    status_code = 400


class StorageFailure(VidcatError):
    status_code = 500
