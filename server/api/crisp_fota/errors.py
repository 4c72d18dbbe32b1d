"""Error taxonomy for the firmware distribution service.

Every error the request path can raise derives from :class:`FotaError` and
carries the HTTP status it is reported with. ``message`` is for the logs;
clients only see ``detail``, which hides backend text on 5xx errors.
``ConfigurationError`` is only raised at startup and is fatal.
"""


class FotaError(Exception):
    status_code = 500

    def __init__(self, message: str, public_message: str | None = None):
        super().__init__(message)
        self.message = message
        self.public_message = public_message

    @property
    def detail(self) -> str:
        if self.public_message:
            return self.public_message
        if self.status_code >= 500:
            return "Internal server error"
        return self.message


class BadRequestError(FotaError):
    status_code = 400


class UnauthorizedError(FotaError):
    status_code = 401


class NotFoundError(FotaError):
    status_code = 404


class StorageError(FotaError):
    """Blob backend read/write failure."""


class BlobNotFoundError(StorageError):
    def __init__(self, key: str):
        super().__init__(f"Blob not found: {key}")
        self.key = key


class RegistryError(FotaError):
    """Firmware metadata store read/write failure."""


class ConfigurationError(Exception):
    pass
