class FileStoreError(Exception):
    status_code = 500
    message = "storage error"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class NoFileProvided(FileStoreError):
    status_code = 400
    message = "no file uploaded"


class InvalidIdentifier(FileStoreError):
    status_code = 400
    message = "invalid file id"


class NotFound(FileStoreError):
    status_code = 404
    message = "file not found"


class SizeLimitExceeded(FileStoreError):
    status_code = 413
    message = "file exceeds max upload size"


class StorageUnavailable(FileStoreError):
    status_code = 500
    message = "failed to read storage directory"
