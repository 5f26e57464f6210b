"""Domain exceptions mapped to HTTP responses by handlers in main."""


class ConflictError(Exception):
    """A uniqueness rule was violated (duplicate email, duplicate link, ...)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StorageError(Exception):
    """Object storage (local disk or S3) failed."""

    def __init__(self, message: str = "ファイルの保存に失敗しました"):
        super().__init__(message)
        self.message = message
