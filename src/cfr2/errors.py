class Cfr2Error(Exception):
    """Base class for every error the CLI reports to the user."""


class ConfigError(Cfr2Error):
    """Missing or unreadable configuration."""


class ClientError(Cfr2Error):
    """The S3 client for R2 could not be constructed."""


class StoreError(Cfr2Error):
    """A call against the object store failed."""


class RenamePartialError(StoreError):
    """The copy half of a rename succeeded but deleting the old key failed.

    Both ``old_key`` and ``new_key`` exist in the bucket afterwards. Nothing is
    rolled back; the caller has to remove one of them by hand.
    """

    def __init__(self, message: str, bucket: str, old_key: str, new_key: str) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.old_key = old_key
        self.new_key = new_key


class LocalIOError(Cfr2Error):
    """Reading or writing a local file failed."""
