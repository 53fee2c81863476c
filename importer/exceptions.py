from django.core.exceptions import ObjectDoesNotExist


class ImageImportFailure(Exception):
    """
    Raised when a single image reference could not be imported.

    ``reason`` is a short machine-readable code which is used as the
    ``reason_code`` of the structured log entry written by the caller.
    Subclasses set it; the message should describe what went wrong in a way
    which helps an operator find the offending URL.
    """

    reason = "import_failed"


class FetchFailed(ImageImportFailure):
    """The remote image could not be downloaded"""

    reason = "fetch_failed"


class StoreFailed(ImageImportFailure):
    """The downloaded image could not be saved as a media asset"""

    reason = "store_failed"


class MalformedReference(ImageImportFailure):
    """The reference does not contain a usable absolute http(s) URL"""

    reason = "malformed_reference"


class AlreadyRunning(Exception):
    """
    Raised when a bulk import is requested while another one holds the lock
    """

    def __init__(self, message="An image import is already running", run=None):
        super().__init__(message)
        self.run = run


class DocumentNotFound(ObjectDoesNotExist):
    pass
