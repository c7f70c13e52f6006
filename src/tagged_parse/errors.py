class TaggedParseError(Exception):
    """Base class for conversion errors."""

    pass


class UnsupportedFileError(TaggedParseError):
    """Custom exception for handling unsupported file errors."""

    pass


class MalformedDocumentError(TaggedParseError):
    """Raised when a document cannot be walked (cyclic references, no page tree)."""

    pass
