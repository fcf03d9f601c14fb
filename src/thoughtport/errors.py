"""
Exceptions raised by codecs and workflows.

Registry lookups never raise; absence is returned as None. Everything that
aborts a whole export or import operation is one of these.
"""


class ThoughtportError(Exception):
    """Base exception for import/export failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EncodingError(ThoughtportError):
    """
    Raised when an export codec cannot produce its output.

    Attributes:
        format_name: Display name of the codec (e.g. "CSV")
        original_error: The underlying exception, if any
    """

    def __init__(self, format_name: str, original_error: Exception | None = None, message: str | None = None):
        self.format_name = format_name
        self.original_error = original_error

        if message is None:
            cause = str(original_error) if original_error else "Unknown error"
            message = f"{format_name} export failed: {cause}"

        super().__init__(message)


class DecodingError(ThoughtportError):
    """
    Raised when an import codec cannot read a file.

    Attributes:
        format_name: Display name of the codec
        original_error: The underlying exception, if any
    """

    def __init__(self, format_name: str, original_error: Exception | None = None, message: str | None = None):
        self.format_name = format_name
        self.original_error = original_error

        if message is None:
            cause = str(original_error) if original_error else "Unknown error"
            message = f"{format_name} parsing failed: {cause}"

        super().__init__(message)


class InvalidDocumentError(DecodingError):
    """Raised when a structured document is not syntactically valid."""

    def __init__(self, format_name: str, original_error: Exception | None = None):
        detail = f": {original_error}" if original_error else ""
        super().__init__(
            format_name,
            original_error,
            message=f"Invalid {format_name} file format{detail}",
        )


class UnsupportedFormatError(ThoughtportError):
    """
    Raised when no registered codec can handle a format or file.

    Attributes:
        format_name: The requested format, or the file name when detection failed
        available_formats: Formats that ARE registered for the direction asked
    """

    def __init__(self, format_name: str | None, available_formats: list[str] | None = None, message: str | None = None):
        self.format_name = format_name
        self.available_formats = available_formats or []

        if message is None:
            formats_str = ", ".join(self.available_formats) if self.available_formats else "none registered"
            if format_name:
                message = f"Unsupported format '{format_name}'. Available formats: {formats_str}"
            else:
                message = f"Could not detect file format. Available formats: {formats_str}"

        super().__init__(message)
