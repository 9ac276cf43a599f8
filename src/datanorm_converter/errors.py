from __future__ import annotations


class ConversionError(Exception):
    """Base class for fatal conversion failures."""


class ConfigurationError(ConversionError, ValueError):
    """Invalid generation selector, profile document or missing required fields."""


class SourceFormatError(ConversionError, ValueError):
    """Source document or table could not be parsed.

    ``diagnostics`` keeps every underlying parser message in order.
    """

    def __init__(self, message: str, diagnostics: list[str] | None = None) -> None:
        self.diagnostics = list(diagnostics or [])
        if self.diagnostics:
            message = f"{message}: " + "; ".join(self.diagnostics)
        super().__init__(message)


class ResourceError(ConversionError, OSError):
    """An output stream could not be created or written."""
