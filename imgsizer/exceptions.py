"""
Exceptions raised by the resize pipeline.
"""


class ImgsizerError(Exception):
    """Base class for all pipeline errors."""


class SourceUnreadable(ImgsizerError):
    """Source file is missing, cannot be decoded or has a zero dimension."""


class UnsupportedFormat(ImgsizerError):
    """Source decoded fine but there is no output format for it."""


class TransportError(ImgsizerError):
    """A sink failed to read or write."""


class DerivativeError(ImgsizerError):
    """Resizing or encoding a single derivative failed."""


class GeometryError(ImgsizerError):
    """A shape mask could not be produced."""


class ConfigurationError(ImgsizerError):
    """Configuration is missing or invalid. Raised before any work starts."""


class JoinFailure(ImgsizerError):
    """A concurrent task could not be joined at all."""
