"""
imgsizer - Resizes image trees into fixed derivative sets.

Two passes over the images next to config.toml:
    1. Resize pass: og/xl/lg fitted, md/sm/xs cropped squares and their gray copies
    2. Shape pass: shape cut-outs from an already resized derivative

Derivatives go to the filesystem, an S3-compatible object store, or both.
"""

__version__ = "0.1.0"

from .config import Config, RunContext
from .derivative_writer import DerivativeWriter, Encoder
from .exceptions import (
    ConfigurationError,
    DerivativeError,
    GeometryError,
    ImgsizerError,
    JoinFailure,
    SourceUnreadable,
    TransportError,
    UnsupportedFormat,
)
from .orchestrator import Orchestrator
from .reporter import Reporter
from .run_progress import RunProgress
from .run_stats import RunStats
from .s3_client import S3Client
from .s3_config import S3Config
from .scanner import QueueItem, Scanner
from .sinks import ActiveSinks, FilesystemSink, ObjectStoreSink, Sink
from .source_loader import SourceDescriptor, load_source
from .target_size import TargetSize

__all__ = [
    "Config",
    "RunContext",
    "DerivativeWriter",
    "Encoder",
    "ImgsizerError",
    "SourceUnreadable",
    "UnsupportedFormat",
    "TransportError",
    "DerivativeError",
    "GeometryError",
    "ConfigurationError",
    "JoinFailure",
    "Orchestrator",
    "Reporter",
    "RunProgress",
    "RunStats",
    "S3Client",
    "S3Config",
    "QueueItem",
    "Scanner",
    "Sink",
    "ActiveSinks",
    "FilesystemSink",
    "ObjectStoreSink",
    "SourceDescriptor",
    "load_source",
    "TargetSize",
]
