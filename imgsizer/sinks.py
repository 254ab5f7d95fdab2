"""
Sinks - Persistence targets for derivative bytes and checksum metadata.

Paths handed to a sink are relative (e.g. 'resized/photos/cat/md.jpeg');
each sink resolves them against its own root.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Tuple, Union

from botocore.exceptions import BotoCoreError, ClientError

from .config import Config
from .exceptions import ConfigurationError, TransportError
from .s3_client import S3Client


def checksum_file_name(path: PurePosixPath) -> str:
    """Sidecar name for a derivative: '.<id>.checksum'."""
    return f".{path.stem}.checksum"


class Sink(ABC):
    """
    A persistence target. Every sink implements the same contract:
    look up a stored checksum, write bytes, write checksum metadata.
    """

    name = 'sink'

    @abstractmethod
    def read_checksum(self, path: PurePosixPath) -> Optional[str]:
        """
        Stored checksum of a derivative.

        Returns:
            The checksum, or None when the derivative or its metadata is absent

        Raises:
            TransportError: The lookup itself failed
        """

    @abstractmethod
    def write(self, path: PurePosixPath, data: bytes, content_type: str) -> None:
        """Write derivative bytes, replacing any previous version."""

    @abstractmethod
    def write_checksum(self, path: PurePosixPath, checksum: str) -> None:
        """Write or replace the checksum metadata of a derivative."""

    @abstractmethod
    def read_bytes(self, path: PurePosixPath) -> Optional[bytes]:
        """Read derivative bytes, None when absent."""

    @abstractmethod
    def clone(self) -> 'Sink':
        """Return a handle that can be used from another task."""


class FilesystemSink(Sink):
    """Writes derivatives below a root directory with '.<id>.checksum' sidecars."""

    name = 'filesystem'

    def __init__(self, root: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.root = Path(root)
        self.logger = logger or logging.getLogger(__name__)

    def full_path(self, path: PurePosixPath) -> Path:
        return self.root.joinpath(*PurePosixPath(path).parts)

    def checksum_path(self, path: PurePosixPath) -> Path:
        return self.full_path(path).parent / checksum_file_name(PurePosixPath(path))

    def read_checksum(self, path: PurePosixPath) -> Optional[str]:
        if not self.full_path(path).is_file():
            return None

        # Can't compare without the sidecar, treat as absent
        sidecar = self.checksum_path(path)
        if not sidecar.is_file():
            return None

        try:
            return sidecar.read_text(encoding='utf-8').strip()
        except (OSError, UnicodeDecodeError) as e:
            raise TransportError(f"Failed to read checksum file {sidecar}: {e}") from e

    def write(self, path: PurePosixPath, data: bytes, content_type: str) -> None:
        target = self.full_path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise TransportError(f"Failed to write resized image {target}: {e}") from e

    def write_checksum(self, path: PurePosixPath, checksum: str) -> None:
        sidecar = self.checksum_path(path)
        try:
            sidecar.write_text(checksum, encoding='utf-8')
        except OSError as e:
            raise TransportError(f"Failed to write checksum file {sidecar}: {e}") from e

    def read_bytes(self, path: PurePosixPath) -> Optional[bytes]:
        target = self.full_path(path)
        if not target.is_file():
            return None
        try:
            return target.read_bytes()
        except OSError as e:
            raise TransportError(f"Failed to read {target}: {e}") from e

    def clone(self) -> 'FilesystemSink':
        return FilesystemSink(self.root, self.logger)

    def __repr__(self) -> str:
        return f"FilesystemSink({str(self.root)!r})"


class ObjectStoreSink(Sink):
    """Writes derivatives as S3 objects tagged with their checksum."""

    name = 'S3'

    def __init__(
        self,
        client: S3Client,
        tag_key: str = 'checksum',
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            client: S3 client owned by this sink
            tag_key: Tag holding the checksum ('checksum' or 'sha256')
            logger: Optional logger instance
        """
        self.client = client
        self.tag_key = tag_key
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def key(path: PurePosixPath) -> str:
        return str(PurePosixPath(path)).lstrip('/')

    def read_checksum(self, path: PurePosixPath) -> Optional[str]:
        key = self.key(path)
        try:
            tags = self.client.get_tags(key)
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"{key}: Get tags error: {e}") from e

        if not tags:
            self.logger.debug(f"Object {key} does not exist / doesn't have tags")
            return None

        if self.tag_key not in tags:
            self.logger.warning(f"Object {key} is missing {self.tag_key} tag")
            return None

        return tags[self.tag_key]

    def write(self, path: PurePosixPath, data: bytes, content_type: str) -> None:
        key = self.key(path)
        try:
            self.client.upload_object(key, data, content_type)
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"{key}: Failed to store S3 object: {e}") from e

    def write_checksum(self, path: PurePosixPath, checksum: str) -> None:
        key = self.key(path)
        try:
            self.client.put_tags(key, {self.tag_key: checksum})
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"{key}: S3 object tag add failed: {e}") from e

    def read_bytes(self, path: PurePosixPath) -> Optional[bytes]:
        key = self.key(path)
        try:
            return self.client.download_object(key)
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"{key}: Failed to download S3 object: {e}") from e

    def clone(self) -> 'ObjectStoreSink':
        return ObjectStoreSink(self.client.clone(), self.tag_key, self.logger)

    def __repr__(self) -> str:
        return f"ObjectStoreSink({self.client.bucket!r})"


@dataclass(frozen=True)
class ActiveSinks:
    """The sinks enabled for a run: filesystem, object store, both or none."""
    sinks: Tuple[Sink, ...] = ()

    def __iter__(self) -> Iterator[Sink]:
        return iter(self.sinks)

    def __len__(self) -> int:
        return len(self.sinks)

    @property
    def names(self) -> List[str]:
        return [sink.name for sink in self.sinks]

    def clone(self) -> 'ActiveSinks':
        """Per-task copy; every member gets its own transport handle."""
        return ActiveSinks(tuple(sink.clone() for sink in self.sinks))


def build_sinks(
    config: Config,
    create_bucket: bool = True,
    logger: Optional[logging.Logger] = None
) -> ActiveSinks:
    """
    Build the sinks enabled in the [export] table.

    The object store bucket is probed (and created when allowed) before
    it is returned.

    Raises:
        ConfigurationError: A requested sink is not configured
    """
    logger = logger or logging.getLogger(__name__)
    export = config.require_export()
    sinks: List[Sink] = []

    if export.filesystem:
        if not (export.filesystem_path or export.prefix):
            raise ConfigurationError(
                "Filesystem export requires either 'filesystem_path' or 'prefix' to be set"
            )
        sinks.append(FilesystemSink(config.export_root(), logger))

    if export.s3:
        s3_config = config.require_s3()
        errors = s3_config.validate()
        if errors:
            raise ConfigurationError("; ".join(errors))

        client = S3Client(s3_config, logger)
        client.ensure_bucket(create=create_bucket)
        tag_key = 'sha256' if config.checksum == 'sha256' else 'checksum'
        sinks.append(ObjectStoreSink(client, tag_key, logger))

    return ActiveSinks(tuple(sinks))
