"""
Scanner - Enumerates source images next to config.toml into the resize queue.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional

from .config import Config
from .exceptions import ConfigurationError


IMAGE_EXTENSIONS = {
    '.jpg', '.jpeg', '.png', '.gif', '.tif', '.tiff', '.bmp', '.webp',
    '.jp2', '.ppm', '.tga', '.pcx',
}


@dataclass(frozen=True)
class QueueItem:
    """
    One source image to process.

    Attributes:
        source: Source file path
        target_dir: Sink-relative directory mirroring the source's location
    """
    source: Path
    target_dir: PurePosixPath


class Scanner:
    """
    Walks the subdirectories of the config directory and builds the queue.

    Every subdirectory is a root dir, optionally limited by [import] include
    and exclude. The export prefix directory is never read back.
    """

    def __init__(self, config: Config, logger: Optional[logging.Logger] = None):
        """
        Initialize scanner.

        Args:
            config: Loaded configuration
            logger: Optional logger instance
        """
        self.config = config
        self.import_config = config.require_import()
        self.export = config.require_export()
        self.logger = logger or logging.getLogger(__name__)

    def root_dirs(self) -> List[Path]:
        """Subdirectories of the config dir to import from."""
        include = self.import_config.include
        exclude = set(self.import_config.exclude or [])

        if include is None:
            self.logger.debug("No limited set of subdirs specified, using config.toml root dir as source")

        export_dir = None
        if self.export.filesystem and self.export.filesystem_path:
            export_dir = Path(self.export.filesystem_path).resolve()

        roots = []
        for path in sorted(self.config.dir.iterdir()):
            if not path.is_dir() or path.name.startswith('.'):
                continue

            if self.export.prefix and path.name == self.export.prefix:
                self.logger.debug(f"Skipping filesystem path as it is the export prefix: {path}")
                continue

            if export_dir is not None and path.resolve() == export_dir:
                self.logger.debug(f"Skipping filesystem path as it is the export dir: {path}")
                continue

            if path.name in exclude:
                self.logger.debug(f"Skipping excluded dir: {path}")
                continue

            if include is not None and path.name not in include:
                self.logger.warning(f"Skipping dir import as it's not in limited set: {path}")
                continue

            roots.append(path)

        if not roots:
            raise ConfigurationError(f"No iterable directories found next to config.toml in {self.config.dir}")

        self.logger.debug(f"Iterating image ({len(roots)}) rootdir(s), preparing resizer queue...")
        return roots

    def target_dir(self, root: Path, file: Path) -> PurePosixPath:
        """<prefix>/<root dir name>/<subpath of the file's directory>"""
        parts = [self.export.prefix] if self.export.prefix else []
        parts.append(root.name)
        parts.extend(file.parent.relative_to(root).parts)
        return PurePosixPath(*parts)

    def scan(self) -> List[QueueItem]:
        """
        Build the resize queue.

        Returns:
            Queue items in a stable, sorted order

        Raises:
            ConfigurationError: No root dir to import from
        """
        queue = []

        for root in self.root_dirs():
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames[:] = sorted(d for d in dirnames if not d.startswith('.'))

                for filename in sorted(filenames):
                    if filename.startswith('.'):
                        continue

                    file = Path(dirpath) / filename
                    if file.suffix.lower() not in IMAGE_EXTENSIONS:
                        self.logger.debug(f"Skipping non-image file {file}")
                        continue

                    self.logger.debug(f"Sending file {file} to resizer queue")
                    queue.append(QueueItem(file, self.target_dir(root, file)))

        self.logger.info(f"Found {len(queue)} source images")
        return queue
