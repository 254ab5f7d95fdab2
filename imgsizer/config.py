"""
Config - Settings loaded from config.toml and the immutable run context
derived from them.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .exceptions import ConfigurationError
from .s3_config import S3Config
from .target_size import TargetSize


CONFIG_FILENAME = 'config.toml'
CHECKSUM_ALGORITHMS = ('adler32', 'sha256')
DEFAULT_PARALLEL_IMG_MAX = 4


@dataclass(frozen=True)
class RunContext:
    """
    Immutable settings threaded through every pipeline call.

    Attributes:
        sizes: Edge length in pixels per TargetSize
        chunk_size: Number of source images processed concurrently
        transform_size: Size feeding the shape pass, None disables it
        checksum_algorithm: 'adler32' or 'sha256'
    """
    sizes: Dict[TargetSize, int]
    chunk_size: int = DEFAULT_PARALLEL_IMG_MAX
    transform_size: Optional[TargetSize] = TargetSize.MD
    checksum_algorithm: str = 'adler32'

    @classmethod
    def defaults(cls, **kwargs) -> 'RunContext':
        sizes = {size: size.default_px for size in TargetSize}
        return cls(sizes=sizes, **kwargs)

    def px(self, size: TargetSize) -> int:
        return self.sizes[size]


@dataclass
class ResizeConfig:
    original: Optional[int] = None
    xl: Optional[int] = None
    lg: Optional[int] = None
    md: Optional[int] = None
    sm: Optional[int] = None
    xs: Optional[int] = None

    def overrides(self) -> Dict[str, int]:
        return {
            key: value for key, value in vars(self).items()
            if value is not None
        }


@dataclass
class ImportConfig:
    """Subdirectory filters for queue enumeration."""
    include: Optional[List[str]] = None
    exclude: List[str] = field(default_factory=list)


@dataclass
class ExportConfig:
    """Where derivatives go."""
    prefix: Optional[str] = None
    filesystem_path: Optional[str] = None
    filesystem: bool = False
    s3: bool = False


@dataclass
class ServerConfig:
    host: str = '127.0.0.1'
    port: int = 8080


@dataclass
class Config:
    """
    Settings from config.toml.

    Attributes:
        dir: Directory holding config.toml, also the source tree root
        parallel_img_max: Source images processed concurrently
        resize: Per-size edge overrides
        transform_variant: Shape pass size selector
        checksum: Checksum algorithm for dedup
        import_config: [import] table
        export: [export] table
        server: [server] table
        s3: [s3] table
    """
    dir: Path
    parallel_img_max: Optional[int] = None
    resize: ResizeConfig = field(default_factory=ResizeConfig)
    transform_variant: str = 'md'
    checksum: str = 'adler32'
    import_config: Optional[ImportConfig] = None
    export: Optional[ExportConfig] = None
    server: Optional[ServerConfig] = None
    s3: Optional[S3Config] = None

    @classmethod
    def load(cls, path: Union[str, Path, None] = None) -> 'Config':
        """
        Load configuration.

        Args:
            path: A config.toml file or the directory holding one
                  (default: current directory)
        """
        path = Path(path) if path else Path('.')

        if path.is_file():
            file, directory = path, path.parent
        elif path.is_dir():
            file, directory = path / CONFIG_FILENAME, path
        else:
            raise ConfigurationError(f"Unable to determine config.toml path from {path}")

        try:
            with open(file, 'rb') as f:
                data = tomllib.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {file}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Unable to parse {file} as TOML: {e}") from e

        return cls.from_dict(data, directory)

    @classmethod
    def from_dict(cls, data: dict, directory: Union[str, Path]) -> 'Config':
        """Create from a parsed TOML document."""
        try:
            resize = ResizeConfig(**data.get('resize', {}))
            import_config = ImportConfig(**data['import']) if 'import' in data else None
            export = ExportConfig(**data['export']) if 'export' in data else None
            server = ServerConfig(**data['server']) if 'server' in data else None
        except TypeError as e:
            raise ConfigurationError(f"Invalid config table: {e}") from e

        s3 = S3Config.from_dict(data['s3']) if 's3' in data else None

        return cls(
            dir=Path(directory),
            parallel_img_max=data.get('parallel_img_max'),
            resize=resize,
            transform_variant=data.get('transform_variant', 'md'),
            checksum=data.get('checksum', 'adler32'),
            import_config=import_config,
            export=export,
            server=server,
            s3=s3,
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors = []

        if self.parallel_img_max is not None:
            if not isinstance(self.parallel_img_max, int) or isinstance(self.parallel_img_max, bool):
                errors.append(f"parallel_img_max must be an integer, got {self.parallel_img_max!r}")
            elif self.parallel_img_max < 1:
                errors.append(f"parallel_img_max must be at least 1, got {self.parallel_img_max}")

        for key, value in self.resize.overrides().items():
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(f"resize.{key} must be a positive integer, got {value!r}")

        try:
            TargetSize.transform_variant(self.transform_variant)
        except ValueError as e:
            errors.append(str(e))

        if self.checksum not in CHECKSUM_ALGORITHMS:
            errors.append(f"checksum must be one of {', '.join(CHECKSUM_ALGORITHMS)}, got {self.checksum!r}")

        if self.export is not None:
            if self.export.filesystem and not (self.export.filesystem_path or self.export.prefix):
                errors.append("Filesystem export requires either 'filesystem_path' or 'prefix' to be set")
            if self.export.s3:
                if self.s3 is None:
                    errors.append("S3 export requested but [s3] config is not defined")
                else:
                    errors.extend(self.s3.validate())

        return errors

    def require_import(self) -> ImportConfig:
        return self.import_config or ImportConfig()

    def require_export(self) -> ExportConfig:
        if self.export is None:
            raise ConfigurationError("Export config not defined")
        return self.export

    def require_server(self) -> ServerConfig:
        if self.server is None:
            raise ConfigurationError("Server config not defined")
        return self.server

    def require_s3(self) -> S3Config:
        if self.s3 is None:
            raise ConfigurationError("S3 config not defined")
        return self.s3

    def export_root(self) -> Path:
        """Filesystem root derivatives are written under."""
        export = self.require_export()
        if export.filesystem_path:
            return Path(export.filesystem_path)
        return self.dir

    def context(self) -> RunContext:
        """Build the immutable context for a run."""
        overrides = self.resize.overrides()
        return RunContext(
            sizes={size: size.to_px(overrides) for size in TargetSize},
            chunk_size=self.parallel_img_max or DEFAULT_PARALLEL_IMG_MAX,
            transform_size=TargetSize.transform_variant(self.transform_variant),
            checksum_algorithm=self.checksum,
        )
