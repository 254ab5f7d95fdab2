"""
Pytest fixtures for imgsizer tests.
"""

import io
from pathlib import PurePosixPath

import pytest
from botocore.exceptions import ClientError
from PIL import Image

from imgsizer.sinks import Sink


class MemorySink(Sink):
    """Sink keeping derivatives and checksums in dicts."""

    name = 'memory'

    def __init__(self, files=None, checksums=None):
        self.files = files if files is not None else {}
        self.checksums = checksums if checksums is not None else {}
        self.writes = []
        self.handles = []

    def read_checksum(self, path):
        if str(path) not in self.files:
            return None
        return self.checksums.get(str(path))

    def write(self, path, data, content_type):
        self.writes.append((str(path), content_type))
        self.handles.append(self)
        self.files[str(path)] = data

    def write_checksum(self, path, checksum):
        self.checksums[str(path)] = checksum

    def read_bytes(self, path):
        return self.files.get(str(path))

    def clone(self):
        # Clones share storage so tests can inspect what every task wrote
        clone = MemorySink(self.files, self.checksums)
        clone.writes = self.writes
        clone.handles = self.handles
        return clone


@pytest.fixture
def memory_sink():
    """Fixture providing an in-memory sink."""
    return MemorySink()


@pytest.fixture
def client_error():
    """Fixture providing a botocore ClientError factory."""
    def make(code, operation='HeadObject'):
        return ClientError({'Error': {'Code': code, 'Message': code}}, operation)
    return make


@pytest.fixture
def s3_config():
    """Fixture providing S3 configuration."""
    from imgsizer.s3_config import S3Config

    return S3Config(
        endpoint='https://test-endpoint.example.com:9000',
        bucket='test-bucket',
        access_key='test-access-key',
        secret_key='test-secret-key',
        region='us-east-1',
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Fixture removing S3_* variables from the environment."""
    for name in ('S3_ENDPOINT', 'S3_BUCKET', 'S3_ACCESS_KEY', 'S3_SECRET_KEY',
                 'S3_REGION', 'S3_VERIFY_SSL'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_boto3_client(mocker):
    """Fixture providing a mocked boto3 client."""
    mock_client = mocker.MagicMock()
    mocker.patch('imgsizer.s3_client.boto3.client', return_value=mock_client)
    return mock_client


@pytest.fixture
def small_context():
    """Fixture providing a run context with small sizes."""
    from imgsizer.config import RunContext
    from imgsizer.target_size import TargetSize

    return RunContext(
        sizes={
            TargetSize.ORIGINAL: 200,
            TargetSize.XL: 150,
            TargetSize.LG: 100,
            TargetSize.MD: 50,
            TargetSize.SM: 30,
            TargetSize.XS: 20,
        },
        chunk_size=2,
    )


def _gradient(size, mode):
    width, height = size
    img = Image.new('RGBA', size)
    img.putdata([
        ((x * 255) // width, (y * 255) // height, 128, 255)
        for y in range(height) for x in range(width)
    ])
    return img.convert(mode)


@pytest.fixture
def make_image():
    """Fixture providing a gradient image factory."""
    return _gradient


@pytest.fixture
def write_image(tmp_path):
    """Fixture writing a gradient image file and returning its path."""
    def write(relative, size=(400, 300), fmt='JPEG'):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        mode = 'RGB' if fmt == 'JPEG' else 'RGBA'
        _gradient(size, mode).save(path, format=fmt)
        return path
    return write


@pytest.fixture
def sample_image_bytes():
    """Fixture providing sample JPEG image bytes."""
    buffer = io.BytesIO()
    _gradient((120, 80), 'RGB').save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes."""
    buffer = io.BytesIO()
    _gradient((80, 120), 'RGBA').save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def target_dir():
    """Fixture providing a sink-relative target directory."""
    return PurePosixPath('resized/photos')


@pytest.fixture
def image_tree(tmp_path, write_image):
    """
    Fixture providing a config dir with config.toml and a photos/ root dir.

    Exports to the filesystem under resized/ with small sizes.
    """
    (tmp_path / 'config.toml').write_text(
        'parallel_img_max = 2\n'
        'transform_variant = "md"\n'
        '\n'
        '[resize]\n'
        'original = 200\n'
        'xl = 150\n'
        'lg = 100\n'
        'md = 50\n'
        'sm = 30\n'
        'xs = 20\n'
        '\n'
        '[export]\n'
        'prefix = "resized"\n'
        'filesystem = true\n'
    )
    write_image('photos/cat.jpg')
    write_image('photos/birds/owl.png', size=(120, 160), fmt='PNG')
    return tmp_path


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')
