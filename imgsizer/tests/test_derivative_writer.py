"""Tests for DerivativeWriter class."""

import io
from pathlib import Path, PurePosixPath
from unittest.mock import MagicMock

import pytest
from PIL import Image

from imgsizer.derivative_spec import DerivativeSpec, ResizeMode, build_specs
from imgsizer.derivative_writer import DerivativeWriter, Encoder
from imgsizer.exceptions import DerivativeError, TransportError
from imgsizer.scale import LockedWidth
from imgsizer.sinks import ActiveSinks, FilesystemSink
from imgsizer.source_loader import OutputFormat, PixelLayout, SourceDescriptor


@pytest.fixture
def descriptor():
    """Fixture providing a 400x300 lossless descriptor."""
    return SourceDescriptor(
        width=400,
        height=300,
        scale=LockedWidth(400),
        source_path=Path('photos/cat.png'),
        target_path=PurePosixPath('resized/photos/cat'),
        target_name='cat',
        target_format=OutputFormat.LOSSLESS,
        pixel_layout=PixelLayout.RGBA,
        checksum='12345',
    )


@pytest.fixture
def image(make_image):
    """Fixture providing the 400x300 source pixels."""
    return make_image((400, 300), 'RGBA')


@pytest.fixture
def writer():
    """Fixture providing a writer."""
    return DerivativeWriter()


class TestEncoder:
    """Tests for Encoder enum."""

    def test_for_descriptor(self, descriptor):
        """Test encoder selection follows format and layout."""
        assert Encoder.for_descriptor(descriptor) is Encoder.LOSSLESS
        assert Encoder.for_descriptor(descriptor.grayscale()) is Encoder.LOSSLESS_GRAY

    def test_for_lossy_descriptor(self, descriptor):
        """Test a lossy source and its gray branch."""
        from dataclasses import replace
        lossy = replace(descriptor, target_format=OutputFormat.LOSSY, pixel_layout=PixelLayout.RGB)

        assert Encoder.for_descriptor(lossy) is Encoder.LOSSY
        assert lossy.grayscale().pixel_layout is PixelLayout.L
        assert Encoder.for_descriptor(lossy.grayscale()) is Encoder.LOSSY_GRAY

    def test_content_types(self):
        """Test content types."""
        assert Encoder.LOSSLESS.content_type == 'image/png'
        assert Encoder.LOSSLESS_GRAY.content_type == 'image/png'
        assert Encoder.LOSSY.content_type == 'image/jpeg'
        assert Encoder.LOSSY_GRAY.content_type == 'image/jpeg'


class TestDerivativeWriter:
    """Tests for DerivativeWriter class."""

    def test_init(self):
        """Test default quality."""
        assert DerivativeWriter().quality == 85
        assert DerivativeWriter(quality=70).quality == 70

    def test_dimensions(self, writer, descriptor):
        """Test fit keeps the aspect ratio and crop is square."""
        spec = DerivativeSpec(200, 'lg', PurePosixPath('x/lg.png'))

        assert writer.dimensions(descriptor, spec, ResizeMode.FIT) == (200, 150)
        assert writer.dimensions(descriptor, spec, ResizeMode.CROP) == (200, 200)

    def test_resize_fit(self, writer, image):
        """Test a fitted resize."""
        resized = writer.resize(image, 200, 150, ResizeMode.FIT, PixelLayout.RGBA)
        assert resized.size == (200, 150)
        assert resized.mode == 'RGBA'

    def test_resize_crop(self, writer, image):
        """Test a cropped resize."""
        resized = writer.resize(image, 50, 50, ResizeMode.CROP, PixelLayout.RGBA)
        assert resized.size == (50, 50)

    def test_resize_converts_layout(self, writer, image):
        """Test the result is converted to the requested layout."""
        resized = writer.resize(image, 50, 50, ResizeMode.CROP, PixelLayout.LA)
        assert resized.mode == 'LA'

    def test_resize_zero(self, writer, image):
        """Test a zero-area destination."""
        with pytest.raises(DerivativeError):
            writer.resize(image, 0, 50, ResizeMode.FIT, PixelLayout.RGBA)

    @pytest.mark.parametrize('encoder,fmt,mode', [
        (Encoder.LOSSLESS, 'PNG', 'RGBA'),
        (Encoder.LOSSLESS_GRAY, 'PNG', 'LA'),
        (Encoder.LOSSY, 'JPEG', 'RGB'),
        (Encoder.LOSSY_GRAY, 'JPEG', 'L'),
    ])
    def test_encode(self, writer, image, encoder, fmt, mode):
        """Test every encoder produces its format and mode."""
        data = writer.encode(image, encoder)

        decoded = Image.open(io.BytesIO(data))
        assert decoded.format == fmt
        assert decoded.mode == mode

    def test_write(self, writer, image, descriptor, tmp_path):
        """Test a derivative and its sidecar are written."""
        sinks = ActiveSinks((FilesystemSink(tmp_path),))
        spec = DerivativeSpec(50, 'md', PurePosixPath('resized/photos/cat/md.png'))

        message = writer.write(image, spec, ResizeMode.CROP, descriptor, Encoder.LOSSLESS, sinks)

        assert 'saved successfully to filesystem' in message
        written = Image.open(tmp_path / 'resized/photos/cat/md.png')
        assert written.size == (50, 50)
        assert (tmp_path / 'resized/photos/cat/.md.checksum').read_text() == '12345'

    def test_write_failing_sink(self, writer, image, descriptor, memory_sink):
        """Test a failing sink raises after the others were written."""
        broken = MagicMock()
        broken.name = 'S3'
        broken.write.side_effect = TransportError('upload failed')
        sinks = ActiveSinks((memory_sink, broken))
        spec = DerivativeSpec(50, 'md', PurePosixPath('resized/photos/cat/md.png'))

        with pytest.raises(TransportError, match='upload failed'):
            writer.write(image, spec, ResizeMode.CROP, descriptor, Encoder.LOSSLESS, sinks)

        assert 'resized/photos/cat/md.png' in memory_sink.files
        assert memory_sink.checksums['resized/photos/cat/md.png'] == '12345'

    def test_resize_group(self, writer, image, descriptor, memory_sink):
        """Test a group is written, then skipped on the second call."""
        sinks = ActiveSinks((memory_sink,))
        items = [(50, 'md'), (30, 'sm'), (20, 'xs')]

        first = writer.resize_group(image, descriptor, items, ResizeMode.CROP, sinks)
        second = writer.resize_group(image, descriptor, items, ResizeMode.CROP, sinks)

        assert len(first.succeeded) == 3
        assert first.skipped == []
        assert second.succeeded == []
        assert len(second.skipped) == 3
        assert all('already up to date' in s for s in second.skipped)

    def test_resize_group_clones_sinks_per_write(self, writer, image, descriptor, memory_sink):
        """Test every concurrent write goes through its own sink handle."""
        sinks = ActiveSinks((memory_sink,))
        items = [(200, 'og'), (150, 'xl'), (100, 'lg')]

        stats = writer.resize_group(image, descriptor, items, ResizeMode.FIT, sinks)

        assert len(stats.succeeded) == 3
        assert len(memory_sink.handles) == 3
        assert len({id(handle) for handle in memory_sink.handles}) == 3
        assert memory_sink not in memory_sink.handles

    def test_resize_group_rewrites_changed(self, writer, image, descriptor, memory_sink):
        """Test a changed checksum triggers an overwrite."""
        from dataclasses import replace
        sinks = ActiveSinks((memory_sink,))
        items = [(50, 'md')]

        writer.resize_group(image, descriptor, items, ResizeMode.CROP, sinks)
        stats = writer.resize_group(image, replace(descriptor, checksum='67890'), items, ResizeMode.CROP, sinks)

        assert len(stats.succeeded) == 1
        assert memory_sink.checksums['resized/photos/cat/md.png'] == '67890'

    def test_resize_group_failure(self, writer, image, descriptor, memory_sink, mocker):
        """Test a failing derivative is recorded and the rest still written."""
        original = writer.encode

        def encode(img, encoder):
            if img.size == (30, 30):
                raise DerivativeError('encoder exploded')
            return original(img, encoder)

        mocker.patch.object(writer, 'encode', side_effect=encode)
        sinks = ActiveSinks((memory_sink,))

        stats = writer.resize_group(image, descriptor, [(50, 'md'), (30, 'sm')], ResizeMode.CROP, sinks)

        assert len(stats.succeeded) == 1
        assert len(stats.failed) == 1
        assert 'encoder exploded' in stats.failed[0]
        assert 'sm.png' in stats.failed[0]


class TestBuildSpecs:
    """Tests for build_specs."""

    def test_paths(self, descriptor):
        """Test output paths follow the descriptor."""
        specs = build_specs(descriptor, [(50, 'md'), (30, 'sm')])

        assert specs[0] == DerivativeSpec(50, 'md', PurePosixPath('resized/photos/cat/md.png'))
        assert specs[1].output_path == PurePosixPath('resized/photos/cat/sm.png')
