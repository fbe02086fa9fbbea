import numpy as np
import pytest
from skimage import io as skio

from config import FileLayoutConfig
from core.base import ArrayProjectionSource
from core.errors import IOFailure
from loaders.projection_loader import TiffProjectionSource


def test_file_naming(tmp_path):
    source = TiffProjectionSource(tmp_path / "sample", 12)

    assert len(source) == 12
    assert source.path_for(1) == tmp_path / "sample0001.tif"
    assert source.path_for(12) == tmp_path / "sample0012.tif"


def test_custom_layout(tmp_path):
    layout = FileLayoutConfig(image_extension=".tiff", index_width=3)
    source = TiffProjectionSource(tmp_path / "scan_", 2, layout)

    assert source.path_for(2) == tmp_path / "scan_002.tiff"


def test_read_tiff_as_float(tmp_path):
    image = np.arange(24, dtype=np.uint16).reshape(4, 6) + 100
    skio.imsave(str(tmp_path / "sample0001.tif"), image, check_contrast=False,
                photometric="minisblack")

    read = TiffProjectionSource(tmp_path / "sample", 1).read(1)

    assert read.dtype == np.float64
    np.testing.assert_array_equal(read, image)


def test_missing_file(tmp_path):
    source = TiffProjectionSource(tmp_path / "sample", 3)
    with pytest.raises(IOFailure):
        source.read(2)


@pytest.mark.parametrize("index", [0, 4])
def test_index_out_of_range(tmp_path, index):
    with pytest.raises(IOFailure):
        TiffProjectionSource(tmp_path / "sample", 3).read(index)


def test_array_source_rejects_non_2d():
    source = ArrayProjectionSource([np.ones((2, 2)), np.ones((2, 2, 3))])

    assert source.read(1).shape == (2, 2)
    with pytest.raises(IOFailure):
        source.read(2)
