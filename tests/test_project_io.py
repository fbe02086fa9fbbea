from dataclasses import replace
import numpy as np
import pytest

from core.errors import IOFailure, ValidationError
from exporters.project_io import default_project_filename, load_ct_project, save_ct_project
from processing.sinogram_builder import SinogramBuilder
from processing.transforms import subsample_sinogram

from conftest import FREE_RAY


@pytest.fixture
def project_3d(parameters, source):
    return SinogramBuilder(free_ray=FREE_RAY, binning=2).build(parameters, "3D", source)


def test_default_filename(project_3d):
    assert default_project_filename(project_3d) == "samplect_project_3d_binning_2"


def test_default_filename_without_project_name(project_3d, tmp_path):
    unnamed = replace(project_3d, parameters=replace(project_3d.parameters, project_name=""))
    assert default_project_filename(unnamed) == "unknownct_project_3d_binning_2"


def test_save_uses_generated_name(project_3d, tmp_path):
    path = save_ct_project(project_3d, directory=tmp_path)

    assert path == tmp_path / "samplect_project_3d_binning_2.mat"
    assert path.exists()


def test_save_uses_explicit_name(project_3d, tmp_path):
    path = save_ct_project(project_3d, "my_project", directory=tmp_path)
    assert path.name == "my_project.mat"

    path = save_ct_project(project_3d, "other.mat", directory=tmp_path)
    assert path.name == "other.mat"


def test_filename_must_be_text(project_3d, tmp_path):
    with pytest.raises(ValidationError):
        save_ct_project(project_3d, 42, directory=tmp_path)


@pytest.mark.parametrize("mode", ["2D", "3D"])
def test_round_trip(parameters, source, tmp_path, mode):
    project = SinogramBuilder(free_ray=FREE_RAY).build(parameters, mode, source)

    loaded = load_ct_project(save_ct_project(project, directory=tmp_path))

    assert loaded.mode is project.mode
    assert loaded.parameters == project.parameters
    np.testing.assert_array_equal(loaded.sinogram, project.sinogram)


def test_round_trip_keeps_singleton_axes(project_3d, tmp_path):
    single = subsample_sinogram(project_3d, [180.0])

    loaded = load_ct_project(save_ct_project(single, directory=tmp_path))

    assert loaded.shape == (4, 1, 4)
    assert loaded.parameters.angles == (180.0,)
    np.testing.assert_array_equal(loaded.sinogram, single.sinogram)


def test_load_missing_file(tmp_path):
    with pytest.raises(IOFailure):
        load_ct_project(tmp_path / "absent.mat")
