import numpy as np
import pytest

from exporters.project_io import load_ct_project
from main import build_parser, main


def _create(tiff_scan, output, mode="3D"):
    return main([
        "create", str(tiff_scan), "--mode", mode,
        "--free-ray", "1", "2", "1", "2", "--output", str(output),
    ])


def test_create(tiff_scan, tmp_path):
    assert _create(tiff_scan, tmp_path / "project") == 0

    project = load_ct_project(tmp_path / "project.mat")
    assert project.shape == (8, 4, 8)


def test_correct_cor(tiff_scan, tmp_path):
    _create(tiff_scan, tmp_path / "project", mode="2D")

    code = main(["correct-cor", str(tmp_path / "project.mat"), "-2"])

    assert code == 0
    original = load_ct_project(tmp_path / "project.mat")
    shifted = load_ct_project(tmp_path / "project_cor.mat")
    np.testing.assert_array_equal(shifted.sinogram, np.roll(original.sinogram, -2, axis=1))


def test_subsample_by_range(tiff_scan, tmp_path):
    _create(tiff_scan, tmp_path / "project")

    code = main([
        "subsample", str(tmp_path / "project.mat"),
        "--range", "0", "180", "360", "--output", str(tmp_path / "half"),
    ])

    assert code == 0
    assert load_ct_project(tmp_path / "half.mat").parameters.angles == (0.0, 180.0)


def test_subsample_by_list(tiff_scan, tmp_path):
    _create(tiff_scan, tmp_path / "project")

    assert main(["subsample", str(tmp_path / "project.mat"), "--angles", "90"]) == 0
    subsampled = load_ct_project(tmp_path / "project_subsampled.mat")
    assert subsampled.parameters.number_images == 1


def test_errors_exit_with_status_one(tmp_path):
    assert main(["create", str(tmp_path / "absent"), "--free-ray", "1", "2", "1", "2"]) == 1


def test_unknown_backend(tiff_scan, tmp_path):
    _create(tiff_scan, tmp_path / "project")
    code = main([
        "reconstruct", str(tmp_path / "project.mat"),
        "--dims", "4", "4", "4", "--backend", "nonexistent",
    ])
    assert code == 1


def test_parser_rejects_unsupported_binning():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["create", "sample", "--binning", "3"])
