from dataclasses import replace
import numpy as np
import pytest

from core.base import ArrayProjectionSource
from core.errors import (
    ConsistencyError,
    InconsistentImageShape,
    InvalidBinningFactor,
    InvalidParameter,
    InvalidShift,
    NonDivisibleDimensions,
    NonFiniteAttenuation,
    NonPositiveBackground,
    UnsupportedDetector,
)
from core.parameters import DetectorType, ReconstructionMode
from core.project import EnergyBin
from processing.binning import bin_pixels
from processing.detectors import (
    EnergyIntegratingAssembly,
    PhotonCountingAssembly,
    get_assembly_strategy,
)
from processing.sinogram_builder import SinogramBuilder

from conftest import BACKGROUND, FREE_RAY


class CountingSource(ArrayProjectionSource):
    """Records how often each projection is read."""

    def __init__(self, images):
        super().__init__(images)
        self.reads = []

    def read(self, index):
        self.reads.append(index)
        return super().read(index)


def _attenuation(image, binning=1, shift=0):
    image = np.roll(image, shift, axis=1)
    background = BACKGROUND * binning * binning
    return -np.log(bin_pixels(image, binning) / background)


def test_3d_sinogram_layout(parameters, source, projections):
    project = SinogramBuilder(free_ray=FREE_RAY).build(parameters, "3D", source)

    assert project.type == "3D"
    assert project.shape == (8, 4, 8)
    for i, image in enumerate(projections):
        np.testing.assert_allclose(project.sinogram[:, i, :], _attenuation(image).T)


def test_3d_derived_parameters(parameters, source):
    project = SinogramBuilder(free_ray=FREE_RAY, binning=2).build(
        parameters, ReconstructionMode.THREE_D, source
    )

    derived = project.parameters
    assert derived.detector_rows == 8
    assert derived.detector_cols == 8
    assert derived.projection_rows == 4
    assert derived.projection_cols == 4
    assert derived.binning_post == 2
    assert derived.free_ray == FREE_RAY
    assert project.shape == (4, 4, 4)


def test_2d_sinogram_uses_center_row(parameters, source, projections):
    project = SinogramBuilder(free_ray=FREE_RAY).build(parameters, "2d", source)

    assert project.shape == (4, 8)
    assert project.parameters.num_detectors_post == 8
    for i, image in enumerate(projections):
        np.testing.assert_allclose(project.sinogram[i], _attenuation(image)[3])


def test_2d_center_row_after_binning(parameters, source, projections):
    project = SinogramBuilder(free_ray=FREE_RAY, binning=2).build(parameters, "2D", source)

    assert project.shape == (4, 4)
    for i, image in enumerate(projections):
        np.testing.assert_allclose(project.sinogram[i], _attenuation(image, 2)[1])


def test_2d_center_row_is_row_above_middle(parameters, projections):
    # Row 3 of 8 (0-based) is the 1-based row 8 / 2
    for image in projections:
        image[3, 6] = 100.0
    source = ArrayProjectionSource(projections)

    project = SinogramBuilder(free_ray=FREE_RAY).build(parameters, "2D", source)

    np.testing.assert_allclose(project.sinogram[:, 6], np.log(BACKGROUND / 100.0))


def test_2d_ignores_dead_pixel_outside_center_row(parameters, projections):
    projections[0][7, 7] = 0.0
    source = ArrayProjectionSource(projections)

    project = SinogramBuilder(free_ray=FREE_RAY).build(parameters, "2D", source)

    assert np.all(np.isfinite(project.sinogram))
    np.testing.assert_allclose(project.sinogram[0], _attenuation(projections[0][3:4])[0])


def test_2d_dead_pixel_in_center_row(parameters, projections):
    projections[2][3, 5] = 0.0
    source = ArrayProjectionSource(projections)

    with pytest.raises(NonFiniteAttenuation):
        SinogramBuilder(free_ray=FREE_RAY).build(parameters, "2D", source)


def test_3d_rejects_dead_pixel_anywhere(parameters, projections):
    projections[0][7, 7] = 0.0
    source = ArrayProjectionSource(projections)

    with pytest.raises(NonFiniteAttenuation):
        SinogramBuilder(free_ray=FREE_RAY).build(parameters, "3D", source)


@pytest.mark.parametrize("mode", ["2D", "3D"])
@pytest.mark.parametrize("max_workers", [1, 3])
def test_each_projection_read_once(parameters, projections, mode, max_workers):
    source = CountingSource(projections)

    SinogramBuilder(free_ray=FREE_RAY, max_workers=max_workers).build(
        parameters, mode, source
    )

    assert sorted(source.reads) == [1, 2, 3, 4]


def test_process_projection_keeps_requested_rows(projections):
    builder = SinogramBuilder(free_ray=FREE_RAY, binning=2)

    kept = builder.process_projection(projections[1], slice(1, 2))

    np.testing.assert_allclose(kept, _attenuation(projections[1], 2)[1:2])


def test_cor_shift_happens_before_binning(parameters, source, projections):
    project = SinogramBuilder(free_ray=FREE_RAY, cor_fix=1, binning=2).build(
        parameters, "3D", source
    )

    for i, image in enumerate(projections):
        np.testing.assert_allclose(
            project.sinogram[:, i, :], _attenuation(image, 2, shift=1).T
        )


def test_uniform_projections_give_zero_sinogram(parameters):
    source = ArrayProjectionSource([np.full((8, 8), 700.0)] * 4)
    project = SinogramBuilder(free_ray=FREE_RAY).build(parameters, "3D", source)

    np.testing.assert_allclose(project.sinogram, 0.0)


def test_threaded_matches_sequential(parameters, source):
    sequential = SinogramBuilder(free_ray=FREE_RAY).build(parameters, "3D", source)
    threaded = SinogramBuilder(free_ray=FREE_RAY, max_workers=3).build(
        parameters, "3D", source
    )

    np.testing.assert_array_equal(threaded.sinogram, sequential.sinogram)


def test_progress_reaches_one(parameters, source):
    progress = []
    SinogramBuilder(free_ray=FREE_RAY).build(parameters, "2D", source, progress.append)

    assert progress == [0.25, 0.5, 0.75, 1.0]


def test_inconsistent_image_shape(parameters, projections):
    projections[2] = np.full((8, 6), BACKGROUND)
    source = ArrayProjectionSource(projections)

    with pytest.raises(InconsistentImageShape) as excinfo:
        SinogramBuilder(free_ray=FREE_RAY).build(parameters, "3D", source)
    assert excinfo.value.value == (8, 6)


def test_inconsistent_image_shape_threaded(parameters, projections):
    projections[3] = np.full((4, 8), BACKGROUND)
    source = ArrayProjectionSource(projections)

    with pytest.raises(InconsistentImageShape):
        SinogramBuilder(free_ray=FREE_RAY, max_workers=2).build(parameters, "3D", source)


def test_zero_background(parameters, projections):
    projections[1][:2, :2] = 0.0
    source = ArrayProjectionSource(projections)

    with pytest.raises(NonPositiveBackground):
        SinogramBuilder(free_ray=FREE_RAY).build(parameters, "2D", source)


def test_image_count_must_match(parameters, projections):
    source = ArrayProjectionSource(projections[:3])

    with pytest.raises(ConsistencyError):
        SinogramBuilder(free_ray=FREE_RAY).build(parameters, "3D", source)


def test_photon_counting_is_unsupported(parameters, source):
    pcd = replace(parameters, detector_type=DetectorType.PCD)

    with pytest.raises(UnsupportedDetector):
        SinogramBuilder(free_ray=FREE_RAY).build(pcd, "3D", source)


def test_free_ray_outside_detector(parameters, source):
    with pytest.raises(InvalidParameter):
        SinogramBuilder(free_ray=(1, 2, 7, 10)).build(parameters, "3D", source)


def test_detector_not_divisible_by_binning(parameters, source):
    with pytest.raises(NonDivisibleDimensions):
        SinogramBuilder(free_ray=(1, 16, 1, 16), binning=16).build(parameters, "3D", source)


def test_unknown_mode(parameters, source):
    with pytest.raises(ValueError):
        SinogramBuilder(free_ray=FREE_RAY).build(parameters, "4D", source)


@pytest.mark.parametrize("options,error", [
    ({"free_ray": (2, 1, 1, 2)}, InvalidParameter),
    ({"free_ray": (1, 2, 1)}, InvalidParameter),
    ({"free_ray": (0, 2, 1, 2)}, InvalidParameter),
    ({"free_ray": (1, 3, 1, 2), "binning": 2}, NonDivisibleDimensions),
    ({"binning": 3}, InvalidBinningFactor),
    ({"cor_fix": 1.5}, InvalidShift),
    ({"max_workers": 0}, InvalidParameter),
])
def test_options_validated_on_construction(options, error):
    options.setdefault("free_ray", FREE_RAY)
    with pytest.raises(error):
        SinogramBuilder(**options)


def test_strategy_lookup():
    assert isinstance(get_assembly_strategy(DetectorType.EID), EnergyIntegratingAssembly)
    assert isinstance(get_assembly_strategy("pcd"), PhotonCountingAssembly)


def test_energy_integrating_returns_total_bin(parameters, source):
    builder = SinogramBuilder(free_ray=FREE_RAY)
    derived = parameters.with_detector(8, 8, FREE_RAY, 1, ReconstructionMode.TWO_D)

    buffers = EnergyIntegratingAssembly().assemble(
        builder, derived, ReconstructionMode.TWO_D, source
    )
    assert list(buffers) == [EnergyBin.TOTAL]
    assert buffers[EnergyBin.TOTAL].shape == (4, 8)
