import pytest
import numpy as np
from rbfc.core import RBFInterpolation
from rbfc.kernel import WendlandC2, WendlandC4, ThinPlateSpline
from rbfc.coarsening import RBFCoarsening, CoarseningSettings, CoarseningError, SelectionMode


def circle(n):
    theta = np.linspace(0.0, 2.0 * np.pi, n, endpoint=False)
    return np.column_stack([np.cos(theta), np.sin(theta)])


@pytest.fixture
def boundary():
    return circle(100)


@pytest.fixture
def mesh():
    rng = np.random.default_rng(4)
    radius = 0.2 + 0.7 * rng.random(60)
    theta = 2.0 * np.pi * rng.random(60)
    return np.column_stack([radius * np.cos(theta), radius * np.sin(theta)])


def solver(radius=2.0):
    return RBFInterpolation(WendlandC2(radius), polynomial_term=False)


def live(**kwargs):
    settings = dict(enabled=True, live_point_selection=True, tol=1e-2,
                    tol_live_point_selection=5e-2, min_points=2, max_points=100)
    settings.update(kwargs)
    return CoarseningSettings(**settings)


def test_disabled_matches_full_interpolation(boundary, mesh):
    values = 0.1 * boundary
    coarsening = RBFCoarsening(solver())
    assert not coarsening.enabled
    coarsening.compute(boundary, mesh)
    result = coarsening.interpolate(values)
    expected = solver().interpolate_once(boundary, mesh, values)
    assert np.allclose(result, expected, atol=1e-8)
    assert coarsening.nb_selected == 0


def test_disabled_removes_static_points(boundary, mesh):
    values = 0.1 * boundary
    values[50:, :] = 0.0
    coarsening = RBFCoarsening(solver())
    coarsening.compute(boundary, mesh)
    coarsening.set_nb_moving_and_static_face_centers(50, 50)
    result = coarsening.interpolate(values)
    assert coarsening.nb_static_face_centers_remove == 50
    assert coarsening.rbf.hhat.shape == (60, 50)
    expected = solver().interpolate_once(boundary, mesh, values)
    assert np.allclose(result, expected, atol=1e-6)


def test_static_selection_is_reused(boundary, mesh):
    """
    Test that a static selection is made once and the operator reused.
    """
    coarsening = RBFCoarsening(solver(), enabled=True, tol=1e-2, min_points=2, max_points=100)
    assert coarsening.mode is SelectionMode.STATIC
    coarsening.compute(boundary, mesh)
    first = coarsening.interpolate(0.1 * boundary)
    selected = list(coarsening.selected_positions)
    second = coarsening.interpolate(0.1 * boundary)
    assert coarsening.reselection_count == 1
    assert coarsening.selected_positions == selected
    assert np.allclose(first, second)
    assert np.allclose(coarsening.interpolate(0.2 * boundary), 2.0 * first)
    assert 2 <= coarsening.nb_selected <= 100


def test_static_trims_selected_static_points(mesh):
    boundary = circle(60)
    values = 0.1 * boundary
    values[30:, :] = 0.0
    coarsening = RBFCoarsening(solver(), enabled=True, tol=1e-2, min_points=2, max_points=60)
    coarsening.compute(boundary, mesh)
    coarsening.set_nb_moving_and_static_face_centers(30, 30)
    result = coarsening.interpolate(values)

    selected = np.asarray(coarsening.selected_positions)
    nb_static = int(np.count_nonzero(selected >= 30))
    assert nb_static > 0
    assert coarsening.nb_static_face_centers_remove == nb_static
    assert coarsening.rbf.hhat.shape == (60, len(selected) - nb_static)
    expected = solver().interpolate_once(boundary[selected], mesh, values[selected])
    assert np.allclose(result, expected, atol=1e-6)


def test_unit_displacement(boundary, mesh):
    coarsening = RBFCoarsening(solver(), enabled=True)
    coarsening.compute(boundary, mesh)
    assert np.all(coarsening.unit_displacement() == 1.0), "All points move when the partition is unset."
    coarsening.set_nb_moving_and_static_face_centers(30, 70)
    unit = coarsening.unit_displacement(3)
    assert unit.shape == (100, 3)
    assert np.all(unit[:30] == 1.0) and np.all(unit[30:] == 0.0)
    coarsening.set_nb_moving_and_static_face_centers(101, 0)
    with pytest.raises(CoarseningError):
        coarsening.unit_displacement()
    with pytest.raises(CoarseningError):
        coarsening.set_nb_moving_and_static_face_centers(-1, 0)


def test_polynomial_static_selection_warns():
    with pytest.warns(UserWarning):
        RBFCoarsening(RBFInterpolation(polynomial_term=True), enabled=True)


def test_interpolate_errors(boundary, mesh):
    coarsening = RBFCoarsening(solver(), enabled=True)
    with pytest.raises(CoarseningError):
        coarsening.interpolate(boundary)
    coarsening.compute(boundary, mesh)
    with pytest.raises(CoarseningError):
        coarsening.interpolate(boundary[:10])
    with pytest.raises(CoarseningError):
        coarsening.compute(boundary, np.zeros((0, 2)))


def test_live_reselection(boundary, mesh):
    coarsening = RBFCoarsening(solver(), live())
    coarsening.compute(boundary, mesh)
    coarsening.interpolate(0.1 * boundary)
    assert coarsening.reselection_count == 1
    assert coarsening.nb_selected < 100

    # same shape, different amplitude: the selection still fits
    coarsening.interpolate(0.3 * boundary)
    assert coarsening.reselection_count == 1

    # a displacement at a single point that was not selected
    j = next(i for i in range(100) if i not in coarsening.selected_positions)
    bump = np.zeros((100, 2))
    bump[j, 0] = 1.0
    coarsening.interpolate(bump)
    assert coarsening.reselection_count == 2
    assert coarsening.selected_positions[0] == j
    assert coarsening.last_error < 1e-2


def test_live_reselection_deterministic(boundary, mesh):
    fields = [0.1 * boundary, np.column_stack([boundary[:, 0] ** 3, np.zeros(100)]), 0.2 * boundary]
    first, second = RBFCoarsening(solver(), live()), RBFCoarsening(solver(), live())
    first.compute(boundary, mesh)
    second.compute(boundary, mesh)
    for values in fields:
        a, b = first.interpolate(values), second.interpolate(values)
        assert first.selected_positions == second.selected_positions
        assert np.allclose(a, b)
    assert first.reselection_count == second.reselection_count


def test_live_sum_values(boundary, mesh):
    """
    Test that increments are accumulated into the total displacement.
    """
    total = np.column_stack([0.1 * boundary[:, 0], 0.05 * boundary[:, 1] ** 2])
    incremental = RBFCoarsening(solver(), live(live_point_selection_sum_values=True))
    incremental.compute(boundary, mesh)
    for _ in range(5):
        incremental.interpolate(total / 5.0)
    single = RBFCoarsening(solver(), live(live_point_selection_sum_values=True))
    single.compute(boundary, mesh)
    single.interpolate(total)
    assert np.allclose(incremental.total_values, total)
    assert np.allclose(incremental.total_values, single.total_values)


def test_live_without_sum_values(boundary, mesh):
    coarsening = RBFCoarsening(solver(), live())
    coarsening.compute(boundary, mesh)
    coarsening.interpolate(0.1 * boundary)
    coarsening.interpolate(0.2 * boundary)
    assert np.allclose(coarsening.total_values, 0.2 * boundary)


def test_compute_resets_selection(boundary, mesh):
    coarsening = RBFCoarsening(solver(), live())
    coarsening.compute(boundary, mesh)
    coarsening.interpolate(0.1 * boundary)
    coarsening.compute(boundary, mesh)
    assert coarsening.nb_selected == 0
    assert coarsening.total_values is None
    assert coarsening.rbf_coarse is None


def test_surface_correction_at_control_points(boundary):
    """
    Test that the corrected field reproduces the displacement at the
    control points when they are also the interpolation points.
    """
    values = np.column_stack([np.sin(2.0 * boundary[:, 0]), boundary[:, 1] ** 3])
    coarsening = RBFCoarsening(solver(), live(tol=0.05, tol_live_point_selection=0.1,
                                              surface_correction=True))
    coarsening.compute(boundary, boundary)
    assert coarsening.correction is not None
    result = coarsening.interpolate(values)
    assert np.allclose(result, values, atol=1e-8)


def test_surface_correction_needs_live_selection(boundary, mesh):
    coarsening = RBFCoarsening(solver(), enabled=True, surface_correction=True)
    coarsening.compute(boundary, mesh)
    assert coarsening.correction is None


def test_paired_growth(boundary, mesh):
    coarsening = RBFCoarsening(solver(), live(two_point_selection=True, max_points=11))
    coarsening.compute(boundary, mesh)
    coarsening.interpolate(np.column_stack([np.sin(3.0 * boundary[:, 0]), boundary[:, 1]]))
    assert coarsening.nb_selected <= 11
    assert len(set(coarsening.selected_positions)) == coarsening.nb_selected


def test_export_selection(boundary, mesh, tmp_path):
    coarsening = RBFCoarsening(solver(), enabled=True, export_txt=True, export_directory=str(tmp_path))
    coarsening.compute(boundary, mesh)
    coarsening.interpolate(0.1 * boundary)
    indices = np.atleast_1d(np.loadtxt(tmp_path / "selected_positions_0.txt", dtype=int))
    coordinates = np.loadtxt(tmp_path / "selected_coordinates_0.txt").reshape(-1, 2)
    assert list(indices) == coarsening.selected_positions
    assert np.allclose(coordinates, boundary[indices])
    assert coarsening.file_export_index == 1


def test_verbose_reselection_output(boundary, mesh, capsys):
    coarsening = RBFCoarsening(solver(), live(verbose=True))
    coarsening.compute(boundary, mesh)
    coarsening.interpolate(0.1 * boundary)
    coarsening.interpolate(0.1 * boundary)
    out = capsys.readouterr().out
    assert "selected" in out
    assert "reselection = false" in out


def test_correction_follows_kernel_family(boundary, mesh):
    settings = live(surface_correction=True)
    coarsening = RBFCoarsening(RBFInterpolation(WendlandC4(2.0), polynomial_term=False), settings)
    coarsening.compute(boundary, mesh)
    assert coarsening.correction.function_type is WendlandC4
    coarsening = RBFCoarsening(RBFInterpolation(ThinPlateSpline(), polynomial_term=False), settings)
    coarsening.compute(boundary, mesh)
    assert coarsening.correction.function_type is WendlandC2


def test_single_point_budget_rejected():
    with pytest.raises(CoarseningError):
        RBFCoarsening(RBFInterpolation(polynomial_term=False), enabled=True, live_point_selection=True,
                      min_points=1, max_points=1)


def test_smallest_budget_selects_two_points():
    boundary = circle(20)
    coarsening = RBFCoarsening(RBFInterpolation(polynomial_term=False), enabled=True,
                               live_point_selection=True, min_points=1, max_points=2)
    coarsening.compute(boundary, 0.5 * boundary)
    result = coarsening.interpolate(0.1 * boundary)
    assert coarsening.nb_selected == 2
    assert result.shape == (20, 2)
    assert np.all(np.isfinite(result))


def test_compute_resets_surface_correction(boundary, mesh):
    coarsening = RBFCoarsening(solver(), live(surface_correction=True))
    coarsening.compute(boundary, boundary)
    correction = coarsening.correction
    coarsening.interpolate(0.1 * boundary)
    assert correction.values_correction is not None
    assert correction.closest_boundary_index is not None
    coarsening.compute(boundary, mesh)
    assert coarsening.correction is correction
    assert correction.values_correction is None
    assert correction.closest_boundary_index is None
    assert correction.positions_interpolation is mesh
    assert coarsening.interpolate(0.1 * boundary).shape == (60, 2)
