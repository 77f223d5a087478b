from types import SimpleNamespace

import numpy as np
import pytest

from quadwarp.errors import InvalidInputError, SingularMatrixError, SingularSystemError
from quadwarp.geometry.homography import (
    DEFAULT_QUAD,
    apply_homography,
    as_point_quad,
    check_general_position,
    rectangle_corners,
    solve_homography,
)
from quadwarp.geometry.matrix import invert_matrix


def dlt_homography(src, dst):
    """Reference estimate: SVD null vector of the 8 x 9 DLT matrix."""
    A = []
    for (x1, y1), (x2, y2) in zip(src, dst):
        A.append([-x1, -y1, -1,  0,   0,  0, x2 * x1, x2 * y1, x2])
        A.append([ 0,   0,  0, -x1, -y1, -1, y2 * x1, y2 * y1, y2])
    _, _, Vt = np.linalg.svd(np.array(A, dtype=float))
    H = Vt[-1].reshape(3, 3)
    return H / H[2, 2]


# ---------------------------------------------------------------------------
# Point quads
# ---------------------------------------------------------------------------

def test_as_point_quad_accepts_mixed_point_forms():
    quad = as_point_quad([(0, 0), {"x": 10, "y": 0}, SimpleNamespace(x=10, y=10), [0, 10]])
    np.testing.assert_array_equal(quad, [[0, 0], [10, 0], [10, 10], [0, 10]])
    assert quad.dtype == np.float64


def test_as_point_quad_is_read_only():
    quad = as_point_quad(DEFAULT_QUAD)
    with pytest.raises(ValueError):
        quad[0, 0] = 1.0


@pytest.mark.parametrize("points", [
    [(0, 0), (1, 0), (1, 1)],
    [(0, 0), (1, 0), (1, 1), (0, 1), (2, 2)],
    [],
    np.zeros((5, 2)),
])
def test_as_point_quad_requires_four_points(points):
    with pytest.raises(InvalidInputError):
        as_point_quad(points)


@pytest.mark.parametrize("points", [
    [(0, 0), (1, 0), (1, 1), (0, 1, 2)],
    [(0, 0), (1, 0), (1, 1), {"x": 0}],
    [(0, 0), (1, 0), (1, 1), (0, float("nan"))],
    [(0, 0), (1, 0), (1, 1), ("a", "b")],
    5,
])
def test_as_point_quad_rejects_malformed_points(points):
    with pytest.raises(InvalidInputError):
        as_point_quad(points)


def test_rectangle_corners_span_full_size():
    np.testing.assert_array_equal(
        rectangle_corners(640, 480),
        [[0, 0], [640, 0], [640, 480], [0, 480]],
    )


# ---------------------------------------------------------------------------
# Solving
# ---------------------------------------------------------------------------

def test_square_to_same_square_is_identity():
    square = [(0, 0), (10, 0), (10, 10), (0, 10)]
    H = solve_homography(square, rectangle_corners(10, 10))
    np.testing.assert_allclose(H, np.eye(3), atol=1e-12)


def test_bottom_right_entry_is_one():
    H = solve_homography(DEFAULT_QUAD, rectangle_corners(400, 300))
    assert H[2, 2] == 1.0


def test_scale_and_translation():
    src = [(1, 1), (3, 1), (3, 3), (1, 3)]
    dst = [(0, 0), (4, 0), (4, 4), (0, 4)]
    H = solve_homography(src, dst)
    np.testing.assert_allclose(H, [[2, 0, -2], [0, 2, -2], [0, 0, 1]], atol=1e-12)


def test_maps_source_points_onto_destination():
    dst = rectangle_corners(400, 300)
    H = solve_homography(DEFAULT_QUAD, dst)
    np.testing.assert_allclose(apply_homography(H, DEFAULT_QUAD), dst, atol=1e-6)


def test_agrees_with_svd_estimate():
    src = [(12.5, 30.0), (410.0, 8.0), (455.0, 390.0), (-20.0, 350.0)]
    dst = [(0, 0), (320, 0), (320, 240), (0, 240)]
    np.testing.assert_allclose(
        solve_homography(src, dst), dlt_homography(src, dst), rtol=1e-6, atol=1e-7)


def test_round_trip_through_inverse():
    src = as_point_quad(DEFAULT_QUAD)
    dst = rectangle_corners(600, 450)
    H = solve_homography(src, dst)

    back = apply_homography(invert_matrix(H), dst)
    np.testing.assert_allclose(back, src, rtol=1e-6)


def test_is_deterministic():
    dst = rectangle_corners(123, 77)
    np.testing.assert_array_equal(
        solve_homography(DEFAULT_QUAD, dst), solve_homography(DEFAULT_QUAD, dst))


def test_wrong_point_count():
    with pytest.raises(InvalidInputError):
        solve_homography([(0, 0), (1, 0), (1, 1)], rectangle_corners(10, 10))
    with pytest.raises(InvalidInputError):
        solve_homography(DEFAULT_QUAD, [(0, 0), (1, 0)])


# ---------------------------------------------------------------------------
# Degenerate quads
# ---------------------------------------------------------------------------

def test_identical_points_are_singular():
    with pytest.raises(SingularSystemError):
        solve_homography([(5, 5)] * 4, rectangle_corners(10, 10))


def test_all_points_at_origin_are_singular():
    with pytest.raises(SingularSystemError):
        solve_homography([(0, 0)] * 4, rectangle_corners(10, 10))


@pytest.mark.parametrize("src", [
    [(0, 0), (5, 5), (10, 10), (0, 10)],        # three collinear through the origin
    [(1, 2), (3, 4), (5, 6), (0, 10)],          # three collinear elsewhere
    [(0, 0), (10, 0), (20, 0), (30, 0)],        # all four collinear
])
def test_collinear_points_never_yield_usable_matrix(src):
    with pytest.raises((SingularSystemError, SingularMatrixError)):
        H = solve_homography(src, rectangle_corners(10, 10))
        invert_matrix(H)


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

def test_apply_homography_divides_by_w():
    H = np.array([[1.0, 0, 0], [0, 1.0, 0], [0, 0, 2.0]])
    np.testing.assert_allclose(apply_homography(H, [[4, 6]]), [[2, 3]])


def test_apply_homography_point_at_infinity():
    H = np.array([[1.0, 0, 0], [0, 1.0, 0], [1.0, 0, 0]])
    out = apply_homography(H, [[0, 5]])
    assert not np.all(np.isfinite(out))


def test_collinear_triple_far_from_origin_is_singular():
    src = [(23, 2538), (2591, 1450), (2914, 1314), (3655, 1002)]
    with pytest.raises(SingularSystemError):
        solve_homography(src, rectangle_corners(1220, 212))


def test_random_quads_with_collinear_triple_are_singular():
    rng = np.random.default_rng(7)
    for _ in range(500):
        start = rng.integers(-2000, 4000, size=2)
        step = rng.integers(-300, 300, size=2)
        if not step.any():
            step[0] = 1
        k1, k2 = rng.choice(np.arange(1, 12), size=2, replace=False)
        free = rng.integers(-2000, 4000, size=2)
        points = [start, start + k1 * step, start + k2 * step, free]
        order = rng.permutation(4)
        src = [tuple(int(v) for v in points[i]) for i in order]
        width, height = (int(v) for v in rng.integers(1, 2000, size=2))

        with pytest.raises(SingularSystemError):
            solve_homography(src, rectangle_corners(width, height))


def test_general_position_accepts_thin_but_valid_quad():
    src = [(0, 0), (1000, 0), (1000, 5), (0, 5)]
    H = solve_homography(src, rectangle_corners(200, 200))
    np.testing.assert_allclose(apply_homography(H, src), rectangle_corners(200, 200), atol=1e-6)


def test_apply_homography_empty_points():
    assert apply_homography(np.eye(3), np.empty((0, 2))).shape == (0, 2)


@pytest.mark.parametrize("quad", [
    [(0, 0), (2, 2), (4, 4), (0, 9)],
    [(3, 1), (9, 7), (3, 1), (0, 5)],
    [(1e6, 1e6), (1e6 + 3, 1e6 + 6), (1e6 + 7, 1e6 + 14), (0, 0)],
])
def test_check_general_position_rejects_collinear_triples(quad):
    with pytest.raises(SingularSystemError):
        check_general_position(as_point_quad(quad))


def test_check_general_position_ignores_coordinate_scale():
    quad = np.array([(0.0, 0.0), (4.0, 0.0), (4.0, 3.0), (0.0, 3.0)])
    for scale in (1e-6, 1.0, 1e6):
        check_general_position(quad * scale)
