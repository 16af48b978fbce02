"""Tests for heightmap utilities and terrain mesh generation."""

import numpy as np
import pytest

from geo_scene_mesh.core.terrain import (
    create_flat,
    from_grid,
    generate_normals,
    normalize,
    sample,
    to_mesh,
)
from geo_scene_mesh.errors import InvalidInput
from geo_scene_mesh.models import Heightmap


def _ramp(width: int, height: int) -> Heightmap:
    """Heightmap where h(x, y) = x + 10 * y."""
    grid = [[float(x + 10 * y) for x in range(width)] for y in range(height)]
    return from_grid(grid)


class TestCreateFlat:
    """Tests for all-zero heightmap allocation."""

    def test_all_zero(self):
        hm = create_flat(4, 3)
        assert hm.width == 4
        assert hm.height == 3
        assert len(hm) == 12
        assert not np.any(hm.samples)
        assert hm.samples.dtype == np.float32

    @pytest.mark.parametrize("width, height", [(0, 3), (3, 0), (-1, 2)])
    def test_bad_dimensions(self, width, height):
        with pytest.raises(InvalidInput):
            create_flat(width, height)


class TestFromGrid:
    """Tests for flattening 2D grids into heightmaps."""

    def test_row_major(self):
        hm = from_grid([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        assert hm.width == 3
        assert hm.height == 2
        np.testing.assert_array_equal(hm.samples, [1, 2, 3, 4, 5, 6])

    def test_numpy_grid(self):
        hm = from_grid(np.arange(6, dtype=np.float64).reshape(2, 3))
        assert (hm.width, hm.height) == (3, 2)
        np.testing.assert_array_equal(hm.as_grid(), [[0, 1, 2], [3, 4, 5]])

    def test_empty(self):
        hm = from_grid([])
        assert len(hm) == 0
        assert (hm.width, hm.height) == (0, 0)

    def test_ragged_rows(self):
        with pytest.raises(InvalidInput):
            from_grid([[1.0, 2.0], [3.0]])

    def test_caller_data_not_shared(self):
        grid = np.zeros((2, 2))
        hm = from_grid(grid)
        grid[0, 0] = 99.0
        assert hm.samples[0] == 0.0


class TestNormalize:
    """Tests for rescaling heightmaps to [0, 1]."""

    def test_range(self):
        hm = from_grid([[10.0, 20.0], [30.0, 50.0]])
        normed, lo, hi = normalize(hm)
        assert lo == 10.0
        assert hi == 50.0
        np.testing.assert_allclose(normed.samples, [0.0, 0.25, 0.5, 1.0])

    def test_flat_terrain(self):
        """All-equal samples give all zeros and min == max == the constant."""
        hm = from_grid([[7.5, 7.5], [7.5, 7.5]])
        normed, lo, hi = normalize(hm)
        assert lo == hi == 7.5
        assert not np.any(normed.samples)

    def test_input_untouched(self):
        hm = from_grid([[1.0, 3.0]])
        normalize(hm)
        np.testing.assert_array_equal(hm.samples, [1.0, 3.0])

    def test_empty(self):
        normed, lo, hi = normalize(from_grid([]))
        assert len(normed) == 0
        assert lo == hi == 0.0


class TestSample:
    """Tests for bilinear heightmap sampling."""

    def test_corners(self):
        hm = _ramp(4, 3)
        assert sample(hm, 4, 3, 0.0, 0.0) == pytest.approx(float(hm.samples[0]))
        assert sample(hm, 4, 3, 1.0, 1.0) == pytest.approx(float(hm.samples[-1]))
        assert sample(hm, 4, 3, 1.0, 0.0) == pytest.approx(3.0)
        assert sample(hm, 4, 3, 0.0, 1.0) == pytest.approx(20.0)

    def test_interior_is_bilinear(self):
        hm = _ramp(3, 3)
        # px = 0.5, py = 0.5 -> 0.5 + 10 * 0.5
        assert sample(hm, 3, 3, 0.25, 0.25) == pytest.approx(5.5)

    def test_interior_bounded_by_neighbours(self):
        rng = np.random.default_rng(7)
        grid = rng.uniform(-50, 50, size=(5, 6))
        hm = from_grid(grid)
        for u, v in [(0.13, 0.77), (0.5, 0.5), (0.91, 0.04)]:
            px, py = u * 5, v * 4
            x0, y0 = int(px), int(py)
            cell = hm.as_grid()[y0:y0 + 2, x0:x0 + 2]
            value = sample(hm, 6, 5, u, v)
            assert cell.min() - 1e-4 <= value <= cell.max() + 1e-4

    def test_beyond_border_returns_edge(self):
        hm = _ramp(4, 3)
        assert sample(hm, 4, 3, 1.5, 0.0) == pytest.approx(3.0)
        assert sample(hm, 4, 3, -0.5, -2.0) == pytest.approx(0.0)
        assert sample(hm, 4, 3, 2.0, 2.0) == pytest.approx(23.0)

    def test_raw_array_accepted(self):
        assert sample([1.0, 2.0, 3.0, 4.0], 2, 2, 1.0, 1.0) == pytest.approx(4.0)

    def test_length_mismatch(self):
        with pytest.raises(InvalidInput):
            sample(_ramp(4, 3), 5, 3, 0.5, 0.5)


class TestGenerateNormals:
    """Tests for central-difference normal estimation."""

    def test_flat_is_up(self):
        hm = create_flat(5, 4)
        normals = generate_normals(hm, 5, 4)
        assert normals.shape == (20, 3)
        np.testing.assert_allclose(normals, np.tile([0.0, 1.0, 0.0], (20, 1)))

    def test_unit_length(self):
        rng = np.random.default_rng(3)
        hm = from_grid(rng.uniform(0, 100, size=(6, 7)))
        normals = generate_normals(hm, 7, 6, cell_size=2.0)
        np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0, rtol=1e-5)

    def test_slope_along_x(self):
        """h = x on unit cells tilts interior normals towards -X by 45 degrees."""
        hm = from_grid([[0.0, 1.0, 2.0], [0.0, 1.0, 2.0]])
        normals = generate_normals(hm, 3, 2).reshape(2, 3, 3)
        expected = np.array([-1.0, 1.0, 0.0]) / np.sqrt(2.0)
        np.testing.assert_allclose(normals[:, 1], np.tile(expected, (2, 1)), atol=1e-6)
        assert np.all(normals[:, :, 2] == 0.0)

    def test_edges_use_clamped_neighbours(self):
        # centre column sees the full span, edges only half of it
        hm = from_grid([[0.0, 0.0, 4.0]])
        normals = generate_normals(hm, 3, 1, cell_size=1.0)
        dhdx = -normals[:, 0] / normals[:, 1]
        np.testing.assert_allclose(dhdx, [0.0, 2.0, 2.0], atol=1e-6)

    def test_bad_cell_size(self):
        with pytest.raises(InvalidInput):
            generate_normals(create_flat(2, 2), 2, 2, cell_size=0.0)

    def test_length_mismatch(self):
        with pytest.raises(InvalidInput):
            generate_normals(create_flat(2, 2), 3, 2)


class TestToMesh:
    """Tests for the regular grid terrain mesh."""

    def test_two_by_two(self):
        """2x2 heightmap gives 4 vertices, 1 quad and the fixed diagonal."""
        hm = from_grid([[0.0, 1.0], [2.0, 3.0]])
        mesh = to_mesh(hm, 2, 2, 1.0, 1.0)
        assert mesh.vertex_count == 4
        assert mesh.triangle_count == 2
        width = 2
        assert mesh.indices == [0, width, 1, 1, width, width + 1]

    def test_grid_centred_on_origin(self):
        hm = create_flat(3, 5)
        mesh = to_mesh(hm, 3, 5, scale_x=2.0, scale_z=0.5)
        pos = np.asarray(mesh.positions)
        assert pos[:, 0].min() == pytest.approx(-2.0)
        assert pos[:, 0].max() == pytest.approx(2.0)
        assert pos[:, 2].min() == pytest.approx(-1.0)
        assert pos[:, 2].max() == pytest.approx(1.0)
        np.testing.assert_allclose(pos[0], [-2.0, 0.0, -1.0])
        np.testing.assert_allclose(pos[1], [0.0, 0.0, -1.0])

    def test_heights_and_uvs(self):
        hm = _ramp(3, 2)
        mesh = to_mesh(hm, 3, 2)
        np.testing.assert_allclose([p[1] for p in mesh.positions], hm.samples)
        assert mesh.uvs[0] == [0.0, 0.0]
        assert mesh.uvs[1] == [0.5, 0.0]
        assert mesh.uvs[-1] == [1.0, 1.0]

    def test_quad_count(self):
        mesh = to_mesh(create_flat(5, 4), 5, 4)
        assert mesh.vertex_count == 20
        assert len(mesh.indices) == 4 * 3 * 6
        assert max(mesh.indices) == 19

    def test_second_row_of_quads(self):
        mesh = to_mesh(create_flat(3, 3), 3, 3)
        # quad at (x=0, y=1) starts at vertex 3
        assert mesh.indices[12:18] == [3, 6, 4, 4, 6, 7]

    def test_single_column_has_no_quads(self):
        mesh = to_mesh(create_flat(1, 4), 1, 4)
        assert mesh.vertex_count == 4
        assert mesh.indices == []
        assert all(uv[0] == 0.0 for uv in mesh.uvs)

    def test_normals_attached(self):
        hm = create_flat(2, 2)
        mesh = to_mesh(hm, 2, 2, normals=generate_normals(hm, 2, 2))
        assert mesh.normals == [[0.0, 1.0, 0.0]] * 4

    def test_normals_length_mismatch(self):
        with pytest.raises(InvalidInput):
            to_mesh(create_flat(2, 2), 2, 2, normals=np.zeros((3, 3)))

    def test_length_mismatch(self):
        with pytest.raises(InvalidInput):
            to_mesh(create_flat(2, 2), 3, 3)

    def test_bad_scale(self):
        with pytest.raises(InvalidInput):
            to_mesh(create_flat(2, 2), 2, 2, scale_x=-1.0)
