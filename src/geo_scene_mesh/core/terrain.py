"""Heightmap utilities and terrain mesh generation.

Heightmaps are flat row-major float32 arrays: sample ``(x, y)`` lives at
``y * width + x``. Terrain meshes are built in a local grid space centred on
the scene origin, with Y up.
"""

import logging
import math

import numpy as np

from ..errors import InvalidInput
from ..models import Heightmap, Mesh

logger = logging.getLogger(__name__)


def _samples(heightmap, width: int, height: int) -> np.ndarray:
    """Validate dimensions and return the samples as a float32 array."""
    if isinstance(heightmap, Heightmap):
        samples = heightmap.samples
    else:
        samples = np.asarray(heightmap, dtype=np.float32).ravel()
    if width < 0 or height < 0:
        raise InvalidInput(f"Dimensions must be non-negative, got {width}x{height}")
    if samples.size != width * height:
        raise InvalidInput(
            f"Heightmap has {samples.size} samples but width * height = {width * height}"
        )
    return samples


def _require_positive(**values: float) -> None:
    for name, value in values.items():
        if not (math.isfinite(value) and value > 0):
            raise InvalidInput(f"{name} must be a positive finite number, got {value}")


def create_flat(width: int, height: int) -> Heightmap:
    """Create an all-zero heightmap of the given dimensions."""
    if width <= 0 or height <= 0:
        raise InvalidInput(f"Heightmap dimensions must be positive, got {width}x{height}")
    return Heightmap(samples=np.zeros(width * height, dtype=np.float32), width=width, height=height)


def from_grid(grid) -> Heightmap:
    """Flatten a 2D row-major grid (rows of columns) into a heightmap."""
    rows = len(grid)
    if rows == 0:
        return Heightmap(samples=np.empty(0, dtype=np.float32), width=0, height=0)
    cols = len(grid[0])
    for r, row in enumerate(grid):
        if len(row) != cols:
            raise InvalidInput(f"Row {r} has {len(row)} columns, expected {cols}")
    return Heightmap(samples=np.asarray(grid, dtype=np.float32), width=cols, height=rows)


def normalize(heightmap: Heightmap) -> tuple[Heightmap, float, float]:
    """Rescale samples linearly to [0, 1].

    Returns the normalized heightmap plus the original min and max so the
    caller can undo the scaling. Flat terrain maps to all zeros.
    """
    samples = heightmap.samples
    if samples.size == 0:
        return heightmap, 0.0, 0.0

    min_elev = float(np.min(samples))
    max_elev = float(np.max(samples))
    elev_range = max_elev - min_elev
    if elev_range == 0.0:
        normalized = np.zeros_like(samples)
    else:
        normalized = (samples - min_elev) / elev_range
    return (
        Heightmap(samples=normalized, width=heightmap.width, height=heightmap.height),
        min_elev,
        max_elev,
    )


def sample(heightmap, width: int, height: int, u: float, v: float) -> float:
    """Sample the heightmap at fractional (u, v) in [0, 1] using bilinear interpolation.

    Coordinates outside [0, 1] are clamped, so sampling at or past the border
    returns the edge value.
    """
    samples = _samples(heightmap, width, height)
    if samples.size == 0:
        raise InvalidInput("Cannot sample an empty heightmap")
    if not (math.isfinite(u) and math.isfinite(v)):
        raise InvalidInput(f"u and v must be finite, got ({u}, {v})")

    px = min(max(u * (width - 1), 0.0), width - 1)
    py = min(max(v * (height - 1), 0.0), height - 1)
    x0 = min(max(int(math.floor(px)), 0), width - 1)
    y0 = min(max(int(math.floor(py)), 0), height - 1)
    x1 = min(x0 + 1, width - 1)
    y1 = min(y0 + 1, height - 1)
    tx = px - x0
    ty = py - y0

    h00 = float(samples[y0 * width + x0])
    h10 = float(samples[y0 * width + x1])
    h01 = float(samples[y1 * width + x0])
    h11 = float(samples[y1 * width + x1])

    return (
        h00 * (1 - tx) * (1 - ty)
        + h10 * tx * (1 - ty)
        + h01 * (1 - tx) * ty
        + h11 * tx * ty
    )


def generate_normals(
    heightmap, width: int, height: int, cell_size: float = 1.0
) -> np.ndarray:
    """Estimate per-cell unit normals by central differences.

    At the borders the neighbour index is clamped, which turns the central
    difference into a one-sided one. Returns a (width * height, 3) float32
    array in the same row-major order as the heightmap.
    """
    samples = _samples(heightmap, width, height)
    _require_positive(cell_size=cell_size)
    if samples.size == 0:
        return np.empty((0, 3), dtype=np.float32)

    grid = samples.reshape(height, width).astype(np.float64)
    cols = np.arange(width)
    rows = np.arange(height)
    left = np.maximum(cols - 1, 0)
    right = np.minimum(cols + 1, width - 1)
    down = np.maximum(rows - 1, 0)
    up = np.minimum(rows + 1, height - 1)

    dhdx = (grid[:, right] - grid[:, left]) / (2.0 * cell_size)
    dhdz = (grid[up, :] - grid[down, :]) / (2.0 * cell_size)

    normals = np.stack([-dhdx, np.ones_like(grid), -dhdz], axis=-1).reshape(-1, 3)
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)
    return normals.astype(np.float32)


def to_mesh(
    heightmap, width: int, height: int, scale_x: float = 1.0, scale_z: float = 1.0,
    normals: np.ndarray | None = None,
) -> Mesh:
    """Build a regular grid mesh from a heightmap.

    Vertices are centred on the origin with ``scale_x``/``scale_z`` metres
    between columns/rows and Y taken from the samples. Every quad is split
    along the same diagonal: (i, i+width, i+1) and (i+1, i+width, i+width+1).
    Optional per-vertex ``normals`` (e.g. from :func:`generate_normals`) are
    attached as-is.
    """
    samples = _samples(heightmap, width, height)
    _require_positive(scale_x=scale_x, scale_z=scale_z)
    if normals is not None:
        normals = np.asarray(normals, dtype=np.float32).reshape(-1, 3)
        if len(normals) != samples.size:
            raise InvalidInput(f"Got {len(normals)} normals for {samples.size} vertices")
    if samples.size == 0:
        return Mesh(uvs=[])

    offset_x = -(width - 1) * scale_x * 0.5
    offset_z = -(height - 1) * scale_z * 0.5

    zz, xx = np.meshgrid(np.arange(height), np.arange(width), indexing="ij")
    positions = np.column_stack([
        offset_x + xx.ravel() * scale_x,
        samples,
        offset_z + zz.ravel() * scale_z,
    ]).astype(np.float32)

    u = xx.ravel() / (width - 1) if width > 1 else np.zeros(xx.size)
    v = zz.ravel() / (height - 1) if height > 1 else np.zeros(zz.size)
    uvs = np.column_stack([u, v]).astype(np.float32)

    # Top-left vertex of every quad, row-major
    quad = (zz[:-1, :-1] * width + xx[:-1, :-1]).ravel()
    indices = np.column_stack([
        quad, quad + width, quad + 1,
        quad + 1, quad + width, quad + width + 1,
    ]).ravel()

    logger.debug(
        "Terrain mesh %dx%d: %d vertices, %d triangles",
        width, height, len(positions), len(indices) // 3,
    )
    return Mesh(
        positions=positions.tolist(),
        indices=indices.tolist(),
        uvs=uvs.tolist(),
        normals=None if normals is None else normals.tolist(),
    )
