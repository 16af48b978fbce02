"""Tessellation of polygons and polylines into scene-local meshes."""

import logging
import math

import numpy as np
import shapely
from scipy.spatial import Delaunay
from shapely.geometry import LineString, MultiPolygon, Polygon

from ..errors import InvalidGeometryKind, InvalidInput
from ..models import Mesh, ReferenceOrigin
from .reference_frame import ReferenceFrame

logger = logging.getLogger(__name__)


def _ring_xy(ring) -> np.ndarray:
    """Return the 2D vertices of a ring without the closing duplicate."""
    coords = np.asarray(ring.coords, dtype=np.float64)
    if coords.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    coords = coords[:, :2]
    if len(coords) > 1 and np.array_equal(coords[0], coords[-1]):
        coords = coords[:-1]
    return coords


def _polygon_vertices(polygon: Polygon) -> np.ndarray:
    """Unique vertices of the exterior and all interior rings."""
    rings = [_ring_xy(polygon.exterior)]
    rings.extend(_ring_xy(interior) for interior in polygon.interiors)
    points = np.vstack(rings)
    _, unique_idx = np.unique(points, axis=0, return_index=True)
    return points[np.sort(unique_idx)]


def _concat_meshes(meshes: list[Mesh]) -> Mesh:
    """Merge meshes, rebasing each part's indices by the running vertex count."""
    positions = []
    indices = []
    for mesh in meshes:
        base_vi = len(positions)
        positions.extend(mesh.positions)
        indices.extend(idx + base_vi for idx in mesh.indices)
    return Mesh(positions=positions, indices=indices)


def tessellate_polygon(
    polygon: Polygon, origin: ReferenceOrigin, elevation: float = 0.0
) -> Mesh:
    """Tessellate a polygon (with holes) into a flat triangle mesh.

    The polygon's vertices are Delaunay-triangulated, which covers their
    convex hull. A candidate triangle is kept only if its centroid lies
    inside the polygon, which drops triangles in concavities and holes.
    Every kept triangle gets its own three vertices; the winding is the
    order produced by the triangulation.
    """
    if not isinstance(polygon, Polygon):
        raise InvalidGeometryKind(
            f"Expected a Polygon, got {type(polygon).__name__}"
        )
    if not math.isfinite(elevation):
        raise InvalidInput(f"elevation must be a finite number, got {elevation}")
    if polygon.is_empty or polygon.area <= 0.0:
        return Mesh()

    points = _polygon_vertices(polygon)
    if not np.all(np.isfinite(points)):
        raise InvalidInput("Polygon coordinates must be finite numbers")
    if len(points) < 3:
        return Mesh()

    tri = Delaunay(points)
    simplices = tri.simplices
    corners = points[simplices]

    # Fewer than 3 distinct corners is degenerate
    distinct = (
        np.any(corners[:, 0] != corners[:, 1], axis=1)
        & np.any(corners[:, 1] != corners[:, 2], axis=1)
        & np.any(corners[:, 2] != corners[:, 0], axis=1)
    )
    centroids = corners.mean(axis=1)
    inside = shapely.contains_xy(polygon, centroids[:, 0], centroids[:, 1])
    kept = corners[distinct & inside]

    logger.debug(
        "Tessellated polygon: %d candidate triangles, %d kept",
        len(simplices), len(kept),
    )
    if len(kept) == 0:
        return Mesh()

    frame = ReferenceFrame(origin)
    flat = kept.reshape(-1, 2)
    positions = frame.to_local_array(flat[:, 0], flat[:, 1], elevation)
    return Mesh(
        positions=positions.tolist(),
        indices=list(range(len(positions))),
    )


def tessellate_multi_polygon(
    multi_polygon: MultiPolygon, origin: ReferenceOrigin, elevation: float = 0.0
) -> Mesh:
    """Tessellate every part of a MultiPolygon into one merged mesh."""
    if isinstance(multi_polygon, Polygon):
        parts = [multi_polygon]
    elif isinstance(multi_polygon, MultiPolygon):
        parts = list(multi_polygon.geoms)
    else:
        raise InvalidGeometryKind(
            f"Expected a MultiPolygon, got {type(multi_polygon).__name__}"
        )
    return _concat_meshes([tessellate_polygon(p, origin, elevation) for p in parts])


def _require_line_string(line_string) -> np.ndarray:
    if not isinstance(line_string, LineString):
        raise InvalidGeometryKind(
            f"Expected a LineString, got {type(line_string).__name__}"
        )
    coords = np.asarray(line_string.coords, dtype=np.float64)
    if coords.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    return coords[:, :2]


def line_string_to_positions(
    line_string: LineString, origin: ReferenceOrigin, elevation: float = 0.0
) -> list[np.ndarray]:
    """Project each vertex of a LineString to scene-local space, in order."""
    coords = _require_line_string(line_string)
    if len(coords) == 0:
        return []
    frame = ReferenceFrame(origin)
    return list(frame.to_local_array(coords[:, 0], coords[:, 1], elevation))


def line_string_to_ribbon_mesh(
    line_string: LineString,
    origin: ReferenceOrigin,
    width: float,
    elevation: float = 0.0,
) -> Mesh:
    """Convert a LineString into a flat ribbon: one quad (two triangles) per segment.

    Segments are independent, so there are no mitred joins at interior
    vertices. Vertex layout per segment: 0 = start-left, 1 = start-right,
    2 = end-right, 3 = end-left (left/right seen walking the line).
    Zero-length segments produce no quad.
    """
    if not (math.isfinite(width) and width > 0):
        raise InvalidInput(f"Ribbon width must be a positive finite number, got {width}")
    coords = _require_line_string(line_string)
    if len(coords) < 2:
        return Mesh()

    frame = ReferenceFrame(origin)
    points = frame.to_local_array(coords[:, 0], coords[:, 1], elevation)
    half_width = width * 0.5

    positions = []
    indices = []
    for a, b in zip(points[:-1], points[1:]):
        direction = b - a
        length = np.linalg.norm(direction)
        if length < 1e-6:
            logger.debug("Skipping zero-length ribbon segment at %s", a.tolist())
            continue
        direction = direction / length

        # Perpendicular in the horizontal XZ plane
        perp = np.array([-direction[2], 0.0, direction[0]], dtype=np.float32) * half_width

        base_vi = len(positions)
        positions.extend([
            (a - perp).tolist(),
            (a + perp).tolist(),
            (b + perp).tolist(),
            (b - perp).tolist(),
        ])
        indices.extend([
            base_vi, base_vi + 1, base_vi + 2,
            base_vi, base_vi + 2, base_vi + 3,
        ])

    return Mesh(positions=positions, indices=indices)


def create_tile_quad(
    min_x: float, min_z: float, max_x: float, max_z: float, elevation: float = 0.0
) -> Mesh:
    """Create a textured quad spanning (min_x, min_z)-(max_x, max_z) in scene space.

    UVs use the image convention with (0, 0) at the top-left corner.
    """
    for name, value in (("min_x", min_x), ("min_z", min_z), ("max_x", max_x),
                        ("max_z", max_z), ("elevation", elevation)):
        if not math.isfinite(value):
            raise InvalidInput(f"{name} must be a finite number, got {value}")
    positions = np.array([
        [min_x, elevation, min_z],  # SW
        [max_x, elevation, min_z],  # SE
        [max_x, elevation, max_z],  # NE
        [min_x, elevation, max_z],  # NW
    ], dtype=np.float32)
    uvs = [
        [0.0, 1.0],  # SW
        [1.0, 1.0],  # SE
        [1.0, 0.0],  # NE
        [0.0, 0.0],  # NW
    ]
    return Mesh(
        positions=positions.tolist(),
        indices=[0, 1, 2, 0, 2, 3],
        uvs=uvs,
    )
