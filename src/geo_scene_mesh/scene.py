"""Scene-level mesh building: one config, one origin, many geometries."""

import logging

from shapely.geometry import LineString, MultiPolygon, Polygon

from .config import SceneConfig
from .core import terrain
from .core.tessellator import (
    create_tile_quad,
    line_string_to_ribbon_mesh,
    tessellate_multi_polygon,
    tessellate_polygon,
)
from .errors import InvalidGeometryKind
from .models import Heightmap, Mesh, ReferenceOrigin

logger = logging.getLogger(__name__)


class SceneMeshBuilder:
    """Builds meshes for a scene using the origin and defaults of a SceneConfig."""

    def __init__(self, config: SceneConfig | None = None):
        self.config = config or SceneConfig()

    @property
    def origin(self) -> ReferenceOrigin:
        """Origin built from the current config values."""
        return self.config.origin()

    def mesh_for(self, geometry) -> Mesh:
        """Tessellate a Polygon, MultiPolygon or LineString (as a ribbon)."""
        elevation = self.config.elevation
        if isinstance(geometry, Polygon):
            return tessellate_polygon(geometry, self.origin, elevation)
        if isinstance(geometry, MultiPolygon):
            return tessellate_multi_polygon(geometry, self.origin, elevation)
        if isinstance(geometry, LineString):
            return line_string_to_ribbon_mesh(
                geometry, self.origin, self.config.ribbon_width, elevation,
            )
        raise InvalidGeometryKind(
            f"Cannot build a mesh from {type(geometry).__name__}"
        )

    def meshes_for(self, geometries) -> list[Mesh]:
        meshes = [self.mesh_for(g) for g in geometries]
        logger.debug(
            "Built %d meshes, %d triangles total",
            len(meshes), sum(m.triangle_count for m in meshes),
        )
        return meshes

    def terrain_mesh(self, heightmap: Heightmap) -> Mesh:
        """Grid mesh for a heightmap with normals attached."""
        normals = terrain.generate_normals(
            heightmap, heightmap.width, heightmap.height, self.config.normal_cell_size,
        )
        return terrain.to_mesh(
            heightmap, heightmap.width, heightmap.height,
            self.config.terrain_scale_x, self.config.terrain_scale_z,
            normals=normals,
        )

    def tile_quad(self, min_x: float, min_z: float, max_x: float, max_z: float) -> Mesh:
        return create_tile_quad(min_x, min_z, max_x, max_z, self.config.elevation)
