"""Error types raised by the mesh builders."""


class GeoSceneMeshError(Exception):
    """Base class for all geo-scene-mesh errors."""


class InvalidInput(GeoSceneMeshError, ValueError):
    """Caller contract violation: non-finite number, bad dimension or length mismatch."""


class InvalidGeometryKind(GeoSceneMeshError, TypeError):
    """A geometry of the wrong type was passed where a specific kind is required."""
