"""Pydantic value types shared by the reference frame, tessellator and terrain builder."""

import math
from typing import Literal, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

OriginKind = Literal["geographic", "projected"]


class ReferenceOrigin(BaseModel):
    """Double-precision anchor of a scene-local coordinate system.

    For a geographic origin ``x`` is longitude and ``y`` latitude (degrees);
    for a projected origin they are easting/northing in metres.
    """
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    kind: OriginKind = "geographic"

    @field_validator("x", "y")
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"Origin coordinate must be finite, got {v}")
        return v

    @property
    def is_geographic(self) -> bool:
        return self.kind == "geographic"


class Heightmap(BaseModel):
    """Flat row-major grid of float32 elevation samples."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    samples: np.ndarray
    width: int = Field(ge=0)
    height: int = Field(ge=0)

    @field_validator("samples", mode="before")
    @classmethod
    def as_readonly_float32(cls, v) -> np.ndarray:
        arr = np.array(v, dtype=np.float32).ravel()
        arr.flags.writeable = False
        return arr

    @model_validator(mode="after")
    def length_must_match_dimensions(self) -> "Heightmap":
        if self.samples.size != self.width * self.height:
            raise ValueError(
                f"Heightmap has {self.samples.size} samples but "
                f"width * height = {self.width * self.height}"
            )
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Heightmap):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.samples, other.samples)
        )

    # samples are read-only, so the bytes are a stable key
    def __hash__(self) -> int:
        return hash((self.width, self.height, self.samples.tobytes()))

    def __len__(self) -> int:
        return int(self.samples.size)

    def as_grid(self) -> np.ndarray:
        """Return the samples as a (height, width) view."""
        return self.samples.reshape(self.height, self.width)


class Mesh(BaseModel):
    """Indexed triangle mesh with optional per-vertex UVs and normals."""
    model_config = ConfigDict(frozen=True)

    positions: list[list[float]] = Field(default_factory=list)
    indices: list[int] = Field(default_factory=list)
    uvs: Optional[list[list[float]]] = None
    normals: Optional[list[list[float]]] = None

    @field_validator("positions", "normals")
    @classmethod
    def vectors_must_be_3d(
        cls, v: Optional[list[list[float]]]
    ) -> Optional[list[list[float]]]:
        if v is None:
            return v
        for i, vec in enumerate(v):
            if len(vec) != 3:
                raise ValueError(f"Vector {i} must have exactly 3 components, got {len(vec)}")
        return v

    @field_validator("uvs")
    @classmethod
    def uvs_must_be_2d(cls, v: Optional[list[list[float]]]) -> Optional[list[list[float]]]:
        if v is None:
            return v
        for i, uv in enumerate(v):
            if len(uv) != 2:
                raise ValueError(f"UV {i} must have exactly 2 components, got {len(uv)}")
        return v

    @field_validator("indices")
    @classmethod
    def indices_must_form_triangles(cls, v: list[int]) -> list[int]:
        if len(v) % 3 != 0:
            raise ValueError(f"Index count must be a multiple of 3, got {len(v)}")
        for i, idx in enumerate(v):
            if idx < 0:
                raise ValueError(f"Index {i} is negative ({idx})")
        return v

    @model_validator(mode="after")
    def indices_and_attributes_must_match_positions(self) -> "Mesh":
        n_verts = len(self.positions)
        for i, idx in enumerate(self.indices):
            if idx >= n_verts:
                raise ValueError(
                    f"Index {i} references vertex {idx} but only {n_verts} vertices exist"
                )
        if self.uvs is not None and len(self.uvs) != n_verts:
            raise ValueError(f"Got {len(self.uvs)} UVs for {n_verts} positions")
        if self.normals is not None and len(self.normals) != n_verts:
            raise ValueError(f"Got {len(self.normals)} normals for {n_verts} positions")
        return self

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    @property
    def is_empty(self) -> bool:
        return not self.indices

    def as_buffers(self) -> dict[str, np.ndarray]:
        """Pack the mesh into contiguous arrays for vertex/index buffer upload.

        Returns a dict with ``positions`` (float32, N x 3) and ``indices``
        (uint32, flat), plus ``uvs`` and ``normals`` when the mesh has them.
        """
        buffers = {
            "positions": np.asarray(self.positions, dtype=np.float32).reshape(-1, 3),
            "indices": np.asarray(self.indices, dtype=np.uint32),
        }
        if self.uvs is not None:
            buffers["uvs"] = np.asarray(self.uvs, dtype=np.float32).reshape(-1, 2)
        if self.normals is not None:
            buffers["normals"] = np.asarray(self.normals, dtype=np.float32).reshape(-1, 3)
        return buffers
