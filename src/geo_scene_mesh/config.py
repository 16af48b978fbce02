"""Scene configuration: origin and default mesh parameters, persisted as JSON."""

import json
import logging
import math
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidInput
from .models import OriginKind, ReferenceOrigin

logger = logging.getLogger(__name__)


def _default_path() -> Path:
    return Path.home() / ".config" / "geo-scene-mesh" / "scene.json"


class SceneConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    origin_x: float = 0.0
    origin_y: float = 0.0
    origin_kind: OriginKind = "geographic"
    elevation: float = 0.0
    ribbon_width: float = Field(default=2.0, gt=0)
    terrain_scale_x: float = Field(default=1.0, gt=0)
    terrain_scale_z: float = Field(default=1.0, gt=0)
    normal_cell_size: float = Field(default=1.0, gt=0)

    @field_validator(
        "origin_x", "origin_y", "elevation", "ribbon_width",
        "terrain_scale_x", "terrain_scale_z", "normal_cell_size",
    )
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"Value must be finite, got {v}")
        return v

    def origin(self) -> ReferenceOrigin:
        return ReferenceOrigin(x=self.origin_x, y=self.origin_y, kind=self.origin_kind)


def load_scene_config(path: str | Path | None = None) -> SceneConfig:
    """Load a scene config from JSON; a missing file gives the defaults."""
    load_path = Path(path) if path else _default_path()

    if not load_path.exists():
        logger.debug("No scene config at %s, using defaults", load_path)
        return SceneConfig()

    try:
        with open(load_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInput(f"Invalid scene config file {load_path}: {e}") from e

    try:
        config = SceneConfig(**data)
    except (TypeError, ValidationError) as e:
        raise InvalidInput(f"Invalid scene config in {load_path}: {e}") from e

    logger.info("Scene config loaded from %s", load_path)
    return config


def save_scene_config(config: SceneConfig, path: str | Path | None = None) -> Path:
    """Write the scene config as JSON and return the path written."""
    save_path = Path(path) if path else _default_path()
    save_path.parent.mkdir(parents=True, exist_ok=True)

    with open(save_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)

    logger.info("Scene config saved to %s", save_path)
    return save_path
