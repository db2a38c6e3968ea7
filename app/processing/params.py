"""Randomized transform parameters for a single variation."""

import random
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from app.config import TransformRanges


@dataclass(frozen=True)
class TransformConfig:
    """Parameter set for one variation. Identity values leave the video untouched."""
    speed: float = 1.0
    brightness: float = 0.0
    contrast: float = 1.0
    saturation: float = 1.0
    scale: float = 1.0
    flip: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


IDENTITY = TransformConfig()

_default_rng = random.Random()


def generate_config(
    index: int,
    rng: Optional[random.Random] = None,
    ranges: Optional[TransformRanges] = None,
) -> TransformConfig:
    """Draw a fresh config, each field uniform within its range.

    `index` identifies the variation but does not influence the values.
    Pass a seeded `rng` to make the draw reproducible.
    """
    rng = rng or _default_rng
    r = ranges or TransformRanges()
    return TransformConfig(
        speed=rng.uniform(r.speed_min, r.speed_max),
        brightness=rng.uniform(r.brightness_min, r.brightness_max),
        contrast=rng.uniform(r.contrast_min, r.contrast_max),
        saturation=rng.uniform(r.saturation_min, r.saturation_max),
        scale=rng.uniform(r.scale_min, r.scale_max),
        flip=rng.random() < r.flip_probability,
    )
