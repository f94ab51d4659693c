"""
Processing configuration for metaprep
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from ..core.exceptions import ConfigurationError, ValidationError
from ..core.models import StripPolicy


@dataclass
class ProcessingConfig:
    """Options governing a compress/strip/convert run.

    The strip policy is passed explicitly to every engine call taken from
    this object; nothing reads it from shared state.
    """
    quality: int = 80          # 0-100, lower = smaller file
    speed: int = 3             # 1 (slowest/best) to 10 (fastest/worst)
    no_lossy: bool = False     # skip lossy re-encoding, only strip + lossless
    strip: StripPolicy = StripPolicy.ALL
    dry_run: bool = False
    backup: bool = False
    recursive: bool = False
    fps: float = 1.0           # frame extraction rate, 0 = every frame
    max_workers: Optional[int] = None
    show_progress: bool = True

    def __post_init__(self):
        self.strip = StripPolicy.parse(self.strip)
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.quality, int) or not 0 <= self.quality <= 100:
            raise ValidationError("quality", self.quality, "integer between 0 and 100")
        if not isinstance(self.speed, int) or not 1 <= self.speed <= 10:
            raise ValidationError("speed", self.speed, "integer between 1 and 10")
        if self.fps < 0:
            raise ValidationError("fps", self.fps, "fps >= 0")
        if self.max_workers is not None and self.max_workers <= 0:
            raise ValidationError("max_workers", self.max_workers, "positive integer")

    @classmethod
    def from_options(cls, options: Optional[Dict[str, Any]] = None) -> "ProcessingConfig":
        """Build a config from a loose options dictionary (e.g. parsed CLI args)."""
        if options is None:
            options = {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(unknown[0], options[unknown[0]], f"one of: {', '.join(sorted(known))}")
        return cls(**{k: v for k, v in options.items() if v is not None})
