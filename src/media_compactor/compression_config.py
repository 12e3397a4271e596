from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field


class CompressionConfig(BaseModel):
    """
    Per-call settings for producing a size-bounded copy of an asset.

    ``min_size_to_act_mb`` may be larger than ``max_target_mb``; in that case
    every file at or below the threshold is skipped and only files above both
    bounds are compressed.
    """

    max_target_mb: float = Field(
        default=15.0, gt=0, description="Upper bound for the compressed size in MB."
    )
    min_size_to_act_mb: float = Field(
        default=1.0,
        ge=0,
        description="Sources smaller than this are never compressed.",
    )
    target_ratio: float = Field(
        default=0.6,
        gt=0,
        lt=1,
        description="Fraction of the source size to aim for, capped by max_target_mb.",
    )
    on_progress: Optional[Callable[[float], None]] = Field(
        default=None,
        exclude=True,
        description="Called with progress values in [0, 1] while compressing.",
    )

    class Config:
        validate_assignment = True
        extra = "forbid"

    def settings(self) -> Dict[str, Any]:
        """Return the serialisable settings, without the progress callback."""
        return self.model_dump(mode="json")
