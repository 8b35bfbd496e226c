"""Rendition ladder selection."""

from typing import Optional, Tuple

from hls_pipeline.data_models import RenditionSpec

R1080 = RenditionSpec("1080p", 4_000_000)
R720 = RenditionSpec("720p", 2_500_000)
R480 = RenditionSpec("480p", 1_500_000)
R240 = RenditionSpec("240p", 400_000)

# (minimum source height, tier label, ladder) checked top to bottom
LADDER_TIERS: Tuple[Tuple[int, str, Tuple[RenditionSpec, ...]], ...] = (
    (2160, "4k", (R1080, R480, R240)),
    (1080, "1080p", (R720, R480, R240)),
    (720, "720p", (R480, R240)),
    (480, "480p", (R240,)),
)


def source_tier(source_height: int) -> Optional[str]:
    """Tier label for a source height, or None below 480 lines."""
    for min_height, label, _ in LADDER_TIERS:
        if source_height >= min_height:
            return label
    return None


def select_ladder(source_height: int) -> Tuple[RenditionSpec, ...]:
    """
    Renditions to produce for a source of the given height.

    Ordered highest to lowest bitrate. Empty when the source is too small.
    """
    for min_height, _, ladder in LADDER_TIERS:
        if source_height >= min_height:
            return ladder
    return ()
