"""Tests for rendition ladder selection."""

import pytest

from hls_pipeline.ladder import select_ladder, source_tier


def names(ladder):
    return [spec.name for spec in ladder]


@pytest.mark.parametrize(
    "height, expected",
    [
        (4320, ["1080p", "480p", "240p"]),
        (2160, ["1080p", "480p", "240p"]),
        (2159, ["720p", "480p", "240p"]),
        (1080, ["720p", "480p", "240p"]),
        (1079, ["480p", "240p"]),
        (720, ["480p", "240p"]),
        (719, ["240p"]),
        (480, ["240p"]),
        (479, []),
        (360, []),
        (0, []),
    ],
)
def test_select_ladder_thresholds(height, expected):
    assert names(select_ladder(height)) == expected


def test_select_ladder_bitrates():
    assert [spec.bitrate for spec in select_ladder(2160)] == [4_000_000, 1_500_000, 400_000]
    assert [spec.bitrate for spec in select_ladder(1080)] == [2_500_000, 1_500_000, 400_000]


def test_select_ladder_is_deterministic():
    assert select_ladder(1080) == select_ladder(1080)
    assert select_ladder(1080) is select_ladder(1440)


@pytest.mark.parametrize("height", [480, 720, 1080, 2160, 5000])
def test_bitrates_strictly_decrease(height):
    bitrates = [spec.bitrate for spec in select_ladder(height)]
    assert all(a > b for a, b in zip(bitrates, bitrates[1:]))


@pytest.mark.parametrize("height", [480, 720, 1080, 2160])
def test_renditions_never_exceed_source(height):
    assert all(spec.height <= height for spec in select_ladder(height))


def test_source_tier():
    assert source_tier(2160) == "4k"
    assert source_tier(1080) == "1080p"
    assert source_tier(720) == "720p"
    assert source_tier(480) == "480p"
    assert source_tier(479) is None
