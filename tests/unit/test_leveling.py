import pytest

from nightowl.rules.leveling import (
    derive_level,
    level_progress,
    level_threshold,
    xp_for_next_level,
)


class TestLevelCurve:
    def test_xp_for_next_level_follows_power_curve(self):
        assert xp_for_next_level(1) == 100
        assert xp_for_next_level(2) == 282
        assert xp_for_next_level(3) == 519
        assert xp_for_next_level(4) == 800

    def test_level_one_starts_at_zero(self):
        assert level_threshold(1) == 0
        assert level_threshold(2) == 100

    @pytest.mark.parametrize(
        "total_xp, expected",
        [(0, 1), (99, 1), (100, 2), (281, 2), (282, 3), (519, 4), (799, 4), (800, 5)],
    )
    def test_derive_level(self, total_xp, expected):
        assert derive_level(total_xp) == expected

    def test_threshold_round_trips_through_derive_level(self):
        for level in range(1, 60):
            assert derive_level(level_threshold(level)) == level

    def test_level_never_decreases_as_xp_grows(self):
        levels = [derive_level(xp) for xp in range(0, 5000, 7)]
        assert levels == sorted(levels)


class TestLevelProgress:
    def test_progress_inside_level(self):
        progress = level_progress(150)
        assert progress == {
            "level": 2,
            "xp_into_level": 50,
            "xp_to_next_level": 132,
            "progress_percent": 27,
        }

    def test_progress_at_exact_threshold(self):
        progress = level_progress(100)
        assert progress["level"] == 2
        assert progress["xp_into_level"] == 0
        assert progress["progress_percent"] == 0
