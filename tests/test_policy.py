"""Tests for engagement level → frequency band mapping."""

import pytest

from diplomat.mediator.policy import Band, band_for, policy_for


@pytest.mark.parametrize(
    ("level", "band"),
    [
        (1, Band.MINIMAL),
        (2, Band.MINIMAL),
        (3, Band.LOW),
        (4, Band.LOW),
        (5, Band.BALANCED),
        (6, Band.BALANCED),
        (7, Band.ACTIVE),
        (8, Band.ACTIVE),
        (9, Band.VERY_DIRECTIVE),
        (10, Band.VERY_DIRECTIVE),
    ],
)
def test_band_boundaries(level: int, band: Band) -> None:
    assert band_for(level) is band


def test_out_of_range_is_clamped() -> None:
    assert band_for(0) is Band.MINIMAL
    assert band_for(-7) is Band.MINIMAL
    assert band_for(11) is Band.VERY_DIRECTIVE
    assert band_for(99) is Band.VERY_DIRECTIVE


def test_bands_monotonic_in_level() -> None:
    bands = [band_for(level) for level in range(1, 11)]
    assert bands == sorted(bands)
    assert set(bands) == set(Band)


def test_policy_renders_level_and_directive() -> None:
    policy = policy_for(7)
    text = policy.render()
    assert text.startswith("INTERACTION LEVEL: ACTIVE (7/10).")
    assert policy.directive in text


def test_policy_reports_clamped_level() -> None:
    assert policy_for(42).level == 10
    assert "VERY DIRECTIVE (10/10)" in policy_for(42).render()


def test_each_band_has_distinct_directive() -> None:
    directives = {policy_for(level).directive for level in (1, 3, 5, 7, 9)}
    assert len(directives) == 5
