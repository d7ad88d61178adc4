import pytest
from challist.errors import InvalidRank, ValidationError
from challist.services.scoring import linear_points, percent_points, points, round_half_up

def test_three_level_list():
    assert [points(p, 3) for p in (1, 2, 3)] == [150, 76, 1]

@pytest.mark.parametrize("n", [2, 3, 10, 149, 150, 151, 400])
def test_endpoints(n):
    m = min(n, 150)
    assert points(1, n) == 150
    assert points(m, n) == 1

def test_single_level_list():
    assert points(1, 1) == 150
    assert percent_points(1, 1) == 100

def test_monotonic_non_increasing():
    for n in (5, 37, 150, 200):
        values = [points(p, n) for p in range(1, n + 1)]
        assert values == sorted(values, reverse=True)

def test_outside_scored_window_is_zero():
    assert linear_points(151, 200) == 0
    assert linear_points(200, 200) == 0
    # drifted placement past the end of the list
    assert linear_points(5, 3) == 0
    assert percent_points(5, 3) == 0

def test_percent_strategy():
    assert [points(p, 3, "percent") for p in (1, 2, 3)] == [100, 51, 1]
    assert points(1, 100, "percent") == 100
    assert points(100, 100, "percent") == 1

def test_round_half_up_not_bankers():
    assert round_half_up(75.5) == 76
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2

def test_invalid_rank():
    with pytest.raises(InvalidRank):
        points(0, 3)
    with pytest.raises(InvalidRank):
        points(-1, 3, "percent")

def test_unknown_strategy():
    with pytest.raises(ValidationError):
        points(1, 3, "exponential")
