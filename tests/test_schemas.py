import pytest

from songrank.schemas.songs import format_views


@pytest.mark.parametrize("views, expected", [
    (0, "0"),
    (999, "999"),
    (1_500, "1.5K"),
    (1_234_567, "1.23M"),
    (2_500_000_000, "2.50B"),
    (1_234_000_000_000, "1,234.00B"),
])
def test_format_views(views, expected):
    assert format_views(views) == expected
