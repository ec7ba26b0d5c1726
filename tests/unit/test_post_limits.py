"""Friend-count to daily post allowance table."""

import pytest

from qaforum.limits.counter import CounterState, can_act
from qaforum.limits.policies import UNLIMITED, post_limit_for_friends


class TestPostLimitForFriends:
    @pytest.mark.parametrize(
        ("friends", "expected"),
        [(0, 0), (1, 1), (2, 2), (3, 1), (8, 1), (9, 1), (10, UNLIMITED), (250, UNLIMITED)],
    )
    def test_table(self, friends: int, expected: int):
        assert post_limit_for_friends(friends) == expected

    def test_negative_count_is_zero(self):
        assert post_limit_for_friends(-1) == 0


class TestCounterState:
    def test_can_act_below_max(self):
        assert can_act(CounterState(count=1, max_allowed=2))

    def test_cannot_act_at_max(self):
        assert not can_act(CounterState(count=2, max_allowed=2))

    def test_remaining_never_negative(self):
        """A lowered maximum can leave the count above it."""
        assert CounterState(count=2, max_allowed=1).remaining == 0
