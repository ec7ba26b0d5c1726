"""Vote state machine: none/up/down with toggle semantics."""

import pytest

from qaforum.errors import ValidationError
from qaforum.qa.voting import next_state, parse_direction


class TestParseDirection:
    def test_known_values(self):
        assert parse_direction("upvote") == "up"
        assert parse_direction("downvote") == "down"

    @pytest.mark.parametrize("value", ["up", "UPVOTE", "", "sidevote"])
    def test_unknown_value_rejected(self, value: str):
        with pytest.raises(ValidationError):
            parse_direction(value)


class TestNextState:
    def test_fresh_vote(self):
        assert next_state(None, "up") == "up"
        assert next_state(None, "down") == "down"

    def test_same_direction_clears(self):
        assert next_state("up", "up") is None
        assert next_state("down", "down") is None

    def test_opposite_direction_replaces(self):
        assert next_state("down", "up") == "up"
        assert next_state("up", "down") == "down"
