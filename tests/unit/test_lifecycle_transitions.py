"""Game status transition table."""

from __future__ import annotations

import pytest

from devwars.db.models import GameStatus
from devwars.errors import InvalidTransition
from devwars.games.lifecycle import VALID_TRANSITIONS, validate_transition


class TestValidateTransition:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (GameStatus.SCHEDULED, GameStatus.ACTIVE),
            (GameStatus.SCHEDULED, GameStatus.ENDED),
            (GameStatus.ACTIVE, GameStatus.ENDED),
            (GameStatus.ENDED, GameStatus.ACTIVE),
        ],
    )
    def test_allowed(self, current, target):
        validate_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (GameStatus.ACTIVE, GameStatus.SCHEDULED),
            (GameStatus.ENDED, GameStatus.SCHEDULED),
            (GameStatus.ACTIVE, GameStatus.ACTIVE),
        ],
    )
    def test_rejected(self, current, target):
        with pytest.raises(InvalidTransition) as exc:
            validate_transition(current, target)
        assert exc.value.status_code == 400
        assert current.value in exc.value.message

    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(GameStatus)
