import random

import pytest

from americano.models import Player

NAMES = ["Anna", "Ben", "Carla", "David", "Elena", "Felix", "Gina", "Hugo",
         "Ines", "Jonas", "Kira", "Luca", "Mia", "Noah", "Olga", "Paul", "Rosa"]


def make_players(n):
    return [Player(id=f"p{i:02d}", name=NAMES[i]) for i in range(n)]


@pytest.fixture
def rng():
    return random.Random(1234)
