import random
from typing import Tuple
from pydantic import BaseModel, ConfigDict

class User(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(frozen=True)  # Les utilisateurs de démo ne sont jamais modifiés

# Données statiques (pas de persistance)
DEMO_USERS: Tuple[User, ...] = (
    User(id=1, name="Alice"),
    User(id=2, name="Bob"),
)

# Source d'aléatoire unique pour tout le process
ID_OFFSET = 3
ID_SPAN = 1000
random_source = random.Random()


def get_random() -> random.Random:
    return random_source


def new_user_id(rng: random.Random) -> int:
    """Tire un id dans [ID_OFFSET, ID_OFFSET + ID_SPAN - 1]"""
    return rng.randrange(ID_SPAN) + ID_OFFSET
