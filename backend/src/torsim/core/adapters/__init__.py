from .mapper import (
    EnemyOverrides,
    enemy_from_adversary,
    hero_from_dict,
    infer_size,
)

__all__ = [
    "EnemyOverrides",
    "enemy_from_adversary",
    "hero_from_dict",
    "infer_size",
]
