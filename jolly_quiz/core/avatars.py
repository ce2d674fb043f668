"""Avatar palette and assignment for joining players."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import random
from threading import Lock


@dataclass(frozen=True, slots=True)
class Avatar:
    id: str
    name: str
    emoji: str
    background_color: str
    accessory: str


AVATARS: tuple[Avatar, ...] = (
    Avatar("reindeer", "Reindeer", "\U0001F98C", "#8B4513", "Red nose"),
    Avatar("polar-bear", "Polar Bear", "\U0001F43B\u200d\u2744\ufe0f", "#E8F4F8", "Santa hat"),
    Avatar("penguin", "Penguin", "\U0001F427", "#1C1C1C", "Scarf"),
    Avatar("owl", "Snowy Owl", "\U0001F989", "#F5F5DC", "Earmuffs"),
    Avatar("fox", "Arctic Fox", "\U0001F98A", "#FF6B35", "Mittens"),
    Avatar("rabbit", "Snow Bunny", "\U0001F430", "#FFB6C1", "Bow"),
    Avatar("cat", "Cozy Cat", "\U0001F431", "#FFA500", "Sweater"),
    Avatar("dog", "Jolly Pup", "\U0001F436", "#D2691E", "Antlers"),
    Avatar("mouse", "Christmas Mouse", "\U0001F42D", "#C0C0C0", "Cheese gift"),
    Avatar("hedgehog", "Holly Hedgehog", "\U0001F994", "#8B7355", "Holly berries"),
    Avatar("seal", "Festive Seal", "\U0001F9AD", "#708090", "Bell collar"),
    Avatar("otter", "Merry Otter", "\U0001F9A6", "#5D4037", "Candy cane"),
    Avatar("squirrel", "Nutty Squirrel", "\U0001F43F\ufe0f", "#CD853F", "Acorn ornament"),
    Avatar("sloth", "Sleepy Sloth", "\U0001F9A5", "#9E9E6D", "Pajamas"),
    Avatar("koala", "Cuddly Koala", "\U0001F428", "#A0A0A0", "Eucalyptus wreath"),
    Avatar("panda", "Panda Claus", "\U0001F43C", "#2C2C2C", "Santa beard"),
)

_AVATARS_BY_ID = {avatar.id: avatar for avatar in AVATARS}


def get_avatar(avatar_id: str) -> Avatar | None:
    return _AVATARS_BY_ID.get(avatar_id)


class AvatarAssigner:
    """Picks random avatars, preferring ones nobody in the session uses yet."""

    def __init__(self, avatars: Iterable[Avatar] = AVATARS, seed: int | None = None):
        self._avatars = list(avatars)
        if not self._avatars:
            raise ValueError("Avatar palette cannot be empty.")
        self._lock = Lock()
        self._rng = random.Random(seed)

    def choose(self, used_avatar_ids: Iterable[str]) -> Avatar:
        used = set(used_avatar_ids)
        available = [avatar for avatar in self._avatars if avatar.id not in used]
        # Everything taken: duplicates are fine, joining must not fail.
        pool = available or self._avatars
        with self._lock:
            return self._rng.choice(pool)
