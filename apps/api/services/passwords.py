"""Credential hashing and memorable passphrase generation."""

from __future__ import annotations

import random
import re
import secrets
from typing import Optional

import bcrypt

from config import settings


# 129 words -> 3 * log2(129) + log2(9) ~= 24.2 bits per generated passphrase.
PASSPHRASE_WORDS = (
    "Apple", "Anchor", "Bear", "Bird", "Bridge", "Cactus", "Castle", "Cloud", "Comet", "Cost",
    "Craving", "Crown", "Dolphin", "Eagle", "Echo", "Falcon", "Feast", "Fire", "Flower",
    "Forest", "Fox", "Garden", "Ghost", "Giant", "Globe", "Goat", "Grape", "Hawk", "Hill",
    "Honey", "Horse", "House", "Island", "Jelly", "Joy", "King", "Kite", "Koala", "Lake", "Leaf",
    "Lemon", "Lettuce", "Light", "Lime", "Lion", "Llama", "Luck", "Luna", "Mango", "Maple",
    "Melon", "Mint", "Moon", "Moose", "Moss", "Mountain", "Mouse", "Night", "Nova", "Ocean",
    "Oink", "Olive", "Onion", "Otter", "Owl", "Panda", "Paralyses", "Peach", "Pearl", "Penguin",
    "Pine", "Pizza", "Planet", "Plum", "Polar", "Pond", "Pool", "Prize", "Pug", "Quest", "Rain",
    "Raven", "Reef", "River", "Robot", "Rocket", "Rose", "Ruby", "Sage", "Sand", "Sea", "Seal",
    "Shark", "Sheep", "Shell", "Ship", "Sky", "Snow", "Solar", "Spark", "Star", "Stone", "Storm",
    "Sun", "Swan", "Swift", "Taco", "Tiger", "Toast", "Tower", "Tree", "Tulip", "Turtle",
    "Valley", "View", "Vine", "Wave", "Whale", "Wind", "Wish", "Wolf", "Wood", "Wool", "World",
    "Worm", "Wren", "Yard", "Zebra", "Zen",
)

PASSPHRASE_PATTERN = re.compile(r"^[A-Z][a-z]+[1-9]#[A-Z][a-z]+#[A-Z][a-z]+$")


def generate_password(rng: Optional[random.Random] = None) -> str:
    """Return `Word<digit>#Word#Word`; words are drawn with replacement."""
    chooser = rng or secrets.SystemRandom()
    first = chooser.choice(PASSPHRASE_WORDS)
    digit = chooser.randint(1, 9)
    second = chooser.choice(PASSPHRASE_WORDS)
    third = chooser.choice(PASSPHRASE_WORDS)
    return f"{first}{digit}#{second}#{third}"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=int(settings.BCRYPT_ROUNDS))
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password hash; malformed hashes never verify."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False
