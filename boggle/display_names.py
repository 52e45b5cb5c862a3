import random
import re

# Curated word lists for generating friendly display names
ADJECTIVES = [
    'Happy', 'Clever', 'Brave', 'Swift', 'Mighty', 'Gentle', 'Wise', 'Cosmic',
    'Solar', 'Lunar', 'Electric', 'Magnetic', 'Quantum', 'Atomic', 'Stellar',
    'Crystal', 'Golden', 'Silver', 'Ruby', 'Emerald', 'Sapphire', 'Diamond',
    'Thunder', 'Lightning', 'Storm', 'Frost', 'Flame', 'Shadow', 'Light',
    'Ancient', 'Modern', 'Future', 'Mystic', 'Epic', 'Legendary', 'Noble',
    'Royal', 'Imperial', 'Astral', 'Celestial', 'Divine', 'Sacred',
    'Wild', 'Free', 'Bold', 'Fierce', 'Calm', 'Peaceful', 'Serene', 'Zen'
]

NOUNS = [
    'Panda', 'Tiger', 'Dragon', 'Phoenix', 'Eagle', 'Wolf', 'Bear', 'Lion',
    'Falcon', 'Hawk', 'Raven', 'Owl', 'Fox', 'Deer', 'Shark', 'Whale',
    'Dolphin', 'Orca', 'Penguin', 'Turtle', 'Koala', 'Lynx', 'Jaguar',
    'Panther', 'Cheetah', 'Leopard', 'Cougar', 'Bobcat', 'Ocelot', 'Puma',
    'Ninja', 'Samurai', 'Warrior', 'Knight', 'Wizard', 'Sage', 'Oracle',
    'Titan', 'Giant', 'Champion', 'Hero', 'Legend', 'Master', 'Sensei',
    'Star', 'Comet', 'Meteor', 'Nebula', 'Galaxy', 'Planet', 'Moon'
]

DISPLAY_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9\s\-_]+$')


def generate_display_name() -> str:
    """Generate a friendly display name like 'Cosmic Panda'"""
    adj = random.choice(ADJECTIVES)
    noun = random.choice(NOUNS)
    return f"{adj} {noun}"


def is_valid_display_name(name) -> bool:
    """3-30 characters of letters, digits, spaces, dashes or underscores."""
    if not name or not isinstance(name, str):
        return False
    trimmed = name.strip()
    if len(trimmed) < 3 or len(trimmed) > 30:
        return False
    return bool(DISPLAY_NAME_PATTERN.match(trimmed))
