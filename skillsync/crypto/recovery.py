"""
Eight-word recovery keys.

Each word is one byte: its index in a fixed 256-word list shared with every
other client of the service. The list order is part of the key format and
must never change.
"""

import os
import re

from skillsync.exceptions import MalformedRecoveryInputError
from skillsync.models.crypto import RecoveryKey

RECOVERY_WORD_COUNT = 8

WORDLIST: tuple[str, ...] = (
    "apple", "armor", "arrow", "badge", "baker", "beach", "beast", "berry",
    "blade", "blank", "blaze", "blend", "bless", "block", "bloom", "board",
    "bonus", "boost", "bound", "brain", "brand", "brave", "bread", "break",
    "brick", "brief", "bring", "broad", "brook", "brush", "build", "burst",
    "cabin", "cable", "camel", "candy", "cargo", "carry", "catch", "cause",
    "chain", "chair", "chalk", "charm", "chase", "cheap", "check", "chess",
    "chief", "child", "chill", "claim", "clamp", "clash", "class", "clean",
    "clear", "clerk", "click", "cliff", "climb", "clock", "close", "cloth",
    "cloud", "coach", "coast", "coral", "couch", "cover", "craft", "crane",
    "crash", "crawl", "cream", "creek", "crisp", "cross", "crowd", "crown",
    "crush", "curve", "cycle", "dance", "delta", "depot", "depth", "diary",
    "digit", "dodge", "draft", "drain", "drama", "drank", "dream", "dress",
    "drift", "drill", "drink", "drive", "drown", "drums", "dusty", "dwarf",
    "eagle", "earth", "elbow", "elder", "elite", "ember", "empty", "enemy",
    "enjoy", "enter", "equal", "error", "essay", "event", "exact", "exile",
    "exist", "extra", "fable", "faith", "fancy", "fault", "feast", "fence",
    "fetch", "fever", "fiber", "field", "fifth", "fifty", "fight", "final",
    "flair", "flame", "flash", "fleet", "flesh", "fling", "float", "flock",
    "flood", "floor", "flour", "fluid", "flush", "flute", "focus", "force",
    "forge", "forth", "forum", "found", "frame", "frank", "fresh", "frost",
    "fruit", "fuels", "giant", "glass", "gleam", "glide", "globe", "glory",
    "grace", "grade", "grain", "grand", "grant", "grape", "grasp", "grass",
    "grave", "great", "green", "greet", "grief", "grill", "grind", "group",
    "grove", "guard", "guess", "guest", "guide", "guilt", "habit", "happy",
    "harsh", "haste", "haven", "heart", "heavy", "hedge", "heist", "hello",
    "honor", "horse", "hotel", "house", "human", "humor", "ideal", "image",
    "index", "inner", "input", "intro", "issue", "ivory", "jelly", "jewel",
    "joint", "joker", "jolly", "judge", "juice", "jumbo", "kayak", "khaki",
    "knife", "knock", "label", "labor", "lance", "large", "laser", "latch",
    "later", "laugh", "layer", "learn", "lease", "leave", "legal", "lemon",
    "level", "lever", "light", "limit", "linen", "links", "liver", "llama",
    "local", "lodge", "logic", "lunar", "lunch", "maker", "manor", "maple",
)

_WORD_INDEX = {word: index for index, word in enumerate(WORDLIST)}
_SEPARATORS = re.compile(r"[-\s]+")


def generate_recovery_key() -> RecoveryKey:
    """Create a recovery key from 8 bytes of OS randomness."""
    data = os.urandom(RECOVERY_WORD_COUNT)
    return RecoveryKey(words=tuple(WORDLIST[b] for b in data), data=data)


def format_recovery_key(recovery_key: RecoveryKey) -> str:
    """Display form: upper-cased words joined by hyphens."""
    return "-".join(word.upper() for word in recovery_key.words)


def parse_recovery_key(text: str) -> RecoveryKey:
    """
    Parse user input back into a recovery key.

    Accepts any case and hyphen or whitespace separators.

    Args:
        text: Recovery key as typed by the user.

    Returns:
        The parsed RecoveryKey.

    Raises:
        MalformedRecoveryInputError: If the input is not exactly 8 known words.
    """
    words = [w for w in _SEPARATORS.split(text.strip().lower()) if w]
    if len(words) != RECOVERY_WORD_COUNT:
        msg = f"Recovery key must have {RECOVERY_WORD_COUNT} words, got {len(words)}"
        raise MalformedRecoveryInputError(msg, word_count=len(words))

    unknown = [w for w in words if w not in _WORD_INDEX]
    if unknown:
        msg = f"Unknown recovery word(s): {', '.join(unknown)}"
        raise MalformedRecoveryInputError(msg, word_count=len(words))

    return RecoveryKey(words=tuple(words), data=bytes(_WORD_INDEX[w] for w in words))
