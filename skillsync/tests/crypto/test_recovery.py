"""Tests for eight-word recovery keys."""

import pytest

from skillsync.crypto.recovery import (
    RECOVERY_WORD_COUNT,
    WORDLIST,
    format_recovery_key,
    generate_recovery_key,
    parse_recovery_key,
)
from skillsync.exceptions import MalformedRecoveryInputError


def test_wordlist_has_256_unique_words() -> None:
    assert len(WORDLIST) == 256
    assert len(set(WORDLIST)) == 256


def test_generated_key_has_eight_words_matching_its_bytes() -> None:
    key = generate_recovery_key()

    assert len(key.words) == RECOVERY_WORD_COUNT
    assert len(key.data) == RECOVERY_WORD_COUNT
    assert key.words == tuple(WORDLIST[b] for b in key.data)


def test_format_is_uppercase_and_hyphenated() -> None:
    key = parse_recovery_key("apple armor arrow badge baker beach beast berry")

    assert format_recovery_key(key) == "APPLE-ARMOR-ARROW-BADGE-BAKER-BEACH-BEAST-BERRY"


def test_parse_maps_words_to_their_index() -> None:
    key = parse_recovery_key("apple armor arrow badge baker beach beast maple")

    assert key.data == bytes([0, 1, 2, 3, 4, 5, 6, 255])


@pytest.mark.parametrize(
    "text",
    [
        "APPLE-ARMOR-ARROW-BADGE-BAKER-BEACH-BEAST-BERRY",
        "  apple armor  arrow\tbadge baker beach beast berry ",
        "Apple-armor ARROW badge-baker beach beast berry",
    ],
)
def test_parse_accepts_any_case_and_separator(text: str) -> None:
    key = parse_recovery_key(text)

    assert key.data == bytes(range(8))


def test_parse_then_format_round_trips_generated_key() -> None:
    key = generate_recovery_key()

    assert parse_recovery_key(format_recovery_key(key)).data == key.data


def test_parse_rejects_wrong_word_count() -> None:
    with pytest.raises(MalformedRecoveryInputError) as exc_info:
        parse_recovery_key("apple armor arrow")

    assert exc_info.value.word_count == 3


def test_parse_rejects_unknown_words() -> None:
    with pytest.raises(MalformedRecoveryInputError, match="zebra"):
        parse_recovery_key("apple armor arrow badge baker beach beast zebra")


def test_recovery_key_repr_hides_words() -> None:
    key = parse_recovery_key("apple armor arrow badge baker beach beast berry")

    assert "apple" not in repr(key)
