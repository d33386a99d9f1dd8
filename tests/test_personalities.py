"""Tests for personas and their directives."""

import pytest

from troll.personalities import PERSONALITIES, get_personality, get_personality_directives


def test_all_personas_present():
    assert set(PERSONALITIES) == {"assistant", "pirate", "murderbot", "good_boy", "overlord", "valley_girl"}


def test_unknown_key_falls_back_to_assistant():
    assert get_personality("nope") is PERSONALITIES["assistant"]
    assert get_personality(None) is PERSONALITIES["assistant"]


@pytest.mark.parametrize("key", sorted(PERSONALITIES))
def test_directives_name_the_persona(key):
    persona = PERSONALITIES[key]
    text = get_personality_directives(key)
    assert text.startswith(persona.directives)
    assert f"YOU ARE {persona.label.upper()}:" in text
    assert f"unless you ARE {persona.label}" not in text


def test_other_personas_vocabulary_is_banned():
    text = get_personality_directives("pirate")
    assert "Do not use dog references (woof, fetch, good boy, etc.) unless you ARE The Good Boy" in text
    assert "unless you ARE The Overlord" in text
    assert "pirate language" not in text
