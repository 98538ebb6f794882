"""Tests for pure target-resolution helpers."""

from types import SimpleNamespace

import pytest

from chatwarden.commands.targets import (
    channel_name_candidates,
    extract_channel_name,
    find_role_by_name,
    find_voice_channel_by_name,
    ordered_unique,
    strip_mentions,
)


def _named(*names):
    return [SimpleNamespace(name=n) for n in names]


class TestStripMentions:
    def test_removes_user_role_and_channel_markup(self):
        text = "<@123> kick <@!456> from <@&789> in <#1011>"
        assert "<" not in strip_mentions(text)
        assert "kick" in strip_mentions(text)


class TestExtractChannelName:
    @pytest.mark.parametrize("text,keywords,expected", [
        ("move <@1> to General", ("to",), "General"),
        ("move everyone from General to Music", ("from", "in"), "General"),
        ("move everyone from General to Music", ("to",), "Music"),
        ("disconnect everyone in #Gaming Lounge", ("in", "from"), "Gaming Lounge"),
        ("<@99> move <@1> to the-lobby please", ("to",), "the-lobby please"),
        ("kick <@1>", ("to",), None),
        ("move everyone into General", ("in",), None),
    ])
    def test_extract(self, text, keywords, expected):
        assert extract_channel_name(text, keywords) == expected

    def test_case_insensitive_keyword(self):
        assert extract_channel_name("Move him TO Music", ("to",)) == "Music"

    def test_leading_keyword_does_not_hide_target(self):
        text = "<@1> I want you to move <@2> to Music"
        assert extract_channel_name(text, ("to",)) == "Music"

    def test_candidates_last_first(self):
        text = "I need to move everyone from General to Music"
        assert channel_name_candidates(text, ("to",)) == ["Music", "move everyone"]
        assert channel_name_candidates(text, ("from", "in")) == ["General"]


class TestFindRoleByName:
    def test_exact_match_wins_over_substring(self):
        roles = _named("Moderators", "Mod")
        assert find_role_by_name(roles, "mod").name == "Mod"

    def test_substring_fallback(self):
        roles = _named("Everyone", "Super Moderators")
        assert find_role_by_name(roles, "moderator").name == "Super Moderators"

    def test_not_found_or_blank(self):
        roles = _named("Admin")
        assert find_role_by_name(roles, "helper") is None
        assert find_role_by_name(roles, "  ") is None
        assert find_role_by_name(roles, None) is None


class TestFindVoiceChannelByName:
    def test_substring_either_direction(self):
        channels = _named("General", "Music")
        assert find_voice_channel_by_name(channels, "gen").name == "General"
        assert find_voice_channel_by_name(channels, "music please").name == "Music"

    def test_exact_match_preferred(self):
        channels = _named("Music Lounge", "Music")
        assert find_voice_channel_by_name(channels, "#music").name == "Music"

    def test_no_match(self):
        assert find_voice_channel_by_name(_named("General"), "Gaming") is None


class TestOrderedUnique:
    def test_keeps_order_and_excludes(self):
        assert ordered_unique([3, 1, 3, 2, 9], exclude=9) == [3, 1, 2]
