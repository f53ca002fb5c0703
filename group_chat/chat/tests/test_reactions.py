import pytest

from group_chat.chat.exceptions import ReactionInvariantError
from group_chat.chat.exceptions import ValidationError
from group_chat.chat.reactions import ReactionToggle
from group_chat.chat.reactions import apply_toggle
from group_chat.chat.reactions import check_reactions
from group_chat.chat.reactions import normalize_reactions

THUMBS = "👍"
HEART = "❤️"


class TestApplyToggle:
    def test_new_emoji_creates_entry(self):
        assert apply_toggle({}, THUMBS, "bob") == {THUMBS: ["bob"]}

    def test_second_user_is_appended(self):
        reactions = apply_toggle({THUMBS: ["bob"]}, THUMBS, "carol")
        assert reactions == {THUMBS: ["bob", "carol"]}

    def test_removing_last_user_drops_the_emoji(self):
        assert apply_toggle({THUMBS: ["bob"]}, THUMBS, "bob") == {}

    def test_removal_keeps_remaining_order(self):
        reactions = apply_toggle({THUMBS: ["bob", "carol", "dave"]}, THUMBS, "carol")
        assert reactions == {THUMBS: ["bob", "dave"]}

    def test_other_emojis_untouched(self):
        reactions = apply_toggle({HEART: ["alice"], THUMBS: ["bob"]}, THUMBS, "bob")
        assert reactions == {HEART: ["alice"]}

    def test_input_is_not_mutated(self):
        current = {THUMBS: ["bob"]}
        apply_toggle(current, THUMBS, "carol")
        apply_toggle(current, THUMBS, "bob")
        assert current == {THUMBS: ["bob"]}

    @pytest.mark.parametrize(
        "current",
        [
            {},
            {THUMBS: ["bob"]},
            {THUMBS: ["alice", "bob"]},
            {THUMBS: ["alice"], HEART: ["bob", "carol"]},
        ],
    )
    @pytest.mark.parametrize(("emoji", "username"), [(THUMBS, "bob"), (HEART, "zoe")])
    def test_toggling_twice_restores_original(self, current, emoji, username):
        once = apply_toggle(current, emoji, username)
        twice = apply_toggle(once, emoji, username)
        assert twice == current

    def test_toggling_twice_restores_the_same_set_of_names(self):
        current = {THUMBS: ["bob", "alice"]}
        twice = apply_toggle(apply_toggle(current, THUMBS, "bob"), THUMBS, "bob")
        assert twice.keys() == current.keys()
        assert set(twice[THUMBS]) == set(current[THUMBS])

    def test_never_leaves_empty_entries(self):
        reactions = {}
        for username in ["a", "b", "a", "c", "b", "c"]:
            reactions = apply_toggle(reactions, THUMBS, username)
            assert all(reactions.values())
        assert reactions == {}

    def test_scenario_bob_then_carol_then_bob_off(self):
        reactions = apply_toggle({}, THUMBS, "bob")
        reactions = apply_toggle(reactions, THUMBS, "carol")
        assert reactions == {THUMBS: ["bob", "carol"]}
        reactions = apply_toggle(reactions, THUMBS, "bob")
        assert reactions == {THUMBS: ["carol"]}


class TestCheckReactions:
    def test_valid_set_passes(self):
        check_reactions({THUMBS: ["bob", "carol"], HEART: ["alice"]})

    def test_empty_entry_rejected(self):
        with pytest.raises(ReactionInvariantError):
            check_reactions({THUMBS: []})

    def test_duplicate_name_rejected(self):
        with pytest.raises(ReactionInvariantError):
            check_reactions({THUMBS: ["bob", "bob"]})

    def test_string_instead_of_list_rejected(self):
        with pytest.raises(ReactionInvariantError):
            check_reactions({THUMBS: "bob"})

    def test_blank_emoji_rejected(self):
        with pytest.raises(ReactionInvariantError):
            check_reactions({"": ["bob"]})

    @pytest.mark.parametrize("users", [[["bob"]], [{"name": "bob"}], [1], ["bob", ""]])
    def test_non_string_user_rejected(self, users):
        with pytest.raises(ReactionInvariantError, match="Invalid user"):
            check_reactions({THUMBS: users})

    def test_is_a_value_error(self):
        with pytest.raises(ValueError, match="Empty user list"):
            check_reactions({THUMBS: []})


class TestNormalizeReactions:
    @pytest.mark.parametrize("raw", [None, {}, [], "nope"])
    def test_empty_or_garbage(self, raw):
        assert normalize_reactions(raw) == {}

    def test_drops_empty_and_duplicates(self):
        raw = {THUMBS: ["bob", "bob", "carol"], HEART: [], "🎉": "dave"}
        assert normalize_reactions(raw) == {
            THUMBS: ["bob", "carol"],
            "🎉": ["dave"],
        }


class TestReactionToggleFromPayload:
    def test_parses_payload(self):
        toggle = ReactionToggle.from_payload(
            {"messageId": 7, "emoji": THUMBS, "username": " bob "},
        )
        assert toggle == ReactionToggle(message_id=7, emoji=THUMBS, username="bob")

    @pytest.mark.parametrize("message_id", [7, "7", " 7 ", "07"])
    def test_message_id_spellings_resolve_to_one_id(self, message_id):
        toggle = ReactionToggle.from_payload(
            {"messageId": message_id, "emoji": THUMBS, "username": "bob"},
        )
        assert toggle.message_id == 7

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            "add",
            {},
            {"emoji": THUMBS, "username": "bob"},
            {"messageId": "1", "username": "bob"},
            {"messageId": "1", "emoji": THUMBS},
            {"messageId": "1", "emoji": THUMBS, "username": "   "},
            {"messageId": True, "emoji": THUMBS, "username": "bob"},
            {"messageId": " ", "emoji": THUMBS, "username": "bob"},
            {"messageId": "abc", "emoji": THUMBS, "username": "bob"},
            {"messageId": 1.5, "emoji": THUMBS, "username": "bob"},
        ],
    )
    def test_rejects_incomplete_payloads(self, payload):
        with pytest.raises(ValidationError):
            ReactionToggle.from_payload(payload)
