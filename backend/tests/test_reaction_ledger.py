import unittest

from studygroup.services.reaction_ledger import normalize_reactions, toggle_reaction


class TestReactionLedger(unittest.TestCase):

    def test_toggle_adds_reactor_and_symbol(self):
        result = toggle_reaction({}, "👍", "alice")
        self.assertEqual(result, {"👍": ["alice"]})

    def test_toggle_twice_restores_empty_mapping(self):
        once = toggle_reaction({}, "👍", "alice")
        twice = toggle_reaction(once, "👍", "alice")
        self.assertEqual(twice, {})
        self.assertNotIn("👍", twice)

    def test_toggle_twice_restores_existing_entry(self):
        original = {"👍": ["bob"], "❤️": ["charlie"]}
        once = toggle_reaction(original, "👍", "alice")
        self.assertEqual(once["👍"], ["bob", "alice"])
        self.assertEqual(toggle_reaction(once, "👍", "alice"), original)

    def test_input_is_not_mutated(self):
        original = {"👍": ["bob"]}
        toggle_reaction(original, "👍", "bob")
        self.assertEqual(original, {"👍": ["bob"]})

    def test_no_symbol_is_ever_left_empty(self):
        reactions = {}
        sequence = [
            ("👍", "alice"), ("👍", "bob"), ("😂", "alice"),
            ("👍", "alice"), ("😂", "alice"), ("👍", "bob"), ("😮", "diana"),
        ]
        for emoji, user in sequence:
            reactions = toggle_reaction(reactions, emoji, user)
            for users in reactions.values():
                self.assertTrue(users)
        self.assertEqual(reactions, {"😮": ["diana"]})

    def test_normalize_drops_empty_and_duplicate_reactors(self):
        cleaned = normalize_reactions({"👍": ["alice", "alice", "bob"], "❤️": [], "": ["x"]})
        self.assertEqual(cleaned, {"👍": ["alice", "bob"]})


if __name__ == "__main__":
    unittest.main()
