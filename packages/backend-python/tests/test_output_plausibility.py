import unittest

from quotecraft_backend.plausibility import OutputPlausibilityChecker, check_output_plausibility
from quotecraft_backend.plausibility.output_checker import (
    LOW_ALNUM_DENSITY,
    REFUSAL_PHRASE,
    TOO_SHORT,
)


CHURCHILL = "Success is not final, failure is not fatal; it is courage that counts."


class OutputPlausibilityTests(unittest.TestCase):
    def setUp(self):
        self.checker = OutputPlausibilityChecker()

    def test_refusal_is_rejected(self):
        text = "I cannot create a quote for that request."
        self.assertTrue(self.checker.check(text))
        self.assertEqual(self.checker.diagnose(text), REFUSAL_PHRASE)

    def test_refusal_match_ignores_case(self):
        text = "I'M SORRY, I CAN'T help with that today, my friend."
        self.assertEqual(self.checker.diagnose(text), REFUSAL_PHRASE)

    def test_tiny_output_is_rejected(self):
        self.assertTrue(self.checker.check("ok"))
        self.assertEqual(self.checker.diagnose("Be yourself always."), TOO_SHORT)

    def test_symbol_noise_is_rejected(self):
        self.assertTrue(self.checker.check("####$$$%%%^^^&&&"))
        self.assertEqual(self.checker.diagnose("#### $$$$ %%%% ^^^^ &&&& a"), LOW_ALNUM_DENSITY)

    def test_density_needs_more_than_ten_characters(self):
        self.assertFalse(self.checker.check("## ## ## #"))
        self.assertTrue(self.checker.check("## ## ## ##"))

    def test_single_long_word_is_not_too_short(self):
        self.assertFalse(self.checker.check("Supercalifragilisticexpialidocious!!"))

    def test_four_short_words_pass(self):
        self.assertFalse(self.checker.check("Keep going, never stop."))

    def test_real_quote_is_accepted(self):
        self.assertFalse(self.checker.check(CHURCHILL))
        self.assertIsNone(self.checker.diagnose(CHURCHILL))

    def test_verdict_is_stable_across_calls(self):
        self.assertEqual(self.checker.check(CHURCHILL), self.checker.check(CHURCHILL))
        self.assertEqual(self.checker.check("ok"), self.checker.check("ok"))

    def test_refusal_phrases_are_injectable(self):
        text = "As an AI, I have no opinions on quotes at all."
        custom = OutputPlausibilityChecker(refusal_phrases=["As an AI"])
        self.assertFalse(self.checker.check(text))
        self.assertTrue(custom.check(text))

    def test_module_level_helper(self):
        self.assertTrue(check_output_plausibility("could not generate a quote, sorry about that friend"))
        self.assertFalse(check_output_plausibility(CHURCHILL))


if __name__ == "__main__":
    unittest.main()
