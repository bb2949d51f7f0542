import unittest

from s3_purge.prompts import confirm


class ScriptedAnswers:
    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


class ConfirmTests(unittest.TestCase):
    def test_accepts_yes_and_no_tokens_case_insensitively(self):
        for answer, expected in (("y", True), ("YES", True), (" Yes ", True), ("n", False), ("No", False)):
            with self.subTest(answer=answer):
                self.assertEqual(expected, confirm("Delete?", read_line=ScriptedAnswers([answer]), write=lambda _: None))

    def test_reprompts_on_unrecognized_input(self):
        answers = ScriptedAnswers(["", "maybe", "yes"])
        output = []

        self.assertTrue(confirm("Delete bucket?", read_line=answers, write=output.append))
        self.assertEqual(["Delete bucket? [y/n]: "] * 3, answers.prompts)
        self.assertEqual(2, output.count("Please answer 'yes' or 'no'."))

    def test_end_of_input_declines(self):
        self.assertFalse(confirm("Delete?", read_line=ScriptedAnswers(["sure"]), write=lambda _: None))


if __name__ == "__main__":
    unittest.main()
