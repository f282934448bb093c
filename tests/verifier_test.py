
import unittest
import sys
import os

# Mock environment
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from mvmender.core.verifier import verify, parse


class TestVerifier(unittest.TestCase):
    def test_accepts_arrays_and_objects(self):
        self.assertTrue(verify("[1, 2]").ok)
        verdict = verify('{"a": [null]}')
        self.assertTrue(verdict.ok)
        self.assertEqual(verdict.value, {"a": [None]})
        self.assertIsNone(verdict.error)

    def test_rejects_scalars(self):
        for text in ('"hello"', "1", "null", "true"):
            with self.subTest(text=text):
                verdict = verify(text)
                self.assertFalse(verdict.ok)
                self.assertIn("Top-level", verdict.error)

    def test_rejects_javascript_constants(self):
        verdict = verify("[NaN, Infinity]")
        self.assertFalse(verdict.ok)
        self.assertIn("NaN", verdict.error)
        with self.assertRaises(ValueError):
            parse("[-Infinity]")

    def test_error_carries_position(self):
        verdict = verify('{"a":1\n "b":2}')
        self.assertFalse(verdict.ok)
        self.assertIn("line 2", verdict.error)
        self.assertEqual(verdict.offset, 8)

    def test_raw_control_characters_are_rejected(self):
        self.assertFalse(verify('["a\tb"]').ok)
        self.assertTrue(verify('["a\\tb"]').ok)


if __name__ == '__main__':
    unittest.main()
