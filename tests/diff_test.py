
import unittest
import sys
import os
import io
import time

# Mock environment
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from rich.console import Console

from mvmender.ui.diff import DiffEngine, changed_regions


def items_json(count=3000, missing=()):
    """Single-line Items.json; commas before the ids in `missing` are dropped."""
    text = "["
    for idx in range(1, count + 1):
        if idx > 1 and idx not in missing:
            text += ","
        text += f'{{"id":{idx},"name":"Item {idx}","description":"A perfectly ordinary item","note":""}}'
    return text + "]"


class TestChangedRegions(unittest.TestCase):
    def test_inserted_commas_in_large_single_line_file(self):
        broken = items_json(missing=(50, 2900))
        repaired = items_json()
        self.assertGreater(len(broken), 150000)

        start = time.time()
        regions = list(changed_regions(broken, repaired))
        self.assertLess(time.time() - start, 5.0)

        first = broken.index('{"id":50,')
        second = broken.index('{"id":2900,')
        self.assertEqual([(i1, i2) for i1, i2, _, _ in regions], [(first, first), (second, second)])
        for _, _, j1, j2 in regions:
            self.assertEqual(repaired[j1:j2], ",")

    def test_replaced_control_character(self):
        self.assertEqual(list(changed_regions('["a\tb"]', '["a\\tb"]')), [(3, 4, 3, 5)])

    def test_appended_closers(self):
        self.assertEqual(list(changed_regions('{"a":[1,2', '{"a":[1,2]}')), [(9, 9, 9, 11)])

    def test_identical_text_has_no_regions(self):
        self.assertEqual(list(changed_regions("[1,2]", "[1,2]")), [])


class TestRenderDiff(unittest.TestCase):
    def render(self, original, repaired):
        buf = io.StringIO()
        out = Console(file=buf, width=200, color_system=None)
        DiffEngine.render_diff(original, repaired, "Items.json", out=out)
        return buf.getvalue()

    def test_single_line_file_shows_windows(self):
        broken = items_json(missing=(50, 2900))
        output = self.render(broken, items_json())
        for marker in ('{"id":50,', '{"id":2900,'):
            self.assertIn(f"@@ offset {broken.index(marker)} @@", output)

    def test_multi_line_file_shows_unified_diff(self):
        output = self.render('{\n  "a": 1\n  "b": 2\n}\n', '{\n  "a": 1,\n  "b": 2\n}\n')
        self.assertIn("+++ Repaired", output)
        self.assertIn('+  "a": 1,', output)

    def test_no_changes(self):
        self.assertIn("No changes", self.render("[1]", "[1]"))


if __name__ == '__main__':
    unittest.main()
