
import unittest
import sys
import os
import json
from concurrent.futures import ThreadPoolExecutor

# Mock environment
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

import mvmender
from mvmender.models import IssueKind, RawDocument
from mvmender.core.config import RepairOptions
from mvmender.core.pipeline import RepairPipeline, ChainState, NO_STRATEGY
from mvmender.core.strategies import BracketBalanceStrategy


class TestValidInput(unittest.TestCase):
    def setUp(self):
        self.pipeline = RepairPipeline()

    def test_valid_documents_round_trip_untouched(self):
        docs = [
            '[null,{"id":1,"name":"Harold","note":""}]',
            '{\n  "gameTitle": "Test",\n  "switches": ["", "A"]\n}\n',
            '[]',
            '{"note":"a{b}c","x":1}',
        ]
        for doc in docs:
            with self.subTest(doc=doc):
                result = self.pipeline.repair(doc)
                self.assertTrue(result.success)
                self.assertEqual(result.final_text, doc)
                self.assertEqual(result.strategy_used, NO_STRATEGY)
                self.assertEqual(result.fixes_applied, ())
                self.assertFalse(result.changed)

    def test_braces_in_note_do_not_trigger_repairs(self):
        result = self.pipeline.repair('{"note":"a{b}c","x":1}')
        self.assertEqual(result.issues_of(IssueKind.UNBALANCED_BRACKET), [])
        self.assertEqual(result.attempted_strategies, ())


class TestPointRepairs(unittest.TestCase):
    def setUp(self):
        self.pipeline = RepairPipeline()

    def test_missing_comma_is_inserted(self):
        result = self.pipeline.repair('{"a":1 "b":2}')
        self.assertTrue(result.success)
        self.assertEqual(json.loads(result.final_text), {"a": 1, "b": 2})
        self.assertEqual(result.strategy_used, "PointPatch")
        self.assertEqual([f.kind for f in result.fixes_applied], [IssueKind.MISSING_COMMA])
        self.assertIn("Expecting ',' delimiter", result.original_error)

    def test_repair_is_idempotent(self):
        first = self.pipeline.repair('{"a":1 "b":2}')
        second = self.pipeline.repair(first.final_text)
        self.assertTrue(second.success)
        self.assertEqual(second.final_text, first.final_text)
        self.assertEqual(second.strategy_used, NO_STRATEGY)
        self.assertEqual(second.fixes_applied, ())

    def test_quotes_in_note_are_escaped(self):
        result = self.pipeline.repair('[null,{"id":1,"note":"he said "hi"","name":"x"}]')
        self.assertTrue(result.success)
        self.assertEqual(len(result.issues_of(IssueKind.UNESCAPED_QUOTE)), 2)
        data = json.loads(result.final_text)
        self.assertEqual(data[1]["note"], 'he said "hi"')
        self.assertEqual(data[1]["name"], "x")

    def test_leading_garbage_is_stripped(self):
        result = self.pipeline.repair("<pre>[1,2]")
        self.assertTrue(result.success)
        self.assertEqual(result.final_text, "[1,2]")

    def test_control_characters_fail_closed_by_default(self):
        result = self.pipeline.repair('["a\tb"]')
        self.assertFalse(result.success)
        self.assertEqual(len(result.issues_of(IssueKind.CONTROL_CHARACTER)), 1)

    def test_control_characters_escaped_when_enabled(self):
        pipeline = RepairPipeline(RepairOptions(escape_control_characters=True))
        result = pipeline.repair('["a\tb"]')
        self.assertTrue(result.success)
        self.assertEqual(json.loads(result.final_text), ["a\tb"])


class TestEscalation(unittest.TestCase):
    def setUp(self):
        self.pipeline = RepairPipeline()

    def test_point_patch_then_bracket_balance(self):
        result = self.pipeline.repair('{"a":1 "b":[1,2')
        self.assertTrue(result.success)
        self.assertEqual(result.strategy_used, "BracketBalance")
        self.assertEqual([a.name for a in result.attempted_strategies], ["PointPatch", "BracketBalance"])
        self.assertIsNotNone(result.attempted_strategies[0].error)
        self.assertTrue(result.attempted_strategies[0].changed)
        self.assertTrue(result.attempted_strategies[1].succeeded)
        self.assertEqual([f.kind for f in result.fixes_applied],
                         [IssueKind.MISSING_COMMA, IssueKind.UNBALANCED_BRACKET])
        self.assertEqual(json.loads(result.final_text), {"a": 1, "b": [1, 2]})

    def test_point_patch_declines_and_chain_moves_on(self):
        result = self.pipeline.repair('{"a":[1,2')
        self.assertTrue(result.success)
        self.assertEqual(result.final_text, '{"a":[1,2]}')
        first = result.attempted_strategies[0]
        self.assertEqual(first.name, "PointPatch")
        self.assertTrue(first.error.startswith("not applicable"))
        self.assertFalse(first.changed)

    def test_chain_skips_missing_strategies(self):
        pipeline = RepairPipeline(strategies={ChainState.BRACKET_BALANCE: BracketBalanceStrategy()})
        result = pipeline.repair('{"a":[1,2')
        self.assertTrue(result.success)
        self.assertEqual([a.name for a in result.attempted_strategies], ["BracketBalance"])


class TestFailureSurfacing(unittest.TestCase):
    def setUp(self):
        self.pipeline = RepairPipeline()

    def test_truncated_document_fails_with_history(self):
        result = self.pipeline.repair('{"a":1,"b":')
        self.assertFalse(result.success)
        self.assertIsNone(result.final_text)
        self.assertIsNone(result.strategy_used)
        self.assertIn("Expecting value", result.original_error)
        self.assertEqual([a.name for a in result.attempted_strategies], ["PointPatch", "BracketBalance"])
        self.assertTrue(all(a.error for a in result.attempted_strategies))
        self.assertFalse(result.changed)

    def test_truncation_inside_string_is_not_guessed(self):
        result = self.pipeline.repair('{"name":"Harold","title":"unfinished')
        self.assertFalse(result.success)
        self.assertIn("inside a string", result.attempted_strategies[-1].error)

    def test_lost_opening_bracket_is_not_papered_over(self):
        result = self.pipeline.repair('null,{"id":1,"name":"Harold"}]')
        self.assertFalse(result.success)
        self.assertIsNone(result.final_text)
        self.assertEqual(result.issues_of(IssueKind.LEADING_GARBAGE), [])
        self.assertFalse(any(f.kind is IssueKind.LEADING_GARBAGE for f in result.fixes_applied))

    def test_scalar_document_is_rejected(self):
        result = self.pipeline.repair('"hello"')
        self.assertFalse(result.success)
        self.assertIn("Top-level", result.original_error)

    def test_failure_serializes(self):
        data = self.pipeline.repair('{"a":1,"b":').to_dict()
        self.assertFalse(data["success"])
        self.assertEqual(len(data["attempted_strategies"]), 2)
        json.dumps(data)


class TestConcurrency(unittest.TestCase):
    SAMPLES = [
        '{"a":1 "b":2}',
        '[null,{"id":1,"note":"he said "hi"","name":"x"}]',
        '{"a":1 "b":[1,2',
        '{"a":1,"b":',
        '[1,2]]',
        '{"note":"a{b}c","x":1}',
        '<pre>[1,2]',
    ]

    def test_parallel_results_match_sequential(self):
        pipeline = RepairPipeline()
        docs = [(f"doc{i}.json", self.SAMPLES[i % len(self.SAMPLES)]) for i in range(100)]

        sequential = [pipeline.repair(text, origin).to_dict() for origin, text in docs]
        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(pipeline.repair, text, origin) for origin, text in docs]
            parallel = [f.result().to_dict() for f in futures]

        self.assertEqual(parallel, sequential)


class TestPackageEntryPoint(unittest.TestCase):
    def test_repair_function(self):
        result = mvmender.repair('{"a":1 "b":2}', origin="Actors.json")
        self.assertTrue(result.success)
        self.assertEqual(result.origin, "Actors.json")
        self.assertEqual(json.loads(result.final_text), {"a": 1, "b": 2})

    def test_repair_document_carries_origin(self):
        document = mvmender.RawDocument(text='{"a":1 "b":2}', origin="Actors.json")
        result = RepairPipeline().repair_document(document)
        self.assertTrue(result.success)
        self.assertEqual(result.origin, "Actors.json")
        self.assertEqual(result.to_dict(), RepairPipeline().repair(document.text, document.origin).to_dict())

    def test_raw_document_defaults_to_memory_origin(self):
        self.assertEqual(RawDocument("[]").origin, "<memory>")
        self.assertEqual(RepairPipeline().repair_document(RawDocument("[]")).origin, "<memory>")


if __name__ == '__main__':
    unittest.main()
