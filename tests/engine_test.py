
import unittest
import sys
import os
import json
import shutil
import tempfile
import threading
from pathlib import Path
from unittest import mock

# Mock environment
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from mvmender.core.engine import MenderEngine, summarize

BROKEN_ACTORS = '[null,{"id":1 "name":"Harold","note":"he said "hi""}]'
VALID_ITEMS = '[null,{"id":1,"name":"Potion","note":""}]'
TRUNCATED_MAP = '{"a":1,"b":'


class EngineTestCase(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.data = self.test_dir / "data"
        self.data.mkdir()
        self.put("System.json", '{"gameTitle":"Test"}')
        self.put("Actors.json", BROKEN_ACTORS)
        self.put("Items.json", VALID_ITEMS)
        self.put("Map001.json", TRUNCATED_MAP)
        self.engine = MenderEngine(workspace_path=str(self.test_dir))

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def put(self, name, content):
        (self.data / name).write_text(content, encoding="utf-8")

    def read(self, name):
        return (self.data / name).read_text(encoding="utf-8")

    @staticmethod
    def stable(result):
        return {k: v for k, v in result.items() if k not in ("timestamp", "processing_time_seconds")}


class TestRepairFile(EngineTestCase):
    def test_find_data_files_is_sorted(self):
        files = self.engine.find_data_files()
        self.assertEqual([Path(f).name for f in files],
                         ["Actors.json", "Items.json", "Map001.json", "System.json"])

    def test_preview_leaves_file_untouched(self):
        result = self.engine.repair_file("data/Actors.json", dry_run=True)
        self.assertEqual(result["status"], "PREVIEW")
        self.assertTrue(result["success"])
        self.assertFalse(result["written"])
        self.assertEqual(self.read("Actors.json"), BROKEN_ACTORS)
        self.assertFalse((self.data / "Actors.json.bak").exists())
        repaired = json.loads(result["repaired_content"])
        self.assertEqual(repaired[1]["note"], 'he said "hi"')

    def test_repair_writes_backup_first(self):
        result = self.engine.repair_file("data/Actors.json", dry_run=False)
        self.assertEqual(result["status"], "REPAIRED")
        self.assertTrue(result["written"])
        self.assertEqual(result["backup_created"], os.path.join("data", "Actors.json.bak"))
        self.assertEqual((self.data / "Actors.json.bak").read_text(encoding="utf-8"), BROKEN_ACTORS)
        self.assertEqual(json.loads(self.read("Actors.json"))[1]["name"], "Harold")

    def test_backup_failure_blocks_write(self):
        with mock.patch.object(self.engine.fs, "create_backup", side_effect=IOError("read-only")):
            result = self.engine.repair_file("data/Actors.json", dry_run=False)
        self.assertEqual(result["status"], "BACKUP_ERROR")
        self.assertFalse(result["success"])
        self.assertFalse(result["written"])
        self.assertEqual(self.read("Actors.json"), BROKEN_ACTORS)

    def test_write_failure_keeps_backup(self):
        with mock.patch.object(self.engine.fs, "atomic_write", side_effect=IOError("disk full")):
            result = self.engine.repair_file("data/Actors.json", dry_run=False)
        self.assertEqual(result["status"], "WRITE_ERROR")
        self.assertIsNotNone(result["backup_created"])
        self.assertEqual(self.read("Actors.json"), BROKEN_ACTORS)

    def test_failed_repair_writes_nothing(self):
        result = self.engine.repair_file("data/Map001.json", dry_run=False)
        self.assertEqual(result["status"], "FAILED")
        self.assertFalse(result["written"])
        self.assertIn("Expecting value", result["original_error"])
        self.assertEqual(len(result["attempts"]), 2)
        self.assertFalse((self.data / "Map001.json.bak").exists())
        self.assertEqual(self.read("Map001.json"), TRUNCATED_MAP)

    def test_valid_file_is_unchanged(self):
        result = self.engine.repair_file("data/Items.json", dry_run=False)
        self.assertEqual(result["status"], "UNCHANGED")
        self.assertIsNone(result["repaired_content"])
        self.assertFalse((self.data / "Items.json.bak").exists())

    def test_error_statuses(self):
        self.put("Empty.json", "  \n")
        self.assertEqual(self.engine.repair_file("data/Nope.json")["status"], "FILE_NOT_FOUND")
        self.assertEqual(self.engine.repair_file("data/Empty.json")["status"], "EMPTY_FILE")
        self.assertEqual(self.engine.repair_file("../outside.json")["status"], "SECURITY_ERROR")

    def test_ignored_file(self):
        (self.test_dir / ".mvmender.yaml").write_text("rules:\n  ignore: ['Map*.json']\n", encoding="utf-8")
        engine = MenderEngine(workspace_path=str(self.test_dir))
        self.assertEqual(engine.repair_file("data/Map001.json")["status"], "IGNORED")
        self.assertNotIn(os.path.join("data", "Map001.json"), engine.find_data_files())

    def test_repair_text(self):
        result = self.engine.repair_text('{"a":1 "b":2}')
        self.assertEqual(result["status"], "PREVIEW")
        self.assertEqual(json.loads(result["repaired_content"]), {"a": 1, "b": 2})
        self.assertEqual(self.engine.repair_text("")["status"], "EMPTY_FILE")

    def test_output_dir_leaves_original_alone(self):
        result = self.engine.repair_file("data/Actors.json", dry_run=False, output_dir="fixed")
        self.assertEqual(result["status"], "REPAIRED")
        self.assertTrue(result["written"])
        self.assertIsNone(result["backup_created"])
        self.assertEqual(result["output_path"], os.path.join("fixed", "data", "Actors.json"))

        copy = self.test_dir / "fixed" / "data" / "Actors.json"
        self.assertEqual(json.loads(copy.read_text(encoding="utf-8"))[1]["name"], "Harold")
        self.assertEqual(self.read("Actors.json"), BROKEN_ACTORS)
        self.assertFalse((self.data / "Actors.json.bak").exists())

    def test_output_dir_skips_unchanged_and_failed_files(self):
        out = self.test_dir / "fixed"
        for name in ("Items.json", "Map001.json"):
            self.engine.repair_file(f"data/{name}", dry_run=False, output_dir=str(out))
        self.assertFalse(out.exists())


class TestBatchRepair(EngineTestCase):
    def test_batch_matches_sequential(self):
        paths = self.engine.find_data_files() * 5
        sequential = [self.stable(self.engine.repair_file(p)) for p in paths]
        batch = [self.stable(r) for r in self.engine.batch_repair(paths, workers=4)]
        self.assertEqual(batch, sequential)

    def test_batch_keeps_input_order(self):
        paths = ["data/Map001.json", "data/Actors.json", "data/Items.json"]
        results = self.engine.batch_repair(paths, workers=3)
        self.assertEqual([r["full_path"] for r in results], paths)

    def test_cancelled_batch_starts_nothing(self):
        cancel = threading.Event()
        cancel.set()
        results = self.engine.batch_repair(self.engine.find_data_files(), dry_run=False, cancel_event=cancel)
        self.assertTrue(all(r["status"] == "CANCELLED" for r in results))
        self.assertEqual(self.read("Actors.json"), BROKEN_ACTORS)

    def test_batch_repair_dir_writes(self):
        results = self.engine.batch_repair_dir(str(self.test_dir), dry_run=False)
        statuses = {Path(r["full_path"]).name: r["status"] for r in results}
        self.assertEqual(statuses, {
            "Actors.json": "REPAIRED",
            "Items.json": "UNCHANGED",
            "Map001.json": "FAILED",
            "System.json": "UNCHANGED",
        })


class TestSummarize(EngineTestCase):
    def test_counts(self):
        results = self.engine.batch_repair(self.engine.find_data_files())
        summary = summarize(results)
        self.assertEqual(summary["total_files"], 4)
        self.assertEqual(summary["repaired_files"], 1)
        self.assertEqual(summary["failed_files"], 1)
        self.assertEqual(summary["files_with_issues"], 2)
        self.assertEqual(summary["issues_by_kind"]["UnescapedQuote"], 2)
        self.assertEqual(summary["issues_by_kind"]["MissingComma"], 1)
        self.assertEqual(summary["total_issues"], summary["fixable_issues"] + summary["unfixable_issues"])


if __name__ == '__main__':
    unittest.main()
