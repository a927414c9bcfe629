"""DB migration smoke test."""
import os
import sqlite3
import tempfile
import unittest

from investigation.db.migrate import apply_schema


class TestMigrate(unittest.TestCase):
    def test_apply_schema_idempotent(self):
        with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
            path = f.name
        try:
            self.assertEqual(apply_schema(path), ["0001_init"])
            self.assertEqual(apply_schema(path), [])
            conn = sqlite3.connect(path)
            cur = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name IN ('save_slots', 'schema_migrations')"
            )
            tables = {r[0] for r in cur.fetchall()}
            conn.close()
            self.assertIn("save_slots", tables)
            self.assertIn("schema_migrations", tables)
        finally:
            if os.path.exists(path):
                os.unlink(path)
