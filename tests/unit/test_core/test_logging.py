# SPDX-License-Identifier: LGPL-3.0-or-later
import json
import logging
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

from mntkeeper.core.logger import TRACE, AuditFormatter, JsonFormatter, Log
from mntkeeper.core.logging_utils import log_step


class TestLogSetup(unittest.TestCase):
    def tearDown(self):
        logger = logging.getLogger("mntkeeper.test.setup")
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

    def test_levels(self):
        self.assertEqual(Log._level_from_flags(0, 0), logging.INFO)
        self.assertEqual(Log._level_from_flags(2, 0), logging.DEBUG)
        self.assertEqual(Log._level_from_flags(3, 0), TRACE)
        self.assertEqual(Log._level_from_flags(3, 1), logging.WARNING)

    def test_file_handler_gets_debug(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "audit" / "mntkeeper_x.log"
            logger = Log.setup(0, str(path), logger_name="mntkeeper.test.setup", color=False)

            logger.debug("only in the file")
            for h in logger.handlers:
                h.flush()

            self.assertIn("only in the file", path.read_text(encoding="utf-8"))
            self.tearDown()

    def test_bound_context_in_json(self):
        record = logging.LogRecord("mntkeeper", logging.INFO, __file__, 1, "stopping", None, None)
        record.ctx = {"service": "nginx"}

        obj = json.loads(JsonFormatter().format(record))

        self.assertEqual(obj["msg"], "stopping")
        self.assertEqual(obj["ctx"], {"service": "nginx"})

    def test_audit_line_has_date_pid_and_context(self):
        record = logging.LogRecord("mntkeeper", logging.WARNING, __file__, 7, "stop timed out", None, None)
        record.ctx = {"service": "nginx", "timeout": 30}

        line = AuditFormatter().format(record)

        self.assertRegex(line, r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}\] WARNING ")
        self.assertIn("pid=", line)
        self.assertTrue(line.endswith("stop timed out service=nginx timeout=30"))


class TestLogStep(unittest.TestCase):
    def test_reraises(self):
        logger = Mock()
        with self.assertRaises(KeyError):
            with log_step(logger, "Recording"):
                raise KeyError("x")
        self.assertTrue(logger.log.called)


if __name__ == "__main__":
    unittest.main()
