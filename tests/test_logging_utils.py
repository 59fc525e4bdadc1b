import logging
import os
import tempfile
import unittest
from logging.handlers import RotatingFileHandler

from env_namespace import Binding
from logging_utils import ColorFormatter, load_log_settings, log_bindings, setup_logging


class LogSettingsTests(unittest.TestCase):
    def test_defaults_when_environment_is_empty(self):
        settings = load_log_settings(environ={})
        self.assertEqual(settings.level, logging.INFO)
        self.assertEqual(settings.max_bytes, 5 * 1024 * 1024)
        self.assertEqual(settings.backup_count, 5)
        self.assertEqual(
            [b.name for b in settings.bindings],
            ["LOG_LEVEL", "LOG_FILE_MAX_MB", "LOG_FILE_BACKUP_COUNT", "NO_COLOR"],
        )

    def test_reads_bound_variables(self):
        settings = load_log_settings(
            environ={
                "LOG_LEVEL": "debug",
                "LOG_FILE_MAX_MB": "0.5",
                "LOG_FILE_BACKUP_COUNT": "2",
                "NO_COLOR": "1",
            }
        )
        self.assertEqual(settings.level, logging.DEBUG)
        self.assertEqual(settings.max_bytes, 512 * 1024)
        self.assertEqual(settings.backup_count, 2)
        self.assertFalse(settings.use_color)

    def test_invalid_values_fall_back(self):
        settings = load_log_settings(
            environ={"LOG_LEVEL": "chatty", "LOG_FILE_MAX_MB": "lots", "LOG_FILE_BACKUP_COUNT": "-"}
        )
        self.assertEqual(settings.level, logging.INFO)
        self.assertEqual(settings.max_bytes, 5 * 1024 * 1024)
        self.assertEqual(settings.backup_count, 5)

    def test_non_finite_size_uses_default(self):
        settings = load_log_settings(environ={"LOG_FILE_MAX_MB": "inf"})
        self.assertEqual(settings.max_bytes, 5 * 1024 * 1024)

    def test_explicit_level_overrides_environment(self):
        settings = load_log_settings("warning", environ={"LOG_LEVEL": "debug"})
        self.assertEqual(settings.level, logging.WARNING)


class LogBindingsTests(unittest.TestCase):
    def test_logs_rendered_bindings(self):
        logger = logging.getLogger("envbind.test")
        with self.assertLogs(logger, level="INFO") as logs:
            log_bindings([Binding("APP_PORT", "8080"), Binding("APP_MSG", 'a"b')], logger)
        self.assertEqual(
            logs.output,
            ['INFO:envbind.test:APP_PORT=8080', 'INFO:envbind.test:APP_MSG="a\\"b"'],
        )


class ColorFormatterTests(unittest.TestCase):
    def _record(self, level):
        return logging.LogRecord("demo", level, __file__, 1, "hello", None, None)

    def test_plain_output_without_color(self):
        formatter = ColorFormatter("%(levelname)s %(message)s", use_color=False)
        self.assertEqual(formatter.format(self._record(logging.INFO)), "INFO hello")

    def test_wraps_output_in_level_color(self):
        formatter = ColorFormatter("%(message)s", use_color=True)
        self.assertEqual(formatter.format(self._record(logging.ERROR)), "\033[31mhello\033[0m")


class SetupLoggingTests(unittest.TestCase):
    def setUp(self):
        self.root = logging.getLogger()
        self.original_handlers = list(self.root.handlers)
        self.original_level = self.root.level
        self.addCleanup(self._restore_root)

    def _restore_root(self):
        for handler in list(self.root.handlers):
            if handler not in self.original_handlers:
                self.root.removeHandler(handler)
                handler.close()
        self.root.setLevel(self.original_level)
        if hasattr(self.root, "_envbind_logging_configured"):
            delattr(self.root, "_envbind_logging_configured")
        logging.captureWarnings(False)

    def test_wires_console_and_file_handlers_once(self):
        env = {"LOG_LEVEL": "warning", "LOG_FILE_BACKUP_COUNT": "3"}
        with tempfile.TemporaryDirectory() as log_dir:
            setup_logging("demo", log_dir=log_dir, environ=env)
            setup_logging("demo", log_dir=log_dir, environ=env)

            added = [h for h in self.root.handlers if h not in self.original_handlers]
            file_handlers = [h for h in added if isinstance(h, RotatingFileHandler)]
            self.assertEqual(len(added), 2)
            self.assertEqual(len(file_handlers), 1)
            self.assertEqual(file_handlers[0].baseFilename, os.path.abspath(os.path.join(log_dir, "demo.log")))
            self.assertEqual(file_handlers[0].backupCount, 3)
            self.assertEqual(self.root.level, logging.WARNING)
            self._restore_root()

if __name__ == "__main__":
    unittest.main()
