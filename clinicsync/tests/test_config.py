"""Tests for env-driven config, the error hierarchy and logger setup."""
import json
import logging
import os
import tempfile
import unittest
from unittest.mock import patch

from clinicsync.config import GoogleOAuthConfig, PostgresConfig, SyncConfig
from clinicsync.core.exceptions import (
    CalendarCredentialExpiredError,
    ConfigurationError,
    ConflictError,
    SlotTakenError,
)
from clinicsync.core.logger import LoggerConfig, configure
from clinicsync.core.logger.formatters import JsonFormatter
from clinicsync.infra.database.engine import async_url


class TestSyncConfig(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = SyncConfig.from_env()
        self.assertIsNone(config.notification_sink_url)
        self.assertIsNone(config.inbound_webhook_secret)
        self.assertEqual(config.request_timeout, 15.0)
        self.assertEqual((config.import_days_back, config.import_days_forward), (30, 60))

    def test_from_env(self):
        env = {
            "NOTIFICATION_WEBHOOK_URL": " https://hooks.example/clinic ",
            "AUTOMATION_WEBHOOK_SECRET": "s3cret",
            "CALENDAR_TIMEOUT_SECONDS": "4.5",
            "IMPORT_DAYS_FORWARD": "14",
        }
        with patch.dict(os.environ, env, clear=True):
            config = SyncConfig.from_env()
        self.assertEqual(config.notification_sink_url, "https://hooks.example/clinic")
        self.assertEqual(config.inbound_webhook_secret, "s3cret")
        self.assertEqual(config.request_timeout, 4.5)
        self.assertEqual(config.import_days_forward, 14)

    def test_rejects_non_positive_timeout(self):
        with self.assertRaises(ValueError):
            SyncConfig(request_timeout=0)

    def test_rejects_negative_window(self):
        with self.assertRaises(ValueError):
            SyncConfig(import_days_back=-1)

    def test_oauth_requires_client(self):
        with patch.dict(os.environ, {"GOOGLE_CLIENT_ID": "id"}, clear=True):
            with self.assertRaises(ConfigurationError) as ctx:
                GoogleOAuthConfig.from_env()
        self.assertEqual(ctx.exception.http_status, 503)


class TestErrors(unittest.TestCase):
    def test_to_dict(self):
        err = SlotTakenError("taken", details={"start_at": "2025-03-10T09:00:00-03:00"})
        self.assertIsInstance(err, ConflictError)
        self.assertEqual(err.http_status, 409)
        self.assertEqual(
            err.to_dict(),
            {"error": "SLOT_TAKEN", "message": "taken", "details": {"start_at": "2025-03-10T09:00:00-03:00"}},
        )

    def test_cause_only_on_request(self):
        err = CalendarCredentialExpiredError("expired", cause=RuntimeError("invalid_grant"))
        self.assertNotIn("cause", err.to_dict())
        self.assertEqual(err.to_dict(include_cause=True)["cause"], "invalid_grant")

    def test_code_override(self):
        err = ConflictError("dup", code="DUPLICATE_EXTERNAL_EVENT")
        self.assertEqual(err.code, "DUPLICATE_EXTERNAL_EVENT")
        self.assertEqual(err.http_status, 409)


class TestLogger(unittest.TestCase):
    def tearDown(self):
        logging.getLogger("clinicsync").handlers.clear()

    def test_json_file_handler_collects_extra(self):
        with tempfile.TemporaryDirectory() as tmp:
            configure(LoggerConfig(level="DEBUG", log_dir=tmp, console=False))
            logging.getLogger("clinicsync.services").info("exported", extra={"owner_id": "o-1"})
            for handler in logging.getLogger("clinicsync").handlers:
                handler.flush()
                handler.close()
            with open(os.path.join(tmp, "clinicsync.log"), encoding="utf-8") as fh:
                line = json.loads(fh.readline())
        self.assertEqual(line["message"], "exported")
        self.assertEqual(line["logger"], "clinicsync.services")
        self.assertEqual(line["extra"], {"owner_id": "o-1"})

    def test_console_only(self):
        configure(LoggerConfig(console=True, log_dir=None))
        handlers = logging.getLogger("clinicsync").handlers
        self.assertEqual(len(handlers), 1)
        self.assertNotIsInstance(handlers[0].formatter, JsonFormatter)


class TestPostgresConfig(unittest.TestCase):
    def test_from_env(self):
        env = {"DATABASE_URL": "postgres://u:p@db/clinic", "DB_POOL_SIZE": "3", "DB_ECHO": "yes"}
        with patch.dict(os.environ, env, clear=True):
            config = PostgresConfig.from_env()
        self.assertEqual(config.url, "postgres://u:p@db/clinic")
        self.assertEqual(config.pool_size, 3)
        self.assertTrue(config.echo)

    def test_rejects_foreign_scheme(self):
        with self.assertRaises(ValueError):
            PostgresConfig(url="mysql://localhost/clinic")

    def test_rejects_bad_pool(self):
        with self.assertRaises(ValueError):
            PostgresConfig(url="postgresql://localhost/clinic", pool_size=0)

    def test_async_url_swaps_driver(self):
        self.assertEqual(
            async_url("postgres://u:p@db:5432/clinic"),
            "postgresql+asyncpg://u:p@db:5432/clinic",
        )
