"""
Tests for the story cache CLI (click + rich).
"""

import json
import logging
import os
import random
import sys
import tempfile
import unittest
from unittest.mock import patch

from click.testing import CliRunner

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from cache_cli import SimulatedClock, build_contexts, cli  # noqa: E402


class TestHelpers(unittest.TestCase):

    def test_simulated_clock_advances(self):
        clock = SimulatedClock()
        self.assertEqual(clock(), 0.0)
        clock.advance(25)
        self.assertEqual(clock(), 25.0)

    def test_build_contexts_distinct_and_deterministic(self):
        a = build_contexts(10, random.Random(1))
        b = build_contexts(10, random.Random(1))
        self.assertEqual(a, b)
        self.assertEqual(len({ctx.cache_key() for ctx in a}), 10)


class TestCLI(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()
        patcher = patch.dict(os.environ, {}, clear=False)
        patcher.start()
        self.addCleanup(patcher.stop)
        for var in ("STORY_CACHE_TTL_MS", "STORY_CACHE_MAX_ENTRIES", "STORY_CACHE_METRICS"):
            os.environ.pop(var, None)
        # Console handlers bind the runner's stream; drop them between tests
        self.addCleanup(self._reset_loggers)

    @staticmethod
    def _reset_loggers():
        for name in ("story_cache", "story_cache_errors"):
            logger = logging.getLogger(name)
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

    def test_config_shows_defaults(self):
        result = self.runner.invoke(cli, ["config"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("cache.ttl_ms", result.output)
        self.assertIn("300000", result.output)

    def test_config_reflects_overrides(self):
        result = self.runner.invoke(cli, ["--max-entries", "7", "config"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("cache.max_entries", result.output)
        self.assertIn("7", result.output)

    def test_config_file_option(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "cache.json")
            with open(path, "w") as fh:
                json.dump({"cache": {"max_entries": 321}}, fh)
            result = self.runner.invoke(cli, ["--config", path, "config"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("321", result.output)

    def test_non_object_config_section_falls_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "cache.json")
            with open(path, "w") as fh:
                json.dump({"cache": 300}, fh)
            shown = self.runner.invoke(cli, ["--config", path, "config"])
            overridden = self.runner.invoke(cli, ["--config", path, "--ttl-ms", "5", "config"])
        self.assertEqual(shown.exit_code, 0, shown.output)
        self.assertIn("300000", shown.output)
        self.assertEqual(overridden.exit_code, 0, overridden.output)
        self.assertIn("cache.max_entries", overridden.output)

    def test_simulate_reports_healthy(self):
        result = self.runner.invoke(cli, ["--max-entries", "5", "simulate", "--contexts", "20", "--requests", "200"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Cache Simulation", result.output)
        self.assertIn("Cache health: healthy", result.output)

    def test_simulate_prometheus_output(self):
        result = self.runner.invoke(
            cli, ["--max-entries", "5", "simulate", "--contexts", "20", "--requests", "50", "--prometheus"]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('story_cache_evictions_total{store="segments"}', result.output)

    def test_simulate_invalid_configuration_exits(self):
        result = self.runner.invoke(cli, ["--ttl-ms", "0", "simulate", "--requests", "5"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("Invalid cache configuration", result.output)

    def test_invalid_env_value_is_click_error(self):
        with patch.dict(os.environ, {"STORY_CACHE_TTL_MS": "soon"}):
            result = self.runner.invoke(cli, ["config"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("STORY_CACHE_TTL_MS", result.output)


if __name__ == "__main__":
    unittest.main()
