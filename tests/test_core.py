import sys
import os
import json
import logging
import tempfile
import unittest
from unittest.mock import patch

from pydantic import ValidationError

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trafficnav.core.config import Settings
from trafficnav.core.logger import JsonFormatter, get_logger
from trafficnav.exceptions import TrafficNavError, UnknownNodeError
from trafficnav.services.graph.loader import DataLoader

class TestSettings(unittest.TestCase):
    def test_defaults(self):
        s = Settings()
        self.assertEqual(s.DEFAULT_ALGORITHM, "astar")
        self.assertEqual(s.HEAVY_TRAFFIC_PENALTY, 2.0)
        self.assertLessEqual(s.MAX_HOPS, s.MAX_HOPS_CEILING)

    def test_env_override(self):
        with patch.dict(os.environ, {"TRAFFICNAV_MAX_HOPS": "2", "TRAFFICNAV_LOG_LEVEL": "debug"}):
            s = Settings()
        self.assertEqual(s.MAX_HOPS, 2)
        self.assertEqual(s.LOG_LEVEL, "DEBUG")

    def test_invalid_values(self):
        with self.assertRaises(ValidationError):
            Settings(LOG_LEVEL="chatty")
        with self.assertRaises(ValidationError):
            Settings(MAX_HOPS=-1)

class TestJsonLogger(unittest.TestCase):
    def test_format_includes_extra_fields(self):
        record = logging.LogRecord("trafficnav.test", logging.WARNING, __file__, 10, "hello %s", ("world",), None)
        record.edge_id = "A-B"
        record.cost = float("inf")
        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload["message"], "hello world")
        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["context"], {"edge_id": "A-B", "cost": "inf"})
        self.assertIn("timestamp", payload)

    def test_format_without_extra(self):
        record = logging.LogRecord("trafficnav.test", logging.INFO, __file__, 10, "plain", (), None)
        payload = json.loads(JsonFormatter().format(record))
        self.assertNotIn("context", payload)

    def test_get_logger_configures_once(self):
        logger = get_logger("trafficnav.test.once")
        again = get_logger("trafficnav.test.once")
        self.assertIs(logger, again)
        self.assertEqual(len(logger.handlers), 1)
        self.assertIsInstance(logger.handlers[0].formatter, JsonFormatter)
        self.assertFalse(logger.propagate)

class TestExceptions(unittest.TestCase):
    def test_details(self):
        error = UnknownNodeError("Edge references unknown node(s)", details="Z")
        self.assertIsInstance(error, TrafficNavError)
        self.assertEqual(error.message, "Edge references unknown node(s)")
        self.assertEqual(error.details, "Z")

class TestDataLoaderFiles(unittest.TestCase):
    def test_load_json_file(self):
        data = {
            "nodes": [
                {"id": "a", "name": "A", "coordinates": [0.0, 0.0]},
                {"id": "b", "name": "B", "coordinates": [0.0, 0.01]},
            ],
            "edges": [{"id": "ab", "from": "a", "to": "b", "distance": 1.1, "baseWeight": 2, "currentWeight": 3}],
        }
        with tempfile.TemporaryDirectory() as tmp:
            with open(os.path.join(tmp, "city.json"), "w") as f:
                json.dump(data, f)
            G = DataLoader(data_dir=tmp).load_graph("city.json")

        self.assertEqual(len(G), 2)
        edge = G.get_edge("b", "a")
        self.assertEqual(edge.id, "ab")
        self.assertEqual(edge.current_weight, 3.0)
        self.assertEqual(edge.base_weight, 2.0)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FileNotFoundError):
                DataLoader(data_dir=tmp).load_graph("missing.json")

if __name__ == "__main__":
    unittest.main()
