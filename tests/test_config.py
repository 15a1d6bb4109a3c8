import logging

from wiki.bus.factory import create_bus
from wiki.bus.http import HttpBus
from wiki.bus.local import LocalBus
from wiki.config import BusConfig, Config
from wiki.errors import ConfigError
from tests.base import TestCase

logger = logging.getLogger(__name__)


class TestConfig(TestCase):
    def test_defaults(self):
        config = Config.from_dict({})
        self.assertEqual(config.service.address, "wikidb.queue")
        self.assertEqual(config.database.max_pool_size, 30)
        self.assertIsNone(config.database.queries_file)
        self.assertEqual(config.bus.type, "local")
        self.assertFalse(config.debug)

    def test_read_yaml(self):
        path = self.tmp_path / "config.yaml"
        path.write_text(
            "debug: true\n"
            "database:\n"
            "  url: postgresql://localhost:5432/rainbow_database\n"
            "  user: unicorn_user\n"
            "  max_pool_size: 4\n"
            "service:\n"
            "  address: other.queue\n"
            "bus:\n"
            "  type: http\n"
            "  base_url: http://store:8000\n",
            encoding="utf-8",
        )
        config = Config.read(str(path))
        logger.debug("config=%s", config)
        self.assertTrue(config.debug)
        self.assertEqual(config.database.user, "unicorn_user")
        self.assertEqual(config.database.max_pool_size, 4)
        self.assertEqual(config.service.address, "other.queue")
        self.assertEqual(config.bus.base_url, "http://store:8000")
        self.assertEqual(config.server.port, 8000)

    def test_invalid_pool_size(self):
        with self.assertRaises(ConfigError):
            Config.from_dict({"database": {"max_pool_size": 0}})

    def test_unknown_key(self):
        with self.assertRaises(ConfigError):
            Config.from_dict({"database": {"pool": 3}})


class TestBusFactory(TestCase):
    async def test_create_local(self):
        bus = create_bus(BusConfig(type="local"))
        self.assertIsInstance(bus, LocalBus)

    async def test_create_http(self):
        bus = create_bus(BusConfig(type="http", base_url="http://store:8000/"))
        self.assertIsInstance(bus, HttpBus)
        self.assertEqual(bus.base_url, "http://store:8000")
        await bus.close()

    async def test_create_unknown(self):
        with self.assertRaises(ValueError):
            create_bus(BusConfig(type="carrier-pigeon"))
