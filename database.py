from motor.motor_asyncio import AsyncIOMotorClient
from logging_config import get_logger
from config import config
import certifi

logger = get_logger("database")

uri = config.MONGO_URI
db_name = config.DB_NAME


class DatabaseProxy:
    """Creates the motor client on first use so importing this module never connects."""

    def __init__(self):
        self._client = None

    def initialize(self):
        if self._client is None:
            if not uri:
                raise RuntimeError("MONGO_URI is not configured")
            if config.ENV == "production":
                self._client = AsyncIOMotorClient(uri, tlsCAFile=certifi.where())
            else:
                self._client = AsyncIOMotorClient(uri, tlsAllowInvalidCertificates=True)
            logger.info(f"MongoDB client initialized on DB: {db_name}")

    def reset(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    def __getattr__(self, name):
        self.initialize()
        return getattr(self._client, name)

    def __getitem__(self, name):
        self.initialize()
        return self._client[name]


client = DatabaseProxy()


class AsyncCollectionProxy:
    def __init__(self, name):
        self.name = name

    def _get_collection(self):
        return client[db_name][self.name]

    def __getattr__(self, attr):
        return getattr(self._get_collection(), attr)

    def __getitem__(self, key):
        return self._get_collection()[key]


read_state_collection = AsyncCollectionProxy("notification_read_state")
