from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, GEOSPHERE
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("DB_OPERATION")

async def create_indexes():
    await mongo_conn.users_collection.create_index("email", unique=True)
    await mongo_conn.users_collection.create_index("role")
    await mongo_conn.restaurants_collection.create_index("owner", unique=True)
    await mongo_conn.restaurants_collection.create_index("email", unique=True)
    await mongo_conn.products_collection.create_index([("restaurant", ASCENDING), ("is_available", ASCENDING)])
    orders_collection = mongo_conn.orders_collection
    await orders_collection.create_index("order_number", unique=True)
    await orders_collection.create_index([("user", ASCENDING), ("created_at", DESCENDING)])
    await orders_collection.create_index([("restaurant", ASCENDING), ("created_at", DESCENDING)])
    await orders_collection.create_index("status")
    await orders_collection.create_index("rider")
    await mongo_conn.reviews_collection.create_index(
        [("restaurant_id", ASCENDING), ("user_id", ASCENDING)], unique=True
    )
    await mongo_conn.riders_collection.create_index([("location", GEOSPHERE)])
    await mongo_conn.audit_logs.create_index([("timestamp", DESCENDING)])
    logger.info("Indexes created")

class MongoConnection:
    def __init__(self):
        logger.info("Initializing MongoDB Connection")
        timeout = settings.DB_TIMEOUT_MS
        self.client = AsyncIOMotorClient(
            settings.MONGODB_URI,
            serverSelectionTimeoutMS=timeout,
            connectTimeoutMS=timeout,
            socketTimeoutMS=timeout,
        )
        self.db = self.client[settings.DB_NAME]
        self.users_collection = self.db["users"]
        self.restaurants_collection = self.db["restaurants"]
        self.products_collection = self.db["products"]
        self.orders_collection = self.db["orders"]
        self.reviews_collection = self.db["reviews"]
        self.riders_collection = self.db["riders"]
        self.carts_collection = self.db["carts"]
        self.audit_logs = self.db["audit_logs"]

    async def connect(self):
        try:
            # Force an actual connection & authentication check
            await self.db.command("ping")
            logger.info("Successfully connected to MongoDB and authenticated.")
            logger.info(f"Using Database: {settings.DB_NAME}")
        except Exception as e:
            logger.error(f"Could not connect to MongoDB: {e}")
            raise e

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except Exception as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def close(self):
        self.client.close()
        logger.info("MongoDB connection closed")

# Create the instance
mongo_conn = MongoConnection()
