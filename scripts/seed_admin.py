# scripts/seed_admin.py
import asyncio
from datetime import datetime
from db.db_operation import mongo_conn, create_indexes
from utils.hash import hash_password
from utils.logger import get_logger

logger = get_logger("Seed_Admin")

ADMIN_EMAIL = "admin@foodapp.com"
ADMIN_PASSWORD = "admin123"

async def seed():
    await create_indexes()
    users = mongo_conn.users_collection
    # accounts created before token revocation existed
    await users.update_many({"token_version": {"$exists": False}}, {"$set": {"token_version": 0}})
    existing = await users.find_one({"email": ADMIN_EMAIL})
    if existing:
        logger.info("Admin already exists")
        return
    now = datetime.utcnow()
    result = await users.insert_one({
        "name": "Platform Admin",
        "email": ADMIN_EMAIL,
        "password": hash_password(ADMIN_PASSWORD),
        "phone": "0000000000",
        "address": "Head office",
        "role": "admin",
        "is_approved": True,
        "is_active": True,
        "token_version": 0,
        "created_at": now,
        "updated_at": now,
    })
    logger.info(f"Created admin: {ADMIN_EMAIL} {result.inserted_id}")

if __name__ == "__main__":
    asyncio.run(seed())
