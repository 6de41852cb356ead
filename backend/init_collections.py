#!/usr/bin/env python3
"""
Create the indexes the timeclock queries rely on
"""
import asyncio
import logging
import os
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import CollectionInvalid

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("init_collections")

INDEXES = {
    "clock_events": [
        ([("organization_id", ASCENDING), ("employee_id", ASCENDING), ("timestamp", DESCENDING)], "org_employee_timestamp"),
        ([("organization_id", ASCENDING), ("timestamp", DESCENDING)], "org_timestamp"),
        ([("organization_id", ASCENDING), ("location_id", ASCENDING), ("timestamp", DESCENDING)], "org_location_timestamp"),
    ],
    "locations": [
        ([("organization_id", ASCENDING), ("is_active", ASCENDING), ("name", ASCENDING)], "org_active_name"),
    ],
    "users": [
        ([("organization_id", ASCENDING), ("isActive", ASCENDING), ("role", ASCENDING)], "org_active_role"),
    ],
    "timesheets": [
        ([("organization_id", ASCENDING), ("employee_id", ASCENDING), ("start_date", DESCENDING)], "org_employee_start"),
        ([("organization_id", ASCENDING), ("status", ASCENDING), ("submitted_at", DESCENDING)], "org_status_submitted"),
    ],
    "activity_logs": [
        ([("organizationId", ASCENDING), ("timestamp", DESCENDING)], "org_timestamp"),
    ],
}

async def init_collections():
    client = AsyncIOMotorClient(os.getenv("MONGODB_URI", "mongodb://localhost:27017/timeclock"))
    db = client.get_default_database()

    logger.info("Initializing MongoDB collections in %s", db.name)

    for collection, indexes in INDEXES.items():
        try:
            await db.create_collection(collection)
            logger.info("Created %s collection", collection)
        except CollectionInvalid:
            logger.info("%s collection already exists", collection)

        for keys, name in indexes:
            await db[collection].create_index(keys, name=name)
            logger.info("Ensured index %s on %s", name, collection)

    logger.info("Available collections: %s", await db.list_collection_names())

    client.close()

if __name__ == "__main__":
    load_dotenv()
    asyncio.run(init_collections())
