import motor.motor_asyncio
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from recruitpro.utils.config import get_settings
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)

settings = get_settings()

logger.info(f"Initializing MongoDB connection to database: {settings.db_name}")

# The client connects lazily, so importing this module never blocks
client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_details)
db = client[settings.db_name]

# Collections
applicants_coll = db["applicants"]
assessments_coll = db["assessments"]
notifications_coll = db["notifications"]
roles_coll = db["roles"]
interviews_coll = db["interviews"]


async def _ensure_index(coll, keys, **kwargs):
    name = f"{coll.name}.{'_'.join(k for k, _ in keys)}"
    try:
        await coll.create_index(keys, **kwargs)
        logger.debug(f"Ensured index on {name}")
    except PyMongoError as e:
        logger.warning(f"Could not create index on {name}: {e}")


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    await _ensure_index(applicants_coll, [("applicant_id", ASCENDING)], unique=True)
    # Backstop for the duplicate guard: one application per (email, role)
    await _ensure_index(applicants_coll, [("email", ASCENDING), ("role_id", ASCENDING)], unique=True)
    await _ensure_index(applicants_coll, [("created_at", ASCENDING)])

    await _ensure_index(assessments_coll, [("applicant_id", ASCENDING)], unique=True)
    await _ensure_index(assessments_coll, [("status", ASCENDING)])

    await _ensure_index(notifications_coll, [("applicant_id", ASCENDING), ("created_at", ASCENDING)])

    await _ensure_index(roles_coll, [("role_id", ASCENDING)], unique=True)

    await _ensure_index(interviews_coll, [("interview_id", ASCENDING)], unique=True)
    await _ensure_index(interviews_coll, [("applicant_id", ASCENDING), ("scheduled_at", ASCENDING)])

    logger.info("Database index initialization completed")
