from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv

from config.env import MONGO_URI
from utils.mongo import MongoGateway

load_dotenv()

if not MONGO_URI:
    raise RuntimeError("MONGODB_URI not set")

client = AsyncIOMotorClient(MONGO_URI, tz_aware=True)
db = client.get_default_database()
gateway = MongoGateway(db)

def get_db():
    return db

def get_gateway():
    return gateway
