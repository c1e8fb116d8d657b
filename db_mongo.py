from motor.motor_asyncio import AsyncIOMotorClient

from config import MONGO_URI, MONGO_DATABASE

# Motor connects lazily, on the first query
client = AsyncIOMotorClient(MONGO_URI)
db = client[MONGO_DATABASE]

# Collections
tutor_profiles_collection = db["tutor_profiles"]
student_profiles_collection = db["student_profiles"]
