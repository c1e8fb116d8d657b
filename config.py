import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

JWT_SECRET = os.getenv("JWT_SECRET", "dev_secret_change_me")
JWT_ALG = "HS256"

PROFILE_STORE_BACKEND = os.getenv("PROFILE_STORE_BACKEND", "sql")  # sql | mongo
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DATABASE = os.getenv("MONGO_DATABASE", "tutorlink")

DISPATCH_CONCURRENCY = int(os.getenv("DISPATCH_CONCURRENCY", "8"))
DISPATCH_MAX_ATTEMPTS = int(os.getenv("DISPATCH_MAX_ATTEMPTS", "3"))
DISPATCH_BACKOFF_BASE = float(os.getenv("DISPATCH_BACKOFF_BASE", "0.2"))  # seconds
DISPATCH_BACKOFF_MAX = float(os.getenv("DISPATCH_BACKOFF_MAX", "2.0"))

MESSAGE_MAX_LENGTH = int(os.getenv("MESSAGE_MAX_LENGTH", "5000"))
CONVERSATION_DEFAULT_LIMIT = int(os.getenv("CONVERSATION_DEFAULT_LIMIT", "50"))
CONVERSATION_MAX_LIMIT = int(os.getenv("CONVERSATION_MAX_LIMIT", "200"))

SUBSCRIPTION_QUEUE_SIZE = int(os.getenv("SUBSCRIPTION_QUEUE_SIZE", "256"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
