import os
from dotenv import load_dotenv

load_dotenv()

# Use PostgreSQL in production, SQLite for local development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tableturn.db")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
ACCESS_MINUTES = int(os.getenv("ACCESS_MINUTES", 60 * 24 * 7))  # 7 days

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if o.strip()
]

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_BUCKET = os.getenv("SUPABASE_BUCKET", "listing-images")

DEFAULT_RADIUS_KM = float(os.getenv("DEFAULT_RADIUS_KM", 20))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
