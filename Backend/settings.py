import os

# ----- Database -----
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./habit_tracker.db")
SQL_ECHO = os.environ.get("SQL_ECHO", "false").lower() == "true"

# ----- Security -----
SECRET_KEY = os.environ.get("SECRET_KEY", "supersecretkey")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))  # 7 days
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", 10))

# ----- Server -----
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", 5000))
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

# ----- Logging -----
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.environ.get("LOG_FILE")
