import os
from dotenv import load_dotenv

load_dotenv()

# -----------------------
# Database Config
# -----------------------
DB_TYPE = os.getenv("DB_TYPE", "sqlite").lower()

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres setup")
elif DB_TYPE == "sqlite":
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./loyalty.db")
else:
    raise ValueError(f"Unsupported DB_TYPE: {DB_TYPE}")

# -----------------------
# JWT Config
# -----------------------
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise ValueError("JWT_SECRET environment variable must be set")

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

# -----------------------
# Roles
# -----------------------
ROLE_CUSTOMER = "customer"
ROLE_CASHIER = "cashier"
ROLE_ADMIN = "admin"
ALLOWED_ROLES = {ROLE_CUSTOMER, ROLE_CASHIER, ROLE_ADMIN}

# -----------------------
# Points & Tables
# -----------------------
MIN_POINTS_PER_TRANSACTION = 1
MAX_POINTS_PER_TRANSACTION = int(os.getenv("MAX_POINTS_PER_TRANSACTION", "100"))
LEDGER_MAX_POINTS = 1000  # hard ceiling for a single ledger entry

QR_CODE_PREFIX = "TABLE_"
MIN_TABLE_NUMBER = 1
MAX_TABLE_NUMBER = 999
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# -----------------------
# Pagination
# -----------------------
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# -----------------------
# Misc
# -----------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
