import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "approval_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# "mysql" or "memory" (no database, state lost on restart)
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
AUTO_INSTALL_TEMPLATES = bool(int(os.getenv("AUTO_INSTALL_TEMPLATES", "1")))

URGENT_AFTER_DAYS = int(os.getenv("URGENT_AFTER_DAYS", "3"))
PAGE_SIZE = int(os.getenv("PAGE_SIZE", "20"))
DISPATCH_ASYNC = bool(int(os.getenv("DISPATCH_ASYNC", "0")))
