import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "approval_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_INSTALL_TEMPLATES = bool(int(os.getenv("AUTO_INSTALL_TEMPLATES", "1")))

URGENT_AFTER_DAYS = int(os.getenv("URGENT_AFTER_DAYS", "3"))
PAGE_SIZE = int(os.getenv("PAGE_SIZE", "20"))
DISPATCH_ASYNC = bool(int(os.getenv("DISPATCH_ASYNC", "1")))
