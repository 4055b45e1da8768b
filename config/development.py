import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "presence_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

PRESENCE_SWEEP_INTERVAL_SECONDS = float(os.getenv("PRESENCE_SWEEP_INTERVAL_SECONDS", "60"))
PRESENCE_SWEEP_BATCH_SIZE = int(os.getenv("PRESENCE_SWEEP_BATCH_SIZE", "500"))
PRESENCE_SWEEP_AUTOSTART = bool(int(os.getenv("PRESENCE_SWEEP_AUTOSTART", "1")))
