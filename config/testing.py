import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "presence_db_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False

PRESENCE_SWEEP_INTERVAL_SECONDS = 60.0
PRESENCE_SWEEP_BATCH_SIZE = 500
# Tests drive sweeps explicitly through run_once().
PRESENCE_SWEEP_AUTOSTART = False
