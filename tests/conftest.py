import os

# Settings are read at import time; point every test at SQLite before storehours is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:////tmp/storehours_test_api.db")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("AUTO_RUN_MIGRATIONS", "false")
os.environ.setdefault("STORE_HOURS_AUTH_DISABLED", "true")
os.environ.setdefault("STORE_HOURS_ENV", "dev")
