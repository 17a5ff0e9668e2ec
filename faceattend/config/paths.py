import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("FACEATTEND_HOME", Path(__file__).resolve().parents[2]))
DATA_DIR = BASE_DIR / "data"
DB_DIR = DATA_DIR / "database"
LOG_DIR = BASE_DIR / "logs"
EXPORTS_DIR = DATA_DIR / "exports"

# Database path
DB_PATH = DB_DIR / "attendance.db"

# Create directories
DB_DIR.mkdir(parents=True, exist_ok=True)
LOG_DIR.mkdir(parents=True, exist_ok=True)
EXPORTS_DIR.mkdir(parents=True, exist_ok=True)
