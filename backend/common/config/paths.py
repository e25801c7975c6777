"""Path configuration for the backend."""
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=BASE_DIR / ".env")

# Directories
MODELS_DIR = BASE_DIR / "models"
OUTPUT_DIR = BASE_DIR / "output"

# Default composite output (CLI fallback)
DEFAULT_COMPOSITE_PATH = OUTPUT_DIR / "action_shot.png"
