"""AI recipe generator backend: ingredients in, a Bedrock-generated recipe idea out."""

from pathlib import Path

from dotenv import load_dotenv

__version__ = "0.1.0"

# Load .env located in the backend directory (app/backend/.env); real
# environment variables keep precedence.
env_path = Path(__file__).resolve().parents[1] / ".env"
if env_path.exists():
    load_dotenv(env_path, override=False)
