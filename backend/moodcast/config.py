# moodcast configuration
# loads env vars for mongodb, gemini, openweather, local pattern storage

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb (cloud side of the pattern store + journal entries)
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "moodcast_db")

    # gemini (pattern extraction from journal text)
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # openweather one call 3.0
    OPENWEATHER_API_KEY: str = os.getenv("OPENWEATHER_API_KEY", "")
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org/data/3.0/onecall"
    WEATHER_ENABLED: bool = True
    WEATHER_CACHE_SECONDS: int = 600
    WEATHER_CACHE_MAX_ENTRIES: int = 256
    WEATHER_TIMEOUT_SECONDS: float = 3.0

    # local-first pattern storage
    LOCAL_STORE_DIR: Path = Path(os.getenv("LOCAL_STORE_DIR", str(Path.home() / ".moodcast")))

    # pattern extraction
    EXTRACTION_MAX_ENTRIES: int = 10
    EXTRACTION_MIN_CONFIDENCE: float = 0.5

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
