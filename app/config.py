# app/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List
from dotenv import load_dotenv
load_dotenv()

class Settings(BaseSettings):
    # Application Settings
    allowed_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    max_trip_days: int = 60
    list_limit: int = 50

    # Itinerary Settings
    default_timezone: str = "UTC"  # IANA name used when the client sends no X-Timezone
    flexible_time: str = "12:00:00"  # time-of-day meaning "no specific time"

    # Google Cloud Configuration
    project_id: str = ""
    port: int = 8080
    database: str = "(default)"

    # Secret Management
    service_account_key_path: str = ""

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore"  # Allow extra environment variables without validation errors
    )

class CloudRunConfig:
    """Configuration for Cloud Run deployment"""

    # Environment Detection
    IS_CLOUD_RUN: bool = os.getenv("K_SERVICE") is not None

    # Google Cloud Configuration
    PROJECT_ID: str = os.getenv("GOOGLE_CLOUD_PROJECT", "")
    PORT: int = int(os.getenv("PORT", "8080"))

settings = Settings()
cloud_config = CloudRunConfig()
