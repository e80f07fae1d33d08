from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Get the project root directory (parent of progress_engine folder)
PROJECT_ROOT = Path(__file__).parent.parent

class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""
    database_url: str = "sqlite:///./progress.db"
    
    # Logging
    log_level: str = "INFO"
    
    # Ranked ladder
    leaderboard_size: int = 100  # entries returned by the leaderboard
    
    model_config = SettingsConfigDict(
        env_prefix="PROGRESS_",
        env_file=str(PROJECT_ROOT / ".env"),
        extra="ignore",
    )

settings = Settings()
