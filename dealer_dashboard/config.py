from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

SHEET_ID = "1aJNdtlxXAi7i4DwavOQhY-5PsIQzwRFx9KFRhOW85J8"
DEFAULT_SHEET_CSV_URL = f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/export?format=csv"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)
    sheet_csv_url: str = Field(default=DEFAULT_SHEET_CSV_URL, alias="SHEET_CSV_URL")
    db_path: str = Field(default="./data/app.db", alias="DB_PATH")
    local_tz: str = Field(default="Asia/Karachi", alias="LOCAL_TZ")
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")
    poll_enable: int = Field(default=1, alias="POLL_ENABLE")
    poll_interval_seconds: int = Field(default=30, alias="POLL_INTERVAL_SECONDS")
    snapshot_list_limit: int = Field(default=10, alias="SNAPSHOT_LIST_LIMIT")
    history_snapshot_limit: int = Field(default=20, alias="HISTORY_SNAPSHOT_LIMIT")
    comparison_snapshot_limit: int = Field(default=50, alias="COMPARISON_SNAPSHOT_LIMIT")
    snapshot_list_max: int = Field(default=200, alias="SNAPSHOT_LIST_MAX")
    auto_snapshot_enable: int = Field(default=1, alias="AUTO_SNAPSHOT_ENABLE")
    auto_snapshot_hour: int = Field(default=23, alias="AUTO_SNAPSHOT_HOUR")
    auto_snapshot_minute: int = Field(default=55, alias="AUTO_SNAPSHOT_MINUTE")
    auto_snapshot_prefer_live: bool = Field(default=True, alias="AUTO_SNAPSHOT_PREFER_LIVE")

settings = Settings()
