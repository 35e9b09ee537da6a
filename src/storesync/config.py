from datetime import timedelta
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./storesync.db"
    stale_timeout_seconds: int = 900
    stale_sweep_minutes: int = 5  # 0 disables the scheduled sweep
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def stale_timeout(self) -> timedelta:
        return timedelta(seconds=self.stale_timeout_seconds)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
