from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_PUBLIC_DIR = Path(__file__).parent / "public"


class Settings(BaseSettings):
    app_name: str = "fileshare"
    app_env: str = "dev"
    host: str = "0.0.0.0"
    port: int = 8080
    storage_dir: str = "uploads"
    public_dir: str | None = None
    max_upload_size_bytes: int = 100 * 1024 * 1024
    # allowance for multipart boundaries and part headers on top of the file bytes
    multipart_overhead_bytes: int = 64 * 1024
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="FILESHARE_")

    @property
    def public_path(self) -> Path:
        return Path(self.public_dir) if self.public_dir else PACKAGE_PUBLIC_DIR


@lru_cache
def get_settings() -> Settings:
    return Settings()
