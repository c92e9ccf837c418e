"""Application configuration via Pydantic Settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./torsim.sqlite3"

    # Logging
    log_level: str = "INFO"

    # Rules
    tn_base: int = 20
    strider_tn_base: int = 18

    # Compendium pack (JSON); empty tables when unset
    compendium_path: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="TORSIM_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def tn_base_for(self, strider: bool) -> int:
        return self.strider_tn_base if strider else self.tn_base


settings = Settings()
