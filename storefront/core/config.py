"""Storefront Configuration"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    # Application
    app_name: str = "Biosell Storefront"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000

    # Backend API (order, address and catalog collaborators)
    api_base_url: str = "http://localhost:3000"
    request_timeout: float = 30.0
    order_submit_timeout: float = 15.0

    # Durable client storage. None keeps every session in memory.
    storage_dir: Optional[str] = None
    cart_storage_key: str = "cart-storage"
    auth_token_key: str = "auth_token"
    order_number_key: str = "last_order_number"

    # Shared secret of the OTP service; when unset tokens are decoded unverified
    auth_jwt_secret: Optional[str] = None

    session_max_age_hours: int = 24

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def persistent_storage(self) -> bool:
        """Check if sessions are backed by files"""
        return bool(self.storage_dir)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
