from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    db_name: str = "storefront"
    db_user: str = "shop"
    db_password: str = "CHANGE_ME"
    db_host: str = "db"
    db_port: int = 5432
    db_ssl: bool = False

    # CORS
    cors_allowed_origins: str = "http://localhost:3000"

    # Cart
    cart_storage_name: str = "cart-storage"
    cart_session_cookie: str = "cart_session"
    cart_session_max_age_days: int = 30

    # App
    debug: bool = False

    @property
    def database_url(self) -> str:
        base = (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )
        return f"{base}?ssl=require" if self.db_ssl else base

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def cart_session_max_age_seconds(self) -> int:
        return self.cart_session_max_age_days * 24 * 60 * 60

    model_config = {"env_file": ".env", "extra": "ignore"}

    def validate_secrets(self) -> None:
        """Raise if production-critical secrets are still defaults."""
        defaults = {"CHANGE_ME"}
        if self.db_password in defaults:
            raise ValueError("db_password must be changed from default")


settings = Settings()
