from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./notesync.db"

    secret_key: str = "change-me"
    access_token_expire_minutes: int = 10080
    allow_registration: bool = True

    # Share links: empty means "use the incoming request's base URL"
    public_base_url: str = ""
    share_token_bytes: int = 16

    default_note_title: str = "Untitled Note"

    log_level: str = "INFO"
    run_migrations_on_startup: bool = True

    cors_origins: str = "http://localhost,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
