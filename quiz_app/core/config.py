# quiz_app/core/config.py
from __future__ import annotations
from typing import List, Set

from pydantic import Field, AliasChoices, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- service ---
    secret_key: str = "change_me"
    access_token_minutes: int = 60
    admin_api_key: str = "dev-key"
    sqlite_url: str = "sqlite+aiosqlite:///./quizai.db"
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("log_level", "QUIZ_LOG_LEVEL"),
    )

    # --- identity / record store backend ---
    backend: str = Field(
        default="local",
        validation_alias=AliasChoices("backend", "QUIZ_BACKEND"),
    )
    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices("supabase_url", "NEXT_PUBLIC_SUPABASE_URL", "SUPABASE_URL"),
    )
    supabase_anon_key: str = Field(
        default="",
        validation_alias=AliasChoices("supabase_anon_key", "NEXT_PUBLIC_SUPABASE_ANON_KEY", "SUPABASE_ANON_KEY"),
    )
    supabase_service_role_key: str = Field(
        default="",
        validation_alias=AliasChoices("supabase_service_role_key", "SUPABASE_SERVICE_ROLE_KEY"),
    )
    http_timeout_sec: float = 10.0
    email_redirect_to: str = Field(
        default="http://localhost:3000/auth/callback",
        validation_alias=AliasChoices("email_redirect_to", "QUIZ_EMAIL_REDIRECT_TO"),
    )
    client_ip_url: str = Field(
        default="",
        validation_alias=AliasChoices("client_ip_url", "QUIZ_CLIENT_IP_URL"),
    )

    # --- signup guard ---
    signup_window_sec: int = 15 * 60
    signup_max_per_email: int = 3
    signup_max_per_ip: int = 6
    signup_prune_interval_sec: int = 5 * 60
    password_max_length: int = 128
    password_match_debounce_ms: int = 300

    # forwarded headers are only honoured when the socket peer is listed here
    trusted_proxies_raw: str = Field(
        default="",
        validation_alias=AliasChoices("trusted_proxies_raw", "QUIZ_TRUSTED_PROXIES"),
    )

    # --- CORS ---
    cors_origins_raw: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias=AliasChoices("cors_origins_raw", "QUIZ_CORS_ORIGINS"),
    )

    # Derived/normalized
    cors_origins: List[str] = []
    trusted_proxies: Set[str] = set()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _normalize(self):
        self.backend = (self.backend or "local").strip().lower()
        if self.backend not in ("local", "supabase"):
            raise ValueError("backend must be 'local' or 'supabase'")
        self.supabase_url = self.supabase_url.rstrip("/")

        # admin deletes need the service role; fall back so dev setups still boot
        if not self.supabase_service_role_key:
            self.supabase_service_role_key = self.supabase_anon_key

        self.cors_origins = [
            o.strip() for o in self.cors_origins_raw.split(",") if o.strip()
        ]
        self.trusted_proxies = {
            p.strip() for p in self.trusted_proxies_raw.split(",") if p.strip()
        }
        return self


settings = Settings()
