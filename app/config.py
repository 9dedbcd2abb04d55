import re
from typing import FrozenSet, Optional, Tuple

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(raw: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


class Settings(BaseSettings):
    APP_NAME: str = "Linkforest"
    APP_ENV: str = "development"
    API_PREFIX: str = "/api"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "linkforest"
    DATABASE_URL: Optional[str] = None  # overrides POSTGRES_* when set

    # ── Hostname routing ──
    MAIN_DOMAIN: str = "linkforest.com"
    MAIN_DOMAIN_ALIASES: str = "www.linkforest.com,localhost,127.0.0.1,::1"
    RESERVED_SUBDOMAINS: str = "www,api,app,admin,mail,static,cdn"
    RESERVED_ROUTES: str = (
        "api,auth,login,logout,register,signup,dashboard,settings,admin,"
        "pricing,how-it-works,resources,about,blog,careers,press,contact,"
        "help,status,community,privacy,terms,cookies,l,page,_next,static,"
        "health,metrics,favicon.ico,robots.txt,sitemap.xml"
    )
    BYPASS_PATH_PREFIXES: str = "/api/,/_next/,/static/"
    STATIC_FILE_EXTENSIONS: str = "ico,png,jpg,jpeg,svg,gif,webp,css,js,woff,woff2,ttf,eot,map"
    TENANT_LOOKUP_TIMEOUT_SECONDS: float = 3.0
    UNAVAILABLE_RETRY_AFTER_SECONDS: int = 5

    # ── Redirect analytics ──
    REDIRECT_TRACKING_ENABLED: bool = True
    REDIRECT_TRACK_PATH: str = "/api/profile/redirect-track"
    REDIRECT_TRACK_BASE_URL: Optional[str] = None  # defaults to https://{MAIN_DOMAIN}
    REDIRECT_TRACK_TIMEOUT_SECONDS: float = 2.0
    TRUSTED_PROXY_IPS: str = "127.0.0.1,::1"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @model_validator(mode="after")
    def _validate_production_config(self) -> "Settings":
        """Block startup if routing or database config is unsafe in production / staging."""
        if self.APP_ENV in ("production", "staging"):
            if not self.DATABASE_URL and self.POSTGRES_PASSWORD in ("postgres", ""):
                raise ValueError(
                    "POSTGRES_PASSWORD is set to default 'postgres'. "
                    "Set a strong password in .env or environment."
                )
            if self.MAIN_DOMAIN in ("localhost", "127.0.0.1", ""):
                raise ValueError(
                    f"MAIN_DOMAIN is '{self.MAIN_DOMAIN}'. "
                    "Set the public primary domain (e.g. linkforest.com)."
                )
        if self.TENANT_LOOKUP_TIMEOUT_SECONDS <= 0:
            raise ValueError("TENANT_LOOKUP_TIMEOUT_SECONDS must be positive")
        return self

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"
        )

    @property
    def main_domain_aliases(self) -> FrozenSet[str]:
        return frozenset(alias.lower().strip("[]") for alias in _split_csv(self.MAIN_DOMAIN_ALIASES))

    @property
    def reserved_subdomains(self) -> FrozenSet[str]:
        return frozenset(label.lower() for label in _split_csv(self.RESERVED_SUBDOMAINS))

    @property
    def reserved_routes(self) -> FrozenSet[str]:
        return frozenset(segment.lower() for segment in _split_csv(self.RESERVED_ROUTES))

    @property
    def bypass_path_prefixes(self) -> Tuple[str, ...]:
        return _split_csv(self.BYPASS_PATH_PREFIXES)

    @property
    def static_file_pattern(self) -> "re.Pattern[str]":
        extensions = "|".join(re.escape(ext.lstrip(".")) for ext in _split_csv(self.STATIC_FILE_EXTENSIONS))
        return re.compile(rf"\.({extensions})$", re.IGNORECASE)

    @property
    def redirect_track_url(self) -> str:
        base = self.REDIRECT_TRACK_BASE_URL or f"https://{self.MAIN_DOMAIN}"
        return base.rstrip("/") + self.REDIRECT_TRACK_PATH

    @property
    def trusted_proxy_ips(self) -> Tuple[str, ...]:
        return _split_csv(self.TRUSTED_PROXY_IPS)

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_staging(self) -> bool:
        return self.APP_ENV == "staging"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

settings = Settings()
