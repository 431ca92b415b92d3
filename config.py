# config.py

import os
from functools import lru_cache
from typing import List


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    DATABASE_NAME = os.getenv("DATABASE_NAME", "ministry_hub")

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change")
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

    SITE_NAME = os.getenv("SITE_NAME", "Walkthrough Bible Series")
    SITE_URL = os.getenv("SITE_URL", "https://walkthroughbibleseries.netlify.app").rstrip("/")
    SITE_TAGLINE = os.getenv("SITE_TAGLINE", "Journey Through God's Word")
    SITE_DESCRIPTION = os.getenv(
        "SITE_DESCRIPTION",
        "Sharing Bible content, church teachings, and Christian inspiration",
    )

    CONTACT_WHATSAPP = os.getenv("CONTACT_WHATSAPP", "2347013989898")
    CONTACT_PHONE = os.getenv("CONTACT_PHONE", "07013989898")
    CONTACT_EMAIL = os.getenv("CONTACT_EMAIL", "awalkthroughlessonseries@gmail.com")

    # Registering with this email grants the admin role
    BOOTSTRAP_ADMIN_EMAIL = os.getenv("BOOTSTRAP_ADMIN_EMAIL", "").strip().lower()

    # "native" pushes filters and sorting to Mongo, "scan" fetches everything and filters in memory
    CONTENT_QUERY_MODE = os.getenv("CONTENT_QUERY_MODE", "native")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def cors_origins(self) -> List[str]:
        raw = os.getenv("CORS_ORIGINS", "*")
        return [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
