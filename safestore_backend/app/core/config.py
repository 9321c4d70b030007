"""Application configuration settings.

Values can be overridden via environment variables.
"""
import os

_BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


class Settings:
    # Storage directory (flat, one file per stored object)
    UPLOAD_DIR: str = os.getenv("SAFESTORE_UPLOAD_DIR", os.path.join(_BACKEND_DIR, "uploads"))
    MAX_UPLOAD_BYTES: int = int(os.getenv("SAFESTORE_MAX_UPLOAD_BYTES", str(100 * 1024 * 1024)))

    # Hex-encoded 32 byte AES key. Leave unset to generate one per process
    # (stored objects are then unreadable after a restart).
    ENCRYPTION_KEY: str | None = os.getenv("SAFESTORE_ENCRYPTION_KEY")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "10000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ALLOW_ORIGINS: list[str] = [
        o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
    ]


settings = Settings()
