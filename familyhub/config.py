import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Settings:
    """
    Runtime configuration, read from the environment when constructed.
    Build one per app (create_app does this) so tests can swap env vars.
    """

    # -------------------------------------------------------
    # Fixed values
    # -------------------------------------------------------
    PROJECT_NAME: str = "Family Hub API"
    ALGORITHM: str = "HS256"

    # Tokens live for exactly one day; there is no refresh or revocation
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    def __init__(self):
        # -------------------------------------------------------
        # Project
        # -------------------------------------------------------
        self.ENV: str = os.getenv("ENV", "dev")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # -------------------------------------------------------
        # Database
        # -------------------------------------------------------
        self.DATABASE_URL: str = os.getenv(
            "DATABASE_URL",
            "sqlite:///./familyhub.db"
        )

        # Render uses postgres:// but SQLAlchemy needs postgresql://
        if self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgres://", "postgresql://", 1)

        # -------------------------------------------------------
        # Authentication / JWT / password hashing
        # -------------------------------------------------------
        self.SECRET_KEY: str = os.getenv(
            "SECRET_KEY",
            "supersecretlocalkey123"   # Only used for local dev
        )

        # bcrypt cost factor, one per password domain
        self.PASSWORD_HASH_ROUNDS: int = int(os.getenv("PASSWORD_HASH_ROUNDS", 12))
        self.FAMILY_PASSWORD_HASH_ROUNDS: int = int(
            os.getenv("FAMILY_PASSWORD_HASH_ROUNDS", self.PASSWORD_HASH_ROUNDS)
        )

        # -------------------------------------------------------
        # Storage Configuration
        # -------------------------------------------------------
        self.STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "local").strip().lower()

        # Local media folder
        self.LOCAL_MEDIA_PATH: str = os.getenv(
            "LOCAL_MEDIA_PATH",
            "./media"   # Default for dev
        )

        self.SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
        self.SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
        self.SUPABASE_BUCKET: str = os.getenv("SUPABASE_BUCKET", "uploads")

        # -------------------------------------------------------
        # CORS
        # -------------------------------------------------------
        self.CORS_ORIGINS: list[str] = [
            o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
        ]

    @property
    def is_production(self) -> bool:
        return self.ENV in ("prod", "production")
