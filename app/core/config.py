import os
from dotenv import load_dotenv

load_dotenv()


def _env(*names, default=None):
    """
    Returns the first non-empty env var among `names`, stripped of the
    quotes/backticks that often sneak in when values are pasted into panels.
    """
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip().strip("`").strip('"').strip("'").strip()
        if value:
            return value
    return default


def normalize_database_url(url: str) -> str:
    # Hosted Postgres hands out postgres://, SQLAlchemy wants postgresql+psycopg2://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


class Settings:
    def __init__(self, **overrides):
        # STORE: which backend the lead repository talks to ('sql', 'pocketbase', 'supabase')
        self.STORE_BACKEND = _env("STORE_BACKEND", default="sql").lower()

        # SQL STORE
        self.DATABASE_URL = normalize_database_url(_env("DATABASE_URL", default="sqlite:///./crm.db"))

        # POCKETBASE
        self.POCKETBASE_URL = _env("POCKETBASE_URL", "VITE_POCKETBASE_URL", default="http://127.0.0.1:8090")
        self.POCKETBASE_EMAIL = _env("POCKETBASE_EMAIL")
        self.POCKETBASE_PASSWORD = _env("POCKETBASE_PASSWORD")

        # SUPABASE
        self.SUPABASE_URL = _env("SUPABASE_URL", "VITE_SUPABASE_URL")
        self.SUPABASE_KEY = _env("SUPABASE_SERVICE_ROLE_KEY", "VITE_SUPABASE_ANON_KEY")

        # HTTP
        self.REQUEST_TIMEOUT = float(_env("REQUEST_TIMEOUT", default="15"))
        self.CORS_ORIGINS = [
            o.strip()
            for o in _env("CORS_ORIGINS", default="http://localhost:5173,http://127.0.0.1:5173").split(",")
            if o.strip()
        ]

        self.LOG_LEVEL = _env("LOG_LEVEL", default="INFO").upper()

        for key, value in overrides.items():
            setattr(self, key, value)


settings = Settings()
