"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Bookstore REST API
    API_BASE_URL = os.getenv("BOOKSTORE_API_URL", "http://localhost:82/api")

    # Cart persistence slot: file, memory, postgres or none
    CART_STORAGE_BACKEND = os.getenv("CART_STORAGE_BACKEND", "file")
    CART_STORAGE_PATH = os.path.expanduser(
        os.getenv("CART_STORAGE_PATH", "~/.bookstore/storage.json")
    )

    # Database (postgres storage backend)
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "bookstore")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")

    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    DEFAULT_MAX_RETRIES = int(os.getenv("DEFAULT_MAX_RETRIES", "3"))
    DEFAULT_MAX_CONCURRENT = int(os.getenv("DEFAULT_MAX_CONCURRENT", "5"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
