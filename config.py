"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'erp')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'erp')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'erp')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', '0') == '1'

    # Pricing
    # abort: any invalid line fails the whole document; skip: drop it with a warning
    PRICING_AGGREGATION_POLICY = os.getenv('PRICING_AGGREGATION_POLICY', 'abort').lower()
    DEFAULT_RETAIL_MARKUP = os.getenv('DEFAULT_RETAIL_MARKUP', '70')
    DEFAULT_WHOLESALE_MARKUP = os.getenv('DEFAULT_WHOLESALE_MARKUP', '40')
    DEFAULT_CURRENCY = os.getenv('DEFAULT_CURRENCY', 'AED')

    # AI extraction validation (absolute tolerance in currency units)
    EXTRACTION_TOLERANCE = os.getenv('EXTRACTION_TOLERANCE', '0.05')


class TestConfig(Config):
    """Configuration used by the test suite (in-memory SQLite)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
