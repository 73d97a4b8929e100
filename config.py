"""
Configuration for the scripts in this repository.

Loads environment variables from the .env file. Connection settings themselves
are read by workbook.types.ServiceConfig.from_env and cache TTLs by
workbook.cache.CacheSettings.from_env; this class only holds what the scripts
decide on their own.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

from workbook.errors import ConfigurationError
from workbook.types import ServiceConfig

# Load environment variables from .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)


class Config:
    """Configuration class for the Workbook scripts."""

    # Environment (dev | prod) selects which credential set is used
    ENVIRONMENT = os.getenv("ENVIRONMENT", "prod").lower()

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> bool:
        """Validate that credentials for the active environment are set."""
        try:
            ServiceConfig.from_env(cls.ENVIRONMENT)
        except ConfigurationError as e:
            print(f"⚠️  Missing required environment variables: {', '.join(e.missing)}")
            print(f"   Please set them in .env file")
            return False

        return True


if __name__ == "__main__":
    # Test configuration loading
    print("Configuration loaded:")
    print(f"  Environment: {Config.ENVIRONMENT}")
    print(f"  Log level: {Config.LOG_LEVEL}")
    print(f"\n  Validation: {'✓ PASSED' if Config.validate() else '✗ FAILED'}")
