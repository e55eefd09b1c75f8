"""
Main entry point for the finance tracker service.

Loads the environment, validates configuration, prepares storage and
starts the FastAPI server.
"""
import sys
from pathlib import Path

# Add project root to Python path for module imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

from core.config import Settings, get_settings
from core.exceptions import ConfigurationError
from core.logger import quiet_third_party, setup_logger

# Load environment variables from .env file
_env_file = PROJECT_ROOT / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    print("Warning: .env file not found. Using environment variables or defaults.")

logger = setup_logger(__name__)


def log_startup_summary(settings: Settings) -> None:
    """Log the effective configuration (never the API key itself)."""
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"Database: {settings.database_path}")
    logger.info(f"Upload storage: {settings.temp_storage_path} (max {settings.max_upload_mb} MB)")
    logger.info(f"LLM model: {settings.openai_model} via {settings.openai_gateway_url}")
    logger.info(f"OCR: lang={settings.ocr_language}, dpi={settings.ocr_dpi}, pages={settings.ocr_max_pages}")
    logger.info(f"Default currency: {settings.default_currency}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; document extraction requests will fail")


def main():
    """Main application entry point."""
    try:
        settings = get_settings()
        quiet_third_party()
        log_startup_summary(settings)

        import uvicorn
        from app.api import app

        logger.info(f"Serving {settings.api_prefix} on {settings.host}:{settings.port}")

        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower()
        )

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        if e.details:
            logger.error(f"Details: {e.details}")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
