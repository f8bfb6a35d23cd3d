import logging
import os
import sys
import traceback

import uvicorn

# Configure logging to stdout
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

# Add the src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)


def log_configuration(settings) -> None:
    """Log the effective configuration without exposing secrets."""
    logger.info("=" * 60)
    logger.info("Audio Notes Backend Startup")
    logger.info("=" * 60)
    logger.info(f"Python version: {sys.version.split()[0]}")
    logger.info(f"  APP_ENV: {settings.app_env}")
    logger.info(f"  UPLOADS_DIR: {settings.uploads_path}")
    logger.info(f"  TRANSCRIPTION_MODE: {settings.transcription.mode} (model {settings.transcription.model})")
    logger.info(f"  SUMMARIZATION_ENABLED: {settings.summarization.enabled}")
    openai_key = 'set' if settings.openai.api_key else 'not set'
    logger.info(f"  OPENAI_API_KEY: {openai_key}")
    azure = 'set' if settings.azure_openai.is_configured else 'not set'
    logger.info(f"  AZURE_OPENAI_ENDPOINT/API_KEY: {azure}")
    email_user = settings.email.user or 'not set'
    logger.info(f"  EMAIL_USER: {email_user}")
    email_password = 'set' if settings.email.password else 'not set'
    logger.info(f"  EMAIL_PASSWORD: {email_password}")
    notion = 'set' if settings.notion.client_id else 'not set'
    logger.info(f"  NOTION_CLIENT_ID: {notion}")


if __name__ == "__main__":
    try:
        from audionotes.core.config import get_settings
        try:
            settings = get_settings()
        except ValueError as ve:
            logger.error(f"Configuration validation failed: {ve}")
            logger.error(traceback.format_exc())
            sys.exit(1)

        log_configuration(settings)
        port = int(os.environ.get("PORT", settings.port))
        host = os.environ.get("HOST", settings.host)
        logger.info(f"Starting uvicorn server on {host}:{port}...")
        uvicorn.run(
            "audionotes.app:app",
            host=host,
            port=port,
            # One process: the job queue is in memory
            workers=1,
            log_level=settings.logging.level.lower(),
            access_log=True,
            timeout_keep_alive=75,
            timeout_graceful_shutdown=60,
        )
    except KeyboardInterrupt:
        logger.info("Shutting down due to keyboard interrupt")
        sys.exit(0)
    except Exception as e:
        logger.error(f"CRITICAL: Failed to start application: {type(e).__name__}: {e}")
        logger.error(traceback.format_exc())
        sys.exit(1)
