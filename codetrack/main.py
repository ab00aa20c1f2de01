import uvicorn

from codetrack.api.app import create_app
from codetrack.config import Config
from codetrack.utils.logger import setup_logger

logger = setup_logger(__name__)

app = create_app()


def main():
    """Run the CodeTrack API server"""
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise SystemExit(1)

    logger.info("Starting CodeTrack API...")
    uvicorn.run(app, host=Config.HOST, port=Config.PORT, log_level="debug" if Config.DEBUG else "info")


if __name__ == '__main__':
    main()
