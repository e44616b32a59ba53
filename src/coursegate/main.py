import structlog

from coursegate.app import App
from coursegate.config import Config
from coursegate.logging import setup_logging
from coursegate.web.runner import run_server


def main() -> None:
    """Start the coursegate API; settings come from COURSEGATE_* environment variables or .env."""
    config = Config()
    setup_logging(config.debug)
    structlog.get_logger(__name__).info(
        "coursegate_starting",
        host=config.host,
        port=config.port,
        session_timeout_minutes=config.session_timeout_minutes,
        scheduler_enabled=config.scheduler_enabled,
    )
    run_server(App(config), config)


if __name__ == "__main__":
    main()
