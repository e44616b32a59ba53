"""Uvicorn entry for the HTTP API."""

import copy

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from coursegate.app import App
from coursegate.config import Config
from coursegate.web.server import create_fastapi_app


def uvicorn_log_config(debug: bool) -> dict[str, object]:
    """Uvicorn's default logging with shorter lines; access lines are dropped outside debug."""
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s %(levelname)s %(message)s"
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s %(client_addr)s "%(request_line)s" %(status_code)s'
    if not debug:
        log_config["loggers"]["uvicorn.access"]["level"] = "WARNING"
    return log_config


def run_server(app: App, config: Config) -> None:
    # Client addresses are read from X-Forwarded-For, so the server must sit behind a trusted proxy
    uvicorn.run(
        create_fastapi_app(app, config),
        host=config.host,
        port=config.port,
        log_config=uvicorn_log_config(config.debug),
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
