import logging

import click
import uvicorn
from dotenv import load_dotenv

from signalbox.logging_config import configure_logging, get_logging_config
from signalbox.modules.config import ConfigModule

logger = logging.getLogger("signalbox")


@click.command()
@click.option("--host", "host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
@click.option("--port", "port", type=int, default=None, help="Listening port (default: PORT or 3000)")
@click.option("--static-dir", "static_dir", default=None, help="Serve the client application from this directory")
@click.option("--sweep-interval", "sweep_interval", type=float, default=None, help="Seconds between expiry sweeps")
@click.option("--max-age", "session_max_age", type=float, default=None, help="Session lifetime in seconds")
@click.option("--log-level", "log_level", default=None, help="DEBUG, INFO, WARNING or ERROR")
def main(host, port, static_dir, sweep_interval, session_max_age, log_level):
    """Run the Signalbox relay server."""
    load_dotenv()

    overrides = {
        key: value
        for key, value in {
            "host": host,
            "port": port,
            "static_dir": static_dir,
            "sweep_interval": sweep_interval,
            "session_max_age": session_max_age,
            "log_level": log_level.upper() if log_level else None,
        }.items()
        if value is not None
    }
    config = ConfigModule(overrides=overrides)
    configure_logging(config.get("log_level"))

    # Imported late so the app module sees the .env values
    from signalbox.main import create_app

    logger.info(f"Signaling server running on http://{config.get('host')}:{config.get('port')}")
    uvicorn.run(
        create_app(config),
        host=config.get("host"),
        port=config.get("port"),
        log_level=config.get("log_level").lower(),
        log_config=get_logging_config(config.get("log_level")),
    )


if __name__ == "__main__":
    main()
