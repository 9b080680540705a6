from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

from streamseries.config import Settings
from streamseries.web import create_app

LOG_FORMAT = "[%(levelname)s] %(asctime)s - %(name)s - %(message)s"


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="streamseries", description="Serve the series catalog and video relay.")
    parser.add_argument("--host", help="interface to bind (env HOST)")
    parser.add_argument("--port", type=int, help="port to listen on (env PORT)")
    parser.add_argument("--data-file", type=Path, help="JSON episode list (env DATA_FILE)")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    overrides = {
        "host": args.host,
        "port": args.port,
        "data_file": args.data_file,
    }
    settings = dataclasses.replace(settings, **{k: v for k, v in overrides.items() if v is not None})

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logger = logging.getLogger("streamseries")

    app = create_app(settings)
    stats = app.extensions["streamseries"]["repository"].stats()
    logger.info("Serving on http://%s:%d", settings.host, settings.port)
    logger.info("Series: %d, episodes: %d, loaded: %s", stats["series"], stats["episodes"], stats["loaded"])
    app.run(host=settings.host, port=settings.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
