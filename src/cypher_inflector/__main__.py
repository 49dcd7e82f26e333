import uvicorn
import uvloop
import yaml
from loguru import logger

from cypher_inflector.config.general import CONFIG
from cypher_inflector.config.logger import cleanup, configure_logging
from cypher_inflector.config.write_configs import write_default_configs


async def _main_inner() -> None:
    # /// PRE-SERVER SETUP ///

    # logging -> loguru intercept needs to be set up early
    logging_config = configure_logging()

    logger.debug(
        f"Starting with config: \n{yaml.dump(yaml.safe_load(CONFIG.model_dump_json()))}"
    )
    write_default_configs()

    # /// RUN SERVER ///

    config = uvicorn.Config(
        "cypher_inflector.server:app",
        host=CONFIG.host,
        port=CONFIG.port,
        log_config=logging_config,
        loop="uvloop",
        proxy_headers=CONFIG.trust_proxy,
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    except KeyboardInterrupt:
        pass

    # /// POST-SERVER CLEANUP ///

    # Wait for loguru to complete
    await cleanup()


def main() -> None:
    """Run the server."""
    uvloop.run(_main_inner())


if __name__ == "__main__":
    main()
