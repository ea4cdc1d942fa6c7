import logging
import sys

import uvicorn

from identity_proxy.config import ConfigurationError, load_config
from identity_proxy.server import create_app
from identity_proxy.vars import HOST, LOG_LEVEL

logger = logging.getLogger("uvicorn.error")


def main() -> int:
    try:
        config = load_config()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        for problem in e.problems:
            logger.error(f"Configuration error: {problem}")
        return 1

    uvicorn.run(create_app(config), host=HOST, port=config.port, log_level=LOG_LEVEL)
    return 0


if __name__ == "__main__":
    sys.exit(main())
