# afkmover/main.py
import asyncio
import logging
import signal
import sys

from afkmover.config import load_settings
from afkmover.core.errors import ConfigurationError, PollerGaveUp, SessionError
from afkmover.loader import load_all

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)-8s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

log = logging.getLogger("afkmover.main")


async def run():
    log.info("Starting ts3-afk-mover")
    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)

    poller = load_all(settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, poller.stop)
        except NotImplementedError:
            # Windows: Ctrl+C still arrives as KeyboardInterrupt
            pass

    poller.start()
    await poller.wait()


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        log.info("interrupted")
    except ConfigurationError as e:
        log.error("configuration error: %s", e)
        sys.exit(1)
    except SessionError as e:
        log.error("could not log in / select server: %s", e)
        sys.exit(1)
    except PollerGaveUp as e:
        log.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
