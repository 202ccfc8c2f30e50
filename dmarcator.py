import argparse
import logging
import os
import signal
import stat
import sys

from anyio import (
    TASK_STATUS_IGNORED, CancelScope, create_task_group, create_tcp_listener, create_unix_listener,
    open_signal_receiver, run
)
from anyio.abc import TaskStatus
import config

from src.milter import build_runner
from src.session import FilterConfig
from src.settings import ConfigError, Settings, load_settings


logger = logging.getLogger("dmarcator")


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def remove_socket(path: str) -> None:
    """
    Remove the unix socket at `path`, leaving anything else in place.
    """
    try:
        mode = os.stat(path).st_mode
    except FileNotFoundError:
        return

    if not stat.S_ISSOCK(mode):
        logger.warning("Not removing %(path)s, it is not a socket", {"path": path})
        return

    logger.debug("Removing socket %(path)s", {"path": path})
    os.unlink(path)


async def create_listener(settings: Settings):
    listen = settings.listen

    if listen.scheme == "unix":
        remove_socket(listen.path)

        # Sets the permissions of the created unix socket
        os.umask(settings.umask)

        return await create_unix_listener(listen.path)

    return await create_tcp_listener(local_host=listen.host, local_port=listen.port)


async def watch_signals(scope: CancelScope, *, task_status: TaskStatus = TASK_STATUS_IGNORED) -> None:
    with open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        task_status.started()

        async for signum in signals:
            logger.info("Received %(signal)s, shutting down", {"signal": signal.Signals(signum).name})
            scope.cancel()
            return


async def serve(settings: Settings, *, task_status: TaskStatus = TASK_STATUS_IGNORED) -> None:
    runner = build_runner(FilterConfig.from_settings(settings))
    listener = await create_listener(settings)

    try:
        async with create_task_group() as tg:
            await tg.start(watch_signals, tg.cancel_scope)

            logger.info("Milter listening at %(uri)s", {"uri": settings.listen_uri})
            task_status.started()

            await listener.serve(runner)
    finally:
        with CancelScope(shield=True):
            await listener.aclose()

        if settings.listen.scheme == "unix":
            remove_socket(settings.listen.path)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="dmarcator",
        description="Milter rejecting mails which fail DMARC for a configured set of domains"
    )
    parser.add_argument("-c", "--config-file", default="/etc/dmarcator.cfg", type=argparse.FileType())
    parser.add_argument("-d", "--debug", action="store_true", help="Log debugging information")

    args = parser.parse_args(argv)

    # Load the configuration
    try:
        app_config = config.Config(args.config_file)
        settings = load_settings(app_config)
    except (config.ConfigError, ConfigError) as e:
        logging.basicConfig(format=LOG_FORMAT)
        logger.error("Failed to parse conf file %(file)s: %(reason)s", {"file": args.config_file.name, "reason": str(e)})
        return 1
    finally:
        args.config_file.close()

    # Set up the root logger
    logging.basicConfig(format=LOG_FORMAT, level=logging.DEBUG if args.debug else settings.log_level)

    logger.debug("Using authserv_id %(authserv_id)s", {"authserv_id": settings.authserv_id})

    try:
        run(serve, settings)
    except OSError as e:
        logger.error("Failed to set up the listener on %(uri)s: %(reason)s", {"uri": settings.listen_uri, "reason": str(e)})
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
