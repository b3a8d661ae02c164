"""``shellbot`` console entry point.

Exit status is chosen by the control unit: 0 after ``shutdown`` or a
signal, 75 (EX_TEMPFAIL) after ``restart`` so a supervisor such as
systemd with ``RestartForceExitStatus=75`` brings the bot back up.
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .logging_config import setup_logging


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, bot, logger) -> None:
    def on_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal_received", signal=sig.name)
        bot.stop_soon(0)

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, on_signal, sig)
        except NotImplementedError:
            # No loop signal support on Windows; Ctrl+C still has to work
            if sig is signal.SIGINT:
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(on_signal, sig))


async def main() -> int:
    # Console and default files first, so config problems are visible
    setup_logging()
    logger = structlog.get_logger("shellbot")
    logger.info("shellbot_starting", version=__version__)

    from .bot import ShellBot
    from .config import get_config

    config = get_config()
    config.validate()
    setup_logging(config)

    bot = ShellBot(config)
    _install_signal_handlers(asyncio.get_running_loop(), bot, logger)

    try:
        return await bot.run()
    except Exception as e:
        logger.error("bot_error", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        await bot.stop()
        logger.info("shellbot_stopped", exit_code=bot.exit_code)


def run() -> None:
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    run()
