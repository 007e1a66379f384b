"""
Beacon - Application Entry Point
================================

Bootstrap
---------
- Config validation
- Logging pipeline
- Secrets (Discord token)
- Gateway, command service and bot lifecycle
- Graceful shutdown on SIGINT / SIGTERM
"""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Optional, Tuple

from beacon.bot.beacon_bot import BeaconBot
from beacon.bot.command_service import DiscordCommandService
from beacon.bot.gateway import DiscordGateway
from beacon.core.config import Config
from beacon.core.exceptions import MissingSecretError
from beacon.core.logging.logger import get_logger, setup_logging, shutdown_logging
from beacon.core.secrets import SecretsManager

logger = get_logger(__name__)

DISCORD_TOKEN_SECRET = "DiscordToken"


# ============================================================================
# Application Bootstrap
# ============================================================================


async def _startup() -> Tuple[BeaconBot, str]:
    """Prepare configuration, secrets and the bot before connecting."""
    setup_logging()
    logger.info(
        "========== %s %s INITIALIZATION START ==========",
        Config.BOT_NAME.upper(),
        Config.BOT_VERSION,
    )

    # Step 1: Validate configuration early
    try:
        Config.validate()
        logger.info("✓ Configuration validated")
    except Exception as exc:
        logger.critical(f"Configuration validation failed: {exc}")
        raise

    # Step 2: Resolve the bot token
    secrets = SecretsManager([Config.SECRETS_FILE])
    token = secrets.get_required_secret(DISCORD_TOKEN_SECRET)
    logger.info("✓ Secrets loaded")

    # Step 3: Build the bot
    try:
        gateway = DiscordGateway()
        command_service = DiscordCommandService(gateway.client)
        bot = BeaconBot(gateway, command_service)
        logger.info("✓ Bot initialized")
    except Exception as exc:
        logger.critical(f"Bot initialization failed: {exc}", exc_info=True)
        raise

    logger.info("========== INITIALIZATION COMPLETE ==========")
    return bot, token


# ============================================================================
# Application Shutdown
# ============================================================================


async def _shutdown(bot: Optional[BeaconBot]) -> None:
    logger.info("========== BEACON SHUTDOWN START ==========")

    if bot is not None:
        try:
            await bot.dispose()
            logger.info("✓ Bot stopped")
        except Exception as exc:
            logger.error(f"Error while stopping bot: {exc}", exc_info=True)

    logger.info("========== SHUTDOWN COMPLETE ==========")


# ============================================================================
# Application Entrypoint
# ============================================================================


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            logger.debug("%s handler installed", sig.name)
        except NotImplementedError:
            logger.debug("%s not supported on this platform (likely Windows)", sig.name)


async def main() -> int:
    """
    Beacon entry point.

    Lifecycle:
        1. Validate configuration and load secrets
        2. Start the bot
        3. Wait for a stop signal
        4. Shut down gracefully

    Returns the process exit code.
    """
    bot: Optional[BeaconBot] = None
    stop_event = asyncio.Event()

    try:
        bot, token = await _startup()
        _install_signal_handlers(stop_event)

        logger.info("Starting Beacon Discord bot...")
        await bot.start(token)
        await stop_event.wait()
        logger.info("Stop signal received")

    except MissingSecretError as exc:
        logger.critical(
            f"Fatal startup error: {exc}",
            extra={"error": exc.to_dict()},
        )
        return 1

    except asyncio.CancelledError:
        logger.warning("Asyncio task cancellation received; shutting down gracefully.")
        raise

    except Exception as exc:
        logger.critical(f"Fatal startup error: {exc}", exc_info=True)
        return 1

    finally:
        await _shutdown(bot)
        shutdown_logging()

    return 0


def run() -> None:
    """Console script entry point."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
