import asyncio
import signal

from infrastructure.logging import get_module_logger
from infrastructure.services import get_settings
from jobs import scheduled_tasks
from modules.notifications.container import build_notification_engine

logger = get_module_logger()


async def main():
    """Build the engine and run the scheduled jobs until stopped."""
    settings = get_settings()
    logger.info("application_startup", prefix=settings.PREFIX, git_sha=settings.GIT_SHA)
    list_configs(settings)

    loop = asyncio.get_running_loop()
    engine = build_notification_engine(settings)

    if not await engine.store.ping():
        logger.error("store_unreachable", backend=engine.store.backend_name)

    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    scheduled_tasks.init(engine, loop)
    stop_run_continuously = scheduled_tasks.run_continuously()

    try:
        await stop.wait()
    finally:
        stop_run_continuously.set()
        await engine.close()
        logger.info("application_shutdown")


def list_configs(settings):
    """List all configuration settings keys"""
    config_settings = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


if __name__ == "__main__":
    asyncio.run(main())
