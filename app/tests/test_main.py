import asyncio
import signal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import main


@patch("main.logger")
def test_list_configs_logs_each_section(mock_logger, settings):
    main.list_configs(settings)

    sections = [
        c.kwargs["config_setting"]
        for c in mock_logger.info.call_args_list
        if c.args[0] == "configuration_loaded"
    ]
    assert {"notifications", "store", "queue", "slack", "discord"} <= set(sections)


@pytest.mark.asyncio
@patch("main.scheduled_tasks")
@patch("main.build_notification_engine")
@patch("main.get_settings")
async def test_main_wires_scheduler_and_closes_engine(
    mock_get_settings, mock_build, mock_scheduled_tasks, settings
):
    mock_get_settings.return_value = settings
    engine = MagicMock()
    engine.store.ping = AsyncMock(return_value=True)
    engine.close = AsyncMock()
    mock_build.return_value = engine
    stop_event = MagicMock()
    mock_scheduled_tasks.run_continuously.return_value = stop_event

    with patch("main.asyncio.Event") as mock_event_cls:
        mock_event_cls.return_value.wait = AsyncMock()
        await main.main()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.remove_signal_handler(sig)
    mock_build.assert_called_once_with(settings)
    mock_scheduled_tasks.init.assert_called_once_with(engine, loop)
    stop_event.set.assert_called_once()
    engine.close.assert_awaited_once()
