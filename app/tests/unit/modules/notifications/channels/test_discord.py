"""Unit tests for DiscordChannel.

The webhook endpoint is replaced with ``httpx.MockTransport`` so every test
asserts on the outgoing request and the mapped ChannelSendResult.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from infrastructure.configuration.integrations import DiscordSettings
from modules.notifications.channels.discord import DiscordChannel
from modules.notifications.domain import IntegrationStatus, NotificationType
from tests.factories.notifications import make_event, make_integration, make_quiet_hours


class WebhookEndpoint:
    """Collects requests and answers with queued responses (default 204)."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return httpx.Response(204)

    @property
    def bodies(self):
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def endpoint():
    return WebhookEndpoint()


@pytest.fixture
def make_channel(endpoint, integration_repository, health_tracker, rate_limiter, quiet_hours_engine):
    def _factory(**settings_overrides) -> DiscordChannel:
        return DiscordChannel(
            DiscordSettings(_env_file=None, **settings_overrides),
            integration_repository,
            health_tracker,
            rate_limiter,
            quiet_hours_engine,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(endpoint)),
        )

    return _factory


@pytest.fixture
def deploy_failed():
    return make_event(
        NotificationType.DEPLOYMENT_FAILED,
        payload={"title": "Deploy of api failed", "url": "https://app.example.com/d/1"},
    )


@pytest.mark.unit
class TestDiscordDelivery:
    @pytest.mark.asyncio
    async def test_success_posts_content_and_records_health(
        self, make_channel, endpoint, integration_repository, rate_limiter, deploy_failed
    ):
        await integration_repository.save(make_integration("discord"))

        result = await make_channel().send("ws-1", deploy_failed)

        assert result.sent is True
        assert result.channel_name == "discord"
        assert str(endpoint.requests[0].url) == "https://discord.com/api/webhooks/123/secret"
        assert endpoint.bodies == [
            {"content": "Deploy of api failed\nhttps://app.example.com/d/1"}
        ]
        stored = await integration_repository.get("ws-1", "discord")
        assert stored.message_count == 1
        assert await rate_limiter.get_current_count("discord-target-ws-1") == 1

    @pytest.mark.asyncio
    async def test_mention_prefix_for_critical(
        self, make_channel, endpoint, integration_repository, deploy_failed
    ):
        await integration_repository.save(
            make_integration("discord", mention_config={"critical": "@here", "normal": "@team"})
        )

        await make_channel().send("ws-1", deploy_failed)

        assert endpoint.bodies[0]["content"].startswith("@here Deploy of api failed")

    @pytest.mark.asyncio
    async def test_event_channel_override(self, make_channel, endpoint, integration_repository):
        override = "https://discord.com/api/webhooks/999/other"
        await integration_repository.save(
            make_integration("discord", event_channels={"story_completed": override})
        )

        await make_channel().send("ws-1", make_event("story_completed"))

        assert str(endpoint.requests[0].url) == override


@pytest.mark.unit
class TestDiscordErrors:
    @pytest.mark.asyncio
    async def test_429_is_retryable_with_retry_after(
        self, make_channel, endpoint, integration_repository, deploy_failed
    ):
        await integration_repository.save(make_integration("discord"))
        endpoint.responses.append(httpx.Response(429, headers={"Retry-After": "12"}))

        result = await make_channel().send("ws-1", deploy_failed)

        assert result.sent is False
        assert result.error == "RATE_LIMITED"
        assert result.retry_after == 12
        assert result.retryable is True
        stored = await integration_repository.get("ws-1", "discord")
        assert stored.error_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403, 404])
    async def test_rejected_webhook_marks_integration_invalid(
        self, make_channel, endpoint, integration_repository, deploy_failed, status_code
    ):
        await integration_repository.save(make_integration("discord"))
        endpoint.responses.append(httpx.Response(status_code))

        result = await make_channel().send("ws-1", deploy_failed)

        assert result.error == "integration_invalid"
        assert result.retryable is False
        stored = await integration_repository.get("ws-1", "discord")
        assert stored.status == IntegrationStatus.INVALID_WEBHOOK

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(
        self, make_channel, endpoint, integration_repository, deploy_failed
    ):
        await integration_repository.save(make_integration("discord"))
        endpoint.responses.append(httpx.Response(502))

        result = await make_channel().send("ws-1", deploy_failed)

        assert result.error == "SERVER_ERROR"
        assert result.retryable is True

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(
        self, make_channel, endpoint, integration_repository, deploy_failed
    ):
        await integration_repository.save(make_integration("discord"))
        endpoint.responses.append(httpx.ConnectTimeout("timed out"))

        result = await make_channel().send("ws-1", deploy_failed)

        assert result.error == "TIMEOUT"
        assert result.retryable is True

    @pytest.mark.asyncio
    async def test_three_failures_flip_integration_to_error(
        self, make_channel, endpoint, integration_repository, deploy_failed
    ):
        await integration_repository.save(make_integration("discord"))
        endpoint.responses.extend([httpx.Response(500)] * 3)
        channel = make_channel()

        for _ in range(3):
            await channel.send("ws-1", deploy_failed)

        stored = await integration_repository.get("ws-1", "discord")
        assert stored.status == IntegrationStatus.ERROR


@pytest.mark.unit
class TestDiscordGates:
    @pytest.mark.asyncio
    async def test_disabled_channel(self, make_channel, endpoint, deploy_failed):
        result = await make_channel(DISCORD_ENABLED=False).send("ws-1", deploy_failed)

        assert result.error == "not_configured"
        assert endpoint.requests == []

    @pytest.mark.asyncio
    async def test_missing_integration(self, make_channel, endpoint, deploy_failed):
        result = await make_channel().send("ws-1", deploy_failed)

        assert result.error == "not_connected"
        assert endpoint.requests == []

    @pytest.mark.asyncio
    async def test_invalid_integration_is_skipped(
        self, make_channel, endpoint, integration_repository, deploy_failed
    ):
        await integration_repository.save(
            make_integration("discord", status=IntegrationStatus.INVALID_WEBHOOK)
        )

        result = await make_channel().send("ws-1", deploy_failed)

        assert result.error == "integration_invalid"
        assert endpoint.requests == []

    @pytest.mark.asyncio
    async def test_rate_limit_gate(
        self, make_channel, endpoint, integration_repository, deploy_failed
    ):
        await integration_repository.save(make_integration("discord", rate_limit_per_minute=1))
        channel = make_channel()

        first = await channel.send("ws-1", deploy_failed)
        second = await channel.send("ws-1", deploy_failed)

        assert first.sent is True
        assert second.error == "rate_limited"
        assert second.retryable is True
        assert second.retry_after == 60
        assert len(endpoint.requests) == 1

    @pytest.mark.asyncio
    async def test_integration_quiet_hours_suppress_non_critical(
        self, make_channel, endpoint, integration_repository, clock, deploy_failed
    ):
        await integration_repository.save(
            make_integration("discord", quiet_hours=make_quiet_hours())
        )
        clock.set(datetime(2025, 1, 15, 23, 0, tzinfo=timezone.utc))
        channel = make_channel()

        quiet = await channel.send("ws-1", make_event("story_completed"))
        critical = await channel.send("ws-1", deploy_failed)

        assert quiet.error == "quiet_hours"
        assert critical.sent is True
        assert len(endpoint.requests) == 1
