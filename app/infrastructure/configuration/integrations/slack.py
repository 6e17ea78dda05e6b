"""Slack integration settings."""

from infrastructure.configuration.base import IntegrationSettings


class SlackSettings(IntegrationSettings):
    """Slack app configuration used by the Slack chat channel.

    The bot token for each workspace comes from the integration record;
    only the app-level client id is read from the environment. Without it
    the Slack channel reports itself unavailable and never calls the API.

    Environment Variables:
        SLACK_CLIENT_ID: Slack app client id (empty disables the channel)
        SLACK_API_BASE_URL: Override for the Slack Web API base URL

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.slack.is_configured:
            ...
        ```
    """

    SLACK_CLIENT_ID: str = ""
    SLACK_API_BASE_URL: str = "https://slack.com/api/"

    @property
    def is_configured(self) -> bool:
        return bool(self.SLACK_CLIENT_ID)
