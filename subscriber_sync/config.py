from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Redis settings (subscriber record store)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_SOCKET_TIMEOUT: float = 10.0
    SUBSCRIBER_COLLECTION: str = "mailing_list"

    # Mailchimp settings
    MAILCHIMP_API_KEY: str = ""
    MAILCHIMP_DC: str | None = None
    MAILCHIMP_LIST_NAME: str = "MailingList"
    MAILCHIMP_DEFAULT_TAGS: list[str] = ["2020", "newsletter"]
    MAILCHIMP_PAGE_SIZE: int = 1000

    # =================================================================
    # MAILCHIMP HTTP CLIENT SETTINGS
    # =================================================================
    MAILCHIMP_REQUEST_TIMEOUT: float = 30.0
    MAILCHIMP_MAX_RETRIES: int = 3
    MAILCHIMP_BACKOFF_FACTOR: float = 2.0

    # =================================================================
    # LIST CREATION TEMPLATE
    # =================================================================
    LIST_CONTACT_COMPANY: str = "cuHacking"
    LIST_CONTACT_ADDRESS1: str = "address"
    LIST_CONTACT_CITY: str = "Ottawa"
    LIST_CONTACT_STATE: str = "Ontario"
    LIST_CONTACT_ZIP: str = "zip"
    LIST_CONTACT_COUNTRY: str = "Canada"
    LIST_FROM_NAME: str = "cuHacking"
    LIST_FROM_EMAIL: str = "noreply@cuhacking.com"
    LIST_SUBJECT: str = "cuHacking"
    LIST_LANGUAGE: str = "English"
    LIST_PERMISSION_REMINDER: str = (
        "You're receiving this email because you signed up for our mailing list."
    )

    # Remove the remote member as well when a subscriber is deleted locally
    UNSUBSCRIBE_ON_REMOVE: bool = False

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # derive sensible defaults if not provided
    def mailchimp_dc(self) -> str:
        """
        Data center for the Mailchimp API, e.g. ``us6``.

        Mailchimp API keys end with ``-<dc>``; an explicit MAILCHIMP_DC wins.
        """
        if self.MAILCHIMP_DC:
            return self.MAILCHIMP_DC
        if "-" in self.MAILCHIMP_API_KEY:
            return self.MAILCHIMP_API_KEY.rsplit("-", 1)[1]
        return "us1"

    def mailchimp_base_url(self) -> str:
        return f"https://{self.mailchimp_dc()}.api.mailchimp.com/3.0"

    def get_list_template(self) -> dict:
        """
        Settings payload used when creating a new Mailchimp list.
        The ``name`` key is filled in by the caller.
        """
        return {
            "contact": {
                "company": self.LIST_CONTACT_COMPANY,
                "address1": self.LIST_CONTACT_ADDRESS1,
                "city": self.LIST_CONTACT_CITY,
                "state": self.LIST_CONTACT_STATE,
                "zip": self.LIST_CONTACT_ZIP,
                "country": self.LIST_CONTACT_COUNTRY,
            },
            "permission_reminder": self.LIST_PERMISSION_REMINDER,
            "campaign_defaults": {
                "from_name": self.LIST_FROM_NAME,
                "from_email": self.LIST_FROM_EMAIL,
                "subject": self.LIST_SUBJECT,
                "language": self.LIST_LANGUAGE,
            },
            "email_type_option": False,
        }


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide settings object once, at startup."""
    return Settings()
