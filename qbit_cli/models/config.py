"""
Pydantic model for client configuration.
Provides robust validation for connection settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TIMEOUT = 30.0


class ClientConfig(BaseModel):
    """A validated, immutable set of connection settings for one Web API client."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    base_url: str
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    timeout: float = DEFAULT_TIMEOUT

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Requires an http(s) URL and strips any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Base URL must start with http:// or https://, but got: {v!r}"
            )
        return v.rstrip("/")

    @field_validator("username", "password")
    @classmethod
    def empty_to_none(cls, v: str | None) -> str | None:
        """Treats blank credentials as not supplied."""
        return v or None

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeout must be a positive number of seconds.")
        return v

    @property
    def has_credentials(self) -> bool:
        """True when both a username and a password were supplied."""
        return bool(self.username and self.password)

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return set(cls.model_fields)
