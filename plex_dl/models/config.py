"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

DEFAULT_ACCOUNT_URL = "https://plex.tv"
DEFAULT_OUTPUT_DIR = "downloads"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 32600

# How each resolved part is handed off
TRIGGER_MODES = {
    "file": "Stream each part to the output directory",
    "browser": "Open each part's download URL in a new browser tab",
}


class DownloaderConfig(BaseModel):
    """A validated configuration model for the application."""

    # Authentication & API
    token: str = ""
    account_url: str = DEFAULT_ACCOUNT_URL
    timeout: int = 60

    # Download Settings
    output_dir: str = DEFAULT_OUTPUT_DIR
    trigger: str = "file"
    dry_run: bool = False

    # Companion service
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("account_url")
    @classmethod
    def validate_account_url(cls, v: str) -> str:
        """Requires an http(s) URL and drops any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Account URL must start with http:// or https://.")
        return v.rstrip("/")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 5 or v > 600:
            raise ValueError("Timeout must be between 5 and 600 seconds.")
        return v

    @field_validator("output_dir")
    @classmethod
    def validate_output_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("Output directory cannot be empty.")
        return v

    @field_validator("trigger")
    @classmethod
    def validate_trigger(cls, v: str) -> str:
        v = v.lower()
        if v not in TRIGGER_MODES:
            raise ValueError(
                f"Trigger must be one of: {', '.join(sorted(TRIGGER_MODES))}."
            )
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if v < 1024 or v > 65535:
            raise ValueError("Port must be between 1024 and 65535.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path", "dry_run"}
        return {key for key in cls.model_fields if key not in internal_fields}
