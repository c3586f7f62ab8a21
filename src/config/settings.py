"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use SAMPLEDOWN_ prefix (e.g., SAMPLEDOWN_STRICT_MODE=true).

Settings can also be loaded from a .env file in the project root.
"""

import re
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use SAMPLEDOWN_ prefix.

    Examples:
        SAMPLEDOWN_STRICT_MODE=true
        SAMPLEDOWN_PLAYGROUND_MIN_LINES=6
        SAMPLEDOWN_COMPILER_DEFAULTS_FILE=compiler.yaml
    """

    model_config = SettingsConfigDict(
        env_prefix="SAMPLEDOWN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Placeholder store configuration
    placeholder_prefix: str = Field(
        default="%SAMPLERENDER",
        description="Prefix for reservation tokens standing in for rendered samples",
    )

    placeholder_suffix: str = Field(
        default="%",
        description="Suffix for reservation tokens standing in for rendered samples",
    )

    # Compilation configuration
    strict_mode: bool = Field(
        default=False,
        description="Strict mode: a failing sample fails the whole page",
    )

    lenient_spans: bool = Field(
        default=False,
        description="Drop disagreeing semantic spans instead of failing the sample",
    )

    sample_languages: List[str] = Field(
        default=["py", "python", "py3"],
        description="Fence tags treated as analyzable samples",
    )

    compiler_defaults_file: Optional[str] = Field(
        default=None,
        description="Optional YAML file overlaying the default compiler options",
    )

    # Rendering configuration
    cut_marker: str = Field(
        default="---cut---",
        description="Sentinel comment; only text after it is displayed",
    )

    echo_placeholder: str = Field(
        default="(no quick info)",
        description="Text echoed for a query marker with nothing to show",
    )

    playground_url: str = Field(
        default="https://pythontutor.com/render.html#mode=edit&code={code}",
        description="Playground link template; {code} receives the url-encoded sample",
    )

    playground_min_lines: int = Field(
        default=4,
        description="Minimum displayed lines before the playground link is added",
    )

    pygments_style: str = Field(
        default="monokai",
        description="Pygments style used for the decorative token classes",
    )

    def placeHolder_make(self, pass_id: str, index: int) -> str:
        """
        Generate a reservation token for a rendered sample.

        Args:
            pass_id: Identifier unique to one document conversion
            index: Zero-based index of the sample within that conversion

        Returns:
            Token string (e.g., "%SAMPLERENDER3fa9c1-0%")

        Example:
            >>> settings = AppSettings()
            >>> settings.placeHolder_make("abc", 0)
            '%SAMPLERENDERabc-0%'
        """
        return f"{self.placeholder_prefix}{pass_id}-{index}{self.placeholder_suffix}"

    def placeHolder_pattern(self, token: str) -> "re.Pattern[str]":
        """
        Case-insensitive pattern for one reservation token.

        A paragraph the markdown converter wrapped around the token on its
        own is matched along with it.

        Example:
            >>> settings = AppSettings()
            >>> bool(settings.placeHolder_pattern("%X-0%").fullmatch("<p>%x-0%</p>"))
            True
        """
        escaped = re.escape(token)
        return re.compile(rf"<p>\s*{escaped}\s*</p>|{escaped}", re.IGNORECASE)


# Singleton instance - import this in your code
appsettings = AppSettings()
