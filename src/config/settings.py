"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use INKBRIDGE_ prefix (e.g., INKBRIDGE_SANITIZER_BACKEND=scan).

Settings can also be loaded from a .env file in the project root.
"""

from typing import Literal
from urllib.parse import quote

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use INKBRIDGE_ prefix.

    Examples:
        INKBRIDGE_SANITIZER_BACKEND=scan
        INKBRIDGE_EVIDENCE_HREF_TEMPLATE=/files/evidence/{id}
        INKBRIDGE_HIGHLIGHT_CODE=false
    """

    model_config = SettingsConfigDict(
        env_prefix="INKBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Sanitizer configuration
    sanitizer_backend: Literal["auto", "dom", "scan"] = Field(
        default="auto",
        description="Sanitizer backend: 'dom' (parse and walk), 'scan' (DOM-less regex scanner) "
        "or 'auto' (dom when an HTML parser is available in this runtime)",
    )

    # Directive configuration
    evidence_href_template: str = Field(
        default="/api/evidence/{id}",
        description="Default href for evidence links; {id} is replaced with the URL-quoted evidence id",
    )

    toc_header_text: str = Field(
        default="Table of Contents",
        description="Header text of the table-of-contents scaffold",
    )

    # Markdown configuration
    allow_raw_html: bool = Field(
        default=True,
        description="Pass raw HTML found in Markdown through to the sanitizer instead of escaping it",
    )

    highlight_code: bool = Field(
        default=True,
        description="Syntax highlight fenced code blocks with Pygments",
    )

    strip_legacy_title_paragraphs: bool = Field(
        default=True,
        description="Remove callout body paragraphs that repeat the callout title "
        "(left behind by an older editor renderer)",
    )

    debug_mode: bool = Field(
        default=False,
        description="Emit every log message at trace verbosity, with or without a connected state",
    )

    def evidenceHref_make(self, evidence_id: str) -> str:
        """
        Build the default href for an evidence link.

        Args:
            evidence_id: Evidence identifier as written in the document

        Returns:
            Relative URL pointing at the evidence download endpoint

        Example:
            >>> settings = AppSettings()
            >>> settings.evidenceHref_make('SOC2 report')
            '/api/evidence/SOC2%20report'
        """
        return self.evidence_href_template.replace("{id}", quote(evidence_id, safe=""))


# Singleton instance - import this in your code
appsettings = AppSettings()
