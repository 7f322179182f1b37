"""Application configuration.

AppConfig is a frozen dataclass, immutable after creation, no string-key
dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, template_reload=True)
    """

    debug: bool = False

    # Templates
    template_dir: str | Path = "templates"
    template_extension: str = ".template"
    template_reload: bool = False  # Recompile every template before each request
    autoescape: bool = False
    minify: bool = True

    # Routing
    trailing_slash_redirect: bool = False

    # Responses
    security_headers: bool = True

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB
