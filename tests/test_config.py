"""Tests for finch.config: AppConfig defaults and immutability."""

import dataclasses

import pytest

from finch.config import AppConfig


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.debug is False
        assert config.template_dir == "templates"
        assert config.template_extension == ".template"
        assert config.template_reload is False
        assert config.autoescape is False
        assert config.minify is True
        assert config.trailing_slash_redirect is False
        assert config.security_headers is True
        assert config.max_content_length == 16 * 1024 * 1024

    def test_frozen(self) -> None:
        config = AppConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.debug = True  # type: ignore[misc]

    def test_replace(self) -> None:
        config = dataclasses.replace(AppConfig(), template_reload=True)
        assert config.template_reload is True
