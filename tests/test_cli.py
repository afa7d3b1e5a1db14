"""Tests for CLI commands.

Tests serve, info and locate commands.
"""

from unittest.mock import patch

from typer.testing import CliRunner

from rescale_proxy.cli import app
from rescale_proxy.config import Settings
from rescale_proxy.images import ContentStore, Image, ImageKey, RescaleType

runner = CliRunner()


class TestServeCommand:
    """Test serve command."""

    def test_serve_runs_uvicorn(self, test_settings):
        with (
            patch("rescale_proxy.cli.settings", test_settings),
            patch("uvicorn.run") as mock_run,
        ):
            result = runner.invoke(app, ["serve", "--port", "9000"])

            assert result.exit_code == 0
            mock_run.assert_called_once()
            assert mock_run.call_args.kwargs["port"] == 9000

    def test_serve_fails_without_config(self, cache_dir):
        empty = Settings(
            image_rescale_url_thumbnail="",
            image_rescale_url_large="",
            referer="",
            cache_dir=str(cache_dir),
        )
        with (
            patch("rescale_proxy.cli.settings", empty),
            patch("uvicorn.run") as mock_run,
        ):
            result = runner.invoke(app, ["serve"])

            assert result.exit_code == 1
            mock_run.assert_not_called()


class TestInfoCommand:
    """Test info command."""

    def test_info_displays_settings(self, test_settings):
        with patch("rescale_proxy.cli.settings", test_settings):
            result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert "Rescale Proxy Configuration" in result.output
        assert "not initialized" in result.output

    def test_info_counts_disk_entries(self, test_settings, sample_image):
        store = ContentStore(test_settings.cache_path)
        store.store(ImageKey(rescale_type=RescaleType.LARGE, url="https://e.com/a"), sample_image)

        with patch("rescale_proxy.cli.settings", test_settings):
            result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert "Large: 1" in result.output
        assert "Thumbnail: 0" in result.output


class TestLocateCommand:
    """Test locate command."""

    def test_locate_uncached(self, test_settings):
        with patch("rescale_proxy.cli.settings", test_settings):
            result = runner.invoke(app, ["locate", "thumbnail", "https://e.com/a"])

        assert result.exit_code == 0
        assert "Not cached" in result.output

    def test_locate_cached(self, test_settings):
        key = ImageKey(rescale_type=RescaleType.THUMBNAIL, url="https://e.com/a")
        ContentStore(test_settings.cache_path).store(key, Image(content_type="image/gif", body=b"GIF89a"))

        with patch("rescale_proxy.cli.settings", test_settings):
            result = runner.invoke(app, ["locate", "thumbnail", "https://e.com/a"])

        assert result.exit_code == 0
        assert "image/gif, 6 bytes" in result.output

    def test_locate_unknown_type(self, test_settings):
        with patch("rescale_proxy.cli.settings", test_settings):
            result = runner.invoke(app, ["locate", "huge", "https://e.com/a"])

        assert result.exit_code == 1


class TestHelpOutput:
    """Test help output for commands."""

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "serve" in result.output
        assert "info" in result.output
        assert "locate" in result.output
