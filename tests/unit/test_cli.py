"""Unit tests for the CLI module."""

import base64
import io
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner
from PIL import Image
from rich.panel import Panel
from rich.table import Table

from synthetik.cli import cli
from synthetik.error_handling import ConfigurationError, UpstreamError
from synthetik.models import GeneratedDesign, GenerationResponse


def _png_base64():
    buffer = io.BytesIO()
    Image.new("RGB", (2, 2), (0, 128, 255)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()


def _printed(mock_console, kind):
    return [call.args[0] for call in mock_console.print.call_args_list if call.args and isinstance(call.args[0], kind)]


@pytest.fixture
def runner():
    return CliRunner()


class TestStylesCommand:
    """Test the style listing command."""

    def test_lists_catalog(self, runner):
        with patch('synthetik.cli.console') as mock_console:
            result = runner.invoke(cli, ['styles'])

        assert result.exit_code == 0
        table, = _printed(mock_console, Table)
        assert table.title == "Sticker Styles"
        assert table.row_count == 20


class TestPromptCommand:
    """Test the offline prompt preview."""

    def test_shows_prompt_and_negative_prompt(self, runner):
        with patch('synthetik.cli.console') as mock_console:
            result = runner.invoke(cli, ['prompt', 'synthwave', '--subject', 'a cat'])

        assert result.exit_code == 0
        prompt_panel, negative_panel = _printed(mock_console, Panel)
        assert prompt_panel.title == "Prompt (RETRO_80S)"
        assert prompt_panel.renderable.startswith("Synthwave style")
        assert "of a cat" in prompt_panel.renderable
        assert negative_panel.renderable.startswith("text, words, letters")

    def test_custom_only(self, runner):
        with patch('synthetik.cli.console') as mock_console:
            result = runner.invoke(cli, ['prompt', 'ANIME', '--custom', 'moody oil painting', '--custom-only'])

        assert result.exit_code == 0
        prompt_panel, _ = _printed(mock_console, Panel)
        assert prompt_panel.renderable.startswith("Sticker design, of moody oil painting")
        assert prompt_panel.renderable.count("moody oil painting") == 1

    def test_variations(self, runner):
        with patch('synthetik.cli.console') as mock_console:
            result = runner.invoke(cli, ['prompt', 'kawaii', '--variations', '3'])

        assert result.exit_code == 0
        lines = [call.args[0] for call in mock_console.print.call_args_list if isinstance(call.args[0], str)]
        assert len(lines) == 3
        assert lines[1].startswith("[green]2.[/green]")
        assert "playful version" in lines[1]


class TestServeCommand:
    """Test the server command."""

    def test_starts_server(self, runner):
        with patch('synthetik.cli.console'), patch('synthetik.cli.run_server') as mock_run:
            result = runner.invoke(cli, ['serve', '--host', '0.0.0.0', '--port', '9000'])

        assert result.exit_code == 0
        mock_run.assert_called_once_with(host='0.0.0.0', port=9000, reload=False)


class TestGenerateCommand:
    """Test generation from the command line."""

    def test_saves_designs(self, runner, tmp_path):
        service = MagicMock()
        service.generate = AsyncMock(return_value=GenerationResponse(
            success=True,
            images=[
                GeneratedDesign(id=1, url="https://img.example/1.png", base64=_png_base64()),
                GeneratedDesign(id=2, url="https://img.example/2.png", base64=""),
            ],
            message="Successfully generated 2 sticker designs",
        ))

        with patch('synthetik.cli.console'), \
             patch('synthetik.cli.StickerGenerationService.from_environment', return_value=service):
            result = runner.invoke(cli, ['generate', 'ANIME', '--variations', '2', '--output-dir', str(tmp_path)])

        assert result.exit_code == 0
        assert (tmp_path / "synthetik-sticker-1.png").exists()
        assert not (tmp_path / "synthetik-sticker-2.png").exists()

        request = service.generate.call_args.args[0]
        assert request.style == "ANIME"
        assert request.number_of_variations == 2
        assert request.image_base64 is None

    def test_reads_reference_image(self, runner, tmp_path):
        photo = tmp_path / "photo.png"
        photo.write_bytes(b"fake-png")
        service = MagicMock()
        service.generate = AsyncMock(return_value=GenerationResponse(success=True, images=[], message="done"))

        with patch('synthetik.cli.console'), \
             patch('synthetik.cli.StickerGenerationService.from_environment', return_value=service):
            result = runner.invoke(cli, ['generate', 'ANIME', '--image', str(photo), '--output-dir', str(tmp_path)])

        assert result.exit_code == 0
        request = service.generate.call_args.args[0]
        assert request.image_base64 == f"data:image/png;base64,{base64.b64encode(b'fake-png').decode()}"

    def test_upstream_error(self, runner, tmp_path):
        service = MagicMock()
        service.generate = AsyncMock(side_effect=UpstreamError("insufficient_quota"))

        with patch('synthetik.cli.console') as mock_console, \
             patch('synthetik.cli.StickerGenerationService.from_environment', return_value=service):
            result = runner.invoke(cli, ['generate', 'ANIME', '--output-dir', str(tmp_path)])

        assert result.exit_code == 1
        mock_console.print.assert_any_call("[red]❌ API payment required[/red]")

    def test_missing_configuration(self, runner, tmp_path):
        with patch('synthetik.cli.console') as mock_console, \
             patch('synthetik.cli.StickerGenerationService.from_environment',
                   side_effect=ConfigurationError("OPENAI_API_KEY environment variable is not set")):
            result = runner.invoke(cli, ['generate', 'ANIME', '--output-dir', str(tmp_path)])

        assert result.exit_code == 1
        mock_console.print.assert_any_call("[red]❌ OpenAI API key not configured[/red]")

    def test_empty_style_is_rejected(self, runner, tmp_path):
        with patch('synthetik.cli.console') as mock_console, \
             patch('synthetik.cli.StickerGenerationService.from_environment') as mock_factory:
            result = runner.invoke(cli, ['generate', '', '--output-dir', str(tmp_path)])

        assert result.exit_code == 1
        assert "Please select a style for your sticker" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)
        mock_console.print.assert_any_call("[red]❌ Missing required field: style[/red]")
        mock_factory.assert_not_called()
