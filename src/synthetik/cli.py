"""Command line interface for the Synthetik sticker generator."""

import asyncio
import base64
import mimetypes
from pathlib import Path

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from synthetik.error_handling import StickerError, response_for
from synthetik.models import GenerationRequest
from synthetik.orchestrator import effective_variation_count
from synthetik.prompt_engineering import PromptComposer
from synthetik.services.generation_service import StickerGenerationService
from synthetik.styles import STICKER_STYLES, resolve_style
from synthetik.utils import save_image_from_base64
from synthetik.web.app import run_server

console = Console()


def _read_image_as_data_url(path: Path) -> str:
    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    encoded = base64.b64encode(path.read_bytes()).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


@click.group()
def cli():
    """Synthetik - Generate AI stickers from styles, prompts and photos."""
    load_dotenv()


@cli.command()
@click.option(
    '--host',
    default='127.0.0.1',
    help='Host to bind to (default: 127.0.0.1)'
)
@click.option(
    '--port',
    default=8000,
    type=int,
    help='Port to bind to (default: 8000)'
)
@click.option(
    '--reload',
    is_flag=True,
    help='Enable auto-reload for development'
)
def serve(host: str, port: int, reload: bool):
    """Start the sticker generation API server."""
    console.print(f"[bold cyan]Starting Synthetik on http://{host}:{port}[/bold cyan]")
    run_server(host=host, port=port, reload=reload)


@cli.command()
def styles():
    """List the style catalog."""
    table = Table(title="Sticker Styles")
    table.add_column("Key", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Id", style="green")
    table.add_column("Description", style="yellow")

    for key, style in STICKER_STYLES.items():
        table.add_row(key.value, f"{style.emoji} {style.name}", style.id, style.description)

    console.print(table)


@cli.command()
@click.argument('style')
@click.option('--subject', default=None, help='What the sticker should depict')
@click.option('--custom', 'custom_prompt', default=None, help='Additional free text')
@click.option('--custom-only', is_flag=True, help='Use the custom text instead of the catalog style')
@click.option('--variations', default=1, type=int, help='Number of variation prompts to show')
def prompt(style: str, subject: str | None, custom_prompt: str | None, custom_only: bool, variations: int):
    """Preview the prompt for STYLE without calling any API."""
    composer = PromptComposer()
    style_key = resolve_style(style)
    final_subject = composer.build_subject(subject, custom_prompt, style_key)
    compose_key = None if custom_only and custom_prompt else style_key
    extra_text = None if custom_prompt and custom_prompt.strip() == final_subject else custom_prompt

    composed = composer.compose(final_subject, compose_key, extra_text)
    console.print(Panel(composed.prompt, title=f"Prompt ({style_key.value})", border_style="cyan"))
    console.print(Panel(composed.negative_prompt, title="Negative prompt", border_style="red"))

    count = effective_variation_count(variations)
    if count > 1:
        for index, text in enumerate(composer.build_variation_prompts(final_subject, compose_key, extra_text, count), start=1):
            console.print(f"[green]{index}.[/green] {text}")


@cli.command()
@click.argument('style')
@click.option('--subject', default=None, help='What the sticker should depict')
@click.option('--custom', 'custom_prompt', default=None, help='Additional free text or a custom style')
@click.option('--custom-only', is_flag=True, help='Use the custom text instead of the catalog style')
@click.option('--image', 'image_path', type=click.Path(exists=True, dir_okay=False, path_type=Path), help='Reference photo')
@click.option('--variations', default=1, type=int, help='Number of designs (1-4)')
@click.option('--output-dir', default='synthetik_output', type=click.Path(file_okay=False, path_type=Path), help='Where to save the stickers')
def generate(
    style: str,
    subject: str | None,
    custom_prompt: str | None,
    custom_only: bool,
    image_path: Path | None,
    variations: int,
    output_dir: Path,
):
    """Generate stickers in STYLE and save them as PNG files."""
    try:
        request = GenerationRequest(
            style=style,
            subject=subject,
            custom_prompt=custom_prompt,
            custom_prompt_only=custom_only,
            number_of_variations=variations,
            image_base64=_read_image_as_data_url(image_path) if image_path else None,
        )
    except ValidationError:
        console.print("[red]❌ Missing required field: style[/red]")
        raise click.ClickException("Please select a style for your sticker")

    try:
        service = StickerGenerationService.from_environment()
        with console.status("[bold cyan]Generating stickers..."):
            response = asyncio.run(service.generate(request))
    except StickerError as e:
        error = response_for(e)
        console.print(f"[red]❌ {error.error}[/red]")
        raise click.ClickException(error.message)

    for design in response.images or []:
        path = output_dir / f"synthetik-sticker-{design.id}.png"
        if design.base64 and save_image_from_base64(design.base64, path):
            console.print(f"[green]📷 Saved sticker: {path}[/green]")
        else:
            console.print(f"[yellow]Could not save design {design.id}; download it from {design.url}[/yellow]")

    console.print(f"\n[bold green]✨ {response.message}[/bold green]")


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
