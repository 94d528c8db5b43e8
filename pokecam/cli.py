"""Command-line interface for the card camera: live scan, one-shot detect, upload."""

import asyncio
import json
import re
from pathlib import Path
from typing import List, Optional

import cv2
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .capture.camera import CameraCapture
from .capture.extract import (
    card_filename,
    cards_for_export,
    extract_card_images,
    save_cards,
    toggle_card_selection,
)
from .capture.loop import CaptureLoop, CaptureState
from .capture.overlay import CameraOverlay
from .core.types import BoundingBox, ExtractedCard
from .detect.runner import CardDetectorService
from .identify.client import IdentifyClient
from .utils.config import ensure_output_dir, settings
from .utils.error_handler import PokecamError
from .utils.log import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

console = Console()

app = typer.Typer(
    name="pokecam",
    help="Pokemon card camera - detect, crop and identify cards",
    add_completion=False
)

WINDOW_NAME = "pokecam - SPACE capture, S save, U upload, 1-9 select, ESC quit"
KEY_ESC = 27
KEY_SPACE = 32

CARD_FILE_RE = re.compile(r"^card-(\d+)-(\d+(?:\.\d+)?)%\.png$")


def _print_boxes(boxes: List[BoundingBox], title: str) -> None:
    table = Table(title=title)
    table.add_column("#", style="cyan")
    table.add_column("Class", style="white")
    table.add_column("Confidence", style="green")
    table.add_column("Top-left", style="white")
    table.add_column("Bottom-right", style="white")

    for i, box in enumerate(boxes, start=1):
        table.add_row(
            str(i),
            box.class_name,
            f"{box.confidence:.1f}%",
            f"({box.x1:.0f}, {box.y1:.0f})",
            f"({box.x2:.0f}, {box.y2:.0f})",
        )
    console.print(table)


def _print_cards(cards: List[ExtractedCard]) -> None:
    table = Table(title=f"Extracted Cards ({len(cards)})")
    table.add_column("#", style="cyan")
    table.add_column("Confidence", style="green")
    table.add_column("Size", style="white")
    table.add_column("Selected", style="white")
    for i, card in enumerate(cards, start=1):
        table.add_row(
            str(i),
            f"{card.confidence:.1f}%",
            f"{card.image.shape[1]}x{card.image.shape[0]}",
            "✓" if card.selected else "",
        )
    console.print(table)


def _print_response(response) -> None:
    console.print(Panel(json.dumps(response, indent=2), title="Upload Response",
                        border_style="red" if isinstance(response, dict) and "error" in response else "blue"))


def load_card_files(directory: Path) -> List[ExtractedCard]:
    """Read ``card-N-XX.X%.png`` files back into cards, ordered by N."""
    found = []
    for path in directory.glob("card-*.png"):
        match = CARD_FILE_RE.match(path.name)
        if not match:
            continue
        image = cv2.imread(str(path))
        if image is None:
            logger.warning("Unreadable card image", path=str(path))
            continue
        found.append((int(match.group(1)), ExtractedCard(image=image, confidence=float(match.group(2)))))
    return [card for _, card in sorted(found, key=lambda item: item[0])]


async def _scan(model: str, camera_index: int, output_dir: str, identify_url: str) -> None:
    detector = CardDetectorService()
    with console.status("[bold green]Loading model...", spinner="dots"):
        await detector.load_model(model)
    console.print("[green]✓ Model loaded[/green]")

    camera = CameraCapture(camera_index=camera_index)
    camera.initialize()
    console.print("[green]✓ Camera initialized[/green]")

    overlay = CameraOverlay()
    client = IdentifyClient(url=identify_url)
    uploads: List[asyncio.Future] = []

    async def upload(cards: List[ExtractedCard]) -> None:
        console.print(f"[bold]Uploading {len(cards_for_export(cards))} cards...[/bold]")
        _print_response(await client.upload_and_report(cards))

    def on_render(loop: CaptureLoop) -> None:
        if loop.surface is not None:
            display = overlay.draw_status(loop.surface, loop.state.value, len(loop.extracted_cards))
            cv2.imshow(WINDOW_NAME, overlay.draw_instructions(display))

        key = cv2.waitKey(1) & 0xFF
        if key == KEY_ESC:
            loop.stop()
        elif key == KEY_SPACE:
            previous = loop.state
            loop.tap()
            if previous is CaptureState.PROCESSED:
                loop.extracted_cards = []
        elif loop.state is CaptureState.PROCESSED and loop.extracted_cards:
            if key == ord("s"):
                for path in save_cards(loop.extracted_cards, ensure_output_dir(output_dir)):
                    console.print(f"[green]✓ Saved {path}[/green]")
            elif key == ord("u"):
                uploads.append(asyncio.ensure_future(upload(list(loop.extracted_cards))))
            elif ord("1") <= key <= ord("9"):
                index = key - ord("1")
                if index < len(loop.extracted_cards):
                    loop.extracted_cards = toggle_card_selection(loop.extracted_cards, index)
                    _print_cards(loop.extracted_cards)

    capture_loop = CaptureLoop(camera, detector, overlay=overlay, on_render=on_render)
    console.print("\n[bold]Point the camera at your cards and press [bold]SPACE[/bold] to capture.[/bold]")
    try:
        await capture_loop.run()
    finally:
        capture_loop.stop()
        cv2.destroyAllWindows()
        if uploads:
            await asyncio.gather(*uploads)
        console.print("\n[green]✓ Camera released[/green]")


@app.command()
def scan(
    model: str = typer.Option(settings.MODEL_PATH, "--model", "-m", help="Model file, bundle directory or URL"),
    camera_index: int = typer.Option(settings.CAMERA_INDEX, "--camera", "-c", help="Camera index"),
    output_dir: str = typer.Option(settings.OUTPUT_DIR, "--output", "-o", help="Directory for saved crops"),
    identify_url: str = typer.Option(settings.IDENTIFY_URL, "--identify-url", help="Identify service endpoint"),
):
    """Live camera loop: preview, capture with SPACE, review and export the crops."""
    console.print(Panel.fit(
        "[bold blue]Pokemon Card Camera - SCAN Mode[/bold blue]\n"
        "[dim]preview → capture → detect → crop → save / upload[/dim]",
        border_style="blue"
    ))

    try:
        asyncio.run(_scan(model, camera_index, output_dir, identify_url))
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Scanning interrupted by user[/yellow]")
    except PokecamError as e:
        console.print(f"\n[red]❌ {e}[/red]")
        logger.error("Scan error", error=str(e))
        raise typer.Exit(1)


@app.command()
def detect(
    image: Path = typer.Argument(..., exists=True, dir_okay=False, help="Image to scan"),
    model: str = typer.Option(settings.MODEL_PATH, "--model", "-m", help="Model file, bundle directory or URL"),
    save: Optional[Path] = typer.Option(None, "--save", "-s", help="Write card crops to this directory"),
    as_json: bool = typer.Option(False, "--json", help="Print boxes as JSON"),
):
    """Detect cards in a single image file."""
    frame = cv2.imread(str(image))
    if frame is None:
        console.print(f"[red]❌ Could not read image: {image}[/red]")
        raise typer.Exit(1)

    async def run_detection() -> List[BoundingBox]:
        detector = CardDetectorService()
        await detector.load_model(model)
        return await detector.detect_single_image(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))

    try:
        boxes = asyncio.run(run_detection())
    except PokecamError as e:
        console.print(f"[red]❌ {e}[/red]")
        logger.error("Detection error", error=str(e))
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps([box.to_dict() for box in boxes]))
    else:
        _print_boxes(boxes, f"Detections in {image.name}")

    if save is not None:
        cards = extract_card_images(frame, boxes)
        for path in save_cards(cards, save):
            console.print(f"[green]✓ Saved {path}[/green]")
        if not cards:
            console.print("[yellow]⚠ No card above the display threshold[/yellow]")


@app.command()
def upload(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory of card-N-XX.X%.png crops"),
    identify_url: str = typer.Option(settings.IDENTIFY_URL, "--identify-url", help="Identify service endpoint"),
):
    """Upload previously saved card crops to the identify service."""
    cards = load_card_files(directory)
    if not cards:
        console.print(f"[yellow]⚠ No card images found in {directory}[/yellow]")
        raise typer.Exit(1)

    console.print(f"[bold]Uploading {len(cards)} cards: "
                  f"{', '.join(card_filename(c, i) for i, c in enumerate(cards))}[/bold]")
    response = asyncio.run(IdentifyClient(url=identify_url).upload_and_report(cards))
    _print_response(response)
    if isinstance(response, dict) and "error" in response:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
