from __future__ import annotations
import logging
import time
from pathlib import Path
import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from santo_nordeste.codec import DecodeError, parse_data_uri
from santo_nordeste.config import Config
from santo_nordeste.formatter import format_recipe
from santo_nordeste.gemini import GenerationClient
from santo_nordeste.models import Mode, Recipe
from santo_nordeste.playback import PlaybackController, PlaybackError, PlaybackState
from santo_nordeste.session import RecipeSession

console = Console()
err_console = Console(stderr=True)

SHELL_HELP = (
    "Type a dish (or your ingredients in pantry mode) to get a recipe.\n"
    "Commands: :mode traditional|pantry, :list, :show N, :play N, :stop, :help, :quit"
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def cli(verbose: bool):
    """Santo Nordeste: AI-generated recipes from the Brazilian Northeast."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config() -> Config:
    try:
        return Config()
    except ValidationError:
        err_console.print(
            "[red]Not configured:[/red] GEMINI_API_KEY environment variable is not set."
        )
        raise SystemExit(1)


def _show(recipe: Recipe) -> None:
    console.print()
    console.print(format_recipe(recipe), markup=False, highlight=False)
    if not recipe.image_url:
        console.print("\n[dim](no image available)[/dim]")
    console.print()


def _save_image(recipe: Recipe, path: Path) -> None:
    if not recipe.image_url:
        console.print("[yellow]No image was generated for this recipe.[/yellow]")
        return
    try:
        _, data = parse_data_uri(recipe.image_url)
    except DecodeError as e:
        err_console.print(f"[red]Error:[/red] Could not decode image: {e}")
        return
    try:
        path.write_bytes(data)
    except OSError as e:
        err_console.print(f"[red]Error:[/red] Could not save image: {e}")
        return
    console.print(f"[green]✓[/green] Image saved to {path}")


def _wait_for_playback(player: PlaybackController) -> None:
    console.print("Playing narration (Ctrl+C to stop)...")
    try:
        while player.is_playing:
            time.sleep(0.1)
    except KeyboardInterrupt:
        player.stop()
        console.print("Stopped.")


@cli.command()
@click.argument("query", nargs=-1, required=True)
@click.option("--pantry", is_flag=True, help="Treat QUERY as the ingredients you have at home.")
@click.option("--play", is_flag=True, help="Narrate the recipe after showing it.")
@click.option(
    "--save-image", "save_image", default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the generated dish photo to this file.",
)
def search(query: tuple[str, ...], pantry: bool, play: bool, save_image: Path | None):
    """Generate a recipe for a dish, or from your pantry with --pantry."""
    config = _load_config()
    with GenerationClient(config) as client:
        session = RecipeSession(client, suggestions=config.suggested_dishes)
        if pantry:
            session.set_mode(Mode.PANTRY)

        console.print("[dim]Inventando uma delícia...[/dim]" if pantry else "[dim]Buscando temperos...[/dim]")
        recipe = session.search(" ".join(query))
        if recipe is None:
            err_console.print(f"[red]Error:[/red] {session.state.error or 'Nothing to search for.'}")
            raise SystemExit(1)

        _show(recipe)
        if save_image:
            _save_image(recipe, save_image)
        if play:
            with PlaybackController(client, sample_rate=config.sample_rate) as player:
                console.print("[dim]Preparing narration...[/dim]")
                if player.toggle(recipe) is PlaybackState.PLAYING:
                    _wait_for_playback(player)
                else:
                    console.print("[yellow]Narration is not available right now.[/yellow]")


@cli.command()
def suggestions():
    """List suggested traditional dishes."""
    table = Table(title="Pratos sugeridos")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Dish")
    for i, dish in enumerate(_load_config().suggested_dishes, start=1):
        table.add_row(str(i), dish)
    console.print(table)


def _recipe_at(session: RecipeSession, arg: str) -> Recipe | None:
    recipes = session.state.recipes
    if not arg.isdigit() or not 1 <= int(arg) <= len(recipes):
        err_console.print(f"[red]Error:[/red] Use a number between 1 and {len(recipes)} (see :list).")
        return None
    return recipes[int(arg) - 1]


def _list_recipes(session: RecipeSession) -> None:
    recipes = session.state.recipes
    if not recipes:
        console.print("O fogo ainda está apagado. No recipes yet.")
        return
    table = Table(title=f"{len(recipes)} receitas na mesa")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Time")
    table.add_column("Difficulty")
    table.add_column("Image")
    for i, r in enumerate(recipes, start=1):
        table.add_row(str(i), r.title, r.cooking_time, r.difficulty.value, "✓" if r.image_url else "-")
    console.print(table)


def _report_search(session: RecipeSession) -> None:
    state = session.state
    if state.error:
        console.print(f"[red]{state.error}[/red]")
    elif state.recipes:
        latest = state.recipes[0]
        console.print(f"[green]✓[/green] [bold]{latest.title}[/bold]: {latest.description}")
        console.print("[dim]Use :show 1 to read it or :play 1 to hear it.[/dim]")


def _run_command(line: str, session: RecipeSession, player: PlaybackController) -> None:
    command, _, arg = line[1:].partition(" ")
    arg = arg.strip()

    if command == "mode":
        try:
            session.set_mode(Mode(arg))
        except ValueError:
            err_console.print("[red]Error:[/red] Mode must be 'traditional' or 'pantry'.")
            return
        console.print(f"[green]✓[/green] Mode: [bold]{arg}[/bold]")
    elif command == "list":
        _list_recipes(session)
    elif command == "show":
        recipe = _recipe_at(session, arg)
        if recipe:
            session.select_recipe(recipe)
            _show(recipe)
    elif command == "play":
        recipe = _recipe_at(session, arg)
        if recipe is None:
            return
        session.select_recipe(recipe)
        console.print("[dim]Preparing narration...[/dim]")
        state = player.toggle(recipe)
        if state is PlaybackState.PLAYING:
            console.print(f"[green]♪[/green] Narrating {recipe.title} (:stop to stop)")
        else:
            console.print("Narration stopped.")
    elif command == "stop":
        player.stop()
    elif command == "help":
        console.print(SHELL_HELP)
    else:
        err_console.print(f"[red]Error:[/red] Unknown command ':{command}'. Type :help for the list.")


@cli.command()
@click.option("--no-seed", is_flag=True, help="Do not fetch a random suggestion on start.")
def shell(no_seed: bool):
    """Interactive recipe session with narration."""
    config = _load_config()
    with GenerationClient(config) as client, \
         PlaybackController(client, sample_rate=config.sample_rate) as player:
        session = RecipeSession(client, suggestions=config.suggested_dishes)
        console.print(f"\n[bold]Santo Nordeste[/bold]: receitas com alma\n{SHELL_HELP}\n")

        if not no_seed:
            console.print("[dim]Acendendo o fogo com uma sugestão...[/dim]")
            session.seed()
            _report_search(session)

        while True:
            mode = session.state.mode
            label = "O que vamos cozinhar hoje" if mode is Mode.TRADITIONAL else "O que tem na sua dispensa"
            try:
                line = click.prompt(f"\n{label}", default="", show_default=False).strip()
            except click.Abort:
                break
            if not line:
                continue
            if line in (":quit", ":q"):
                break
            if line.startswith(":"):
                try:
                    _run_command(line, session, player)
                except PlaybackError as e:
                    err_console.print(f"[red]Error:[/red] {e}")
                continue

            console.print("[dim]Buscando temperos...[/dim]" if mode is Mode.TRADITIONAL else "[dim]Inventando uma delícia...[/dim]")
            session.search(line)
            _report_search(session)

    console.print("\nAté logo!")
