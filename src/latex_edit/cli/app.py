"""
Main CLI application for latex-edit.

Provides a Typer-based command-line interface for inspecting LaTeX
structure, running insertions and rendering Markdown+LaTeX to HTML.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config import get_config_manager, load_config
from ..core.parser import debug_tokens, parse_latex
from ..core.positioning import PositionResolver
from ..editing.engine import CommandInsertionEngine
from ..editing.options import InsertionOptions, InsertionRequest, InsertionResult
from ..render.markdown import render_latex_markdown

# Initialize Typer app
app = typer.Typer(
    name="latex-edit",
    help="LaTeX-aware structural editing and Markdown+LaTeX rendering",
    add_completion=False,
    rich_markup_mode="rich"
)

# Global console for rich output
console = Console()

CURSOR_MARKER = "|"


class InsertKind(str, Enum):
    command = "command"
    fraction = "fraction"
    sqrt = "sqrt"
    subscript = "subscript"
    superscript = "superscript"
    matrix = "matrix"
    color = "color"
    wrap = "wrap"


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich at the configured level."""
    level = "DEBUG" if verbose else load_config().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _read_source(text: Optional[str], file_path: Optional[Path]) -> str:
    if file_path is not None:
        if not file_path.exists():
            console.print(f"[red]Error: File not found: {file_path}[/red]")
            raise typer.Exit(1)
        return file_path.read_text(encoding="utf-8")
    if text is None:
        console.print("[red]Error: Provide TEXT or --file[/red]")
        raise typer.Exit(1)
    return text


def _with_cursor(text: str, position: int) -> str:
    return text[:position] + CURSOR_MARKER + text[position:]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """
    LaTeX-aware structural text engine.
    """
    configure_logging(verbose)


@app.command()
def render(
    text: Optional[str] = typer.Argument(None, help="Markdown+LaTeX text to render"),
    file_path: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the document from a file"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the HTML to a file"),
    escape_html: Optional[bool] = typer.Option(None, "--escape-html/--no-escape-html", help="Escape HTML in user text"),
) -> None:
    """
    Render Markdown+LaTeX to HTML.
    """
    source = _read_source(text, file_path)
    if escape_html is None:
        escape_html = load_config().render.escape_html

    html = render_latex_markdown(source, escape_html=escape_html)

    if output_file is not None:
        output_file.write_text(html, encoding="utf-8")
        console.print(f"[green]Wrote {len(html)} characters to {output_file}[/green]")
        return

    console.print(html, markup=False, highlight=False, soft_wrap=True)


@app.command()
def tokens(
    text: Optional[str] = typer.Argument(None, help="Text to parse"),
    file_path: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the text from a file"),
) -> None:
    """
    Show the structural token tree.
    """
    source = _read_source(text, file_path)
    parsed = parse_latex(source)

    if not parsed:
        console.print("[yellow]No tokens (empty text)[/yellow]")
        return

    for line in debug_tokens(parsed, source):
        console.print(line, markup=False, highlight=False, soft_wrap=True)


@app.command()
def context(
    text: str = typer.Argument(..., help="Text to inspect"),
    position: int = typer.Argument(..., help="Cursor offset"),
) -> None:
    """
    Classify a cursor offset.
    """
    resolver = PositionResolver()
    info = resolver.get_cursor_context(text, position)
    cursor = resolver.calculate_cursor_position(text, info.position)

    table = Table(title="Cursor Context", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Position", f"{info.position} (line {cursor.line}, column {cursor.column})")
    table.add_row("Valid", str(info.is_valid))
    table.add_row("Context", info.context.value)
    table.add_row("In Math", str(info.in_math))
    table.add_row("After Opening Math", str(info.is_after_opening_math))
    table.add_row("Before Closing Math", str(info.is_before_closing_math))
    table.add_row("At Math Delimiter", str(resolver.is_at_math_delimiter(text, info.position)))
    if info.command is not None:
        table.add_row("Command", f"\\{info.command.name}")
    if info.token is not None:
        table.add_row("Argument", repr(info.token.text(text)))

    console.print(table)


@app.command()
def insert(
    kind: InsertKind = typer.Argument(..., help="What to insert"),
    text: str = typer.Argument("", help="Document text"),
    position: Optional[int] = typer.Option(None, "--position", "-p", help="Cursor offset (default: end of text)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Command name for 'command' and 'wrap'"),
    args: Optional[List[str]] = typer.Option(None, "--arg", "-a", help="Command argument (repeatable)"),
    end: Optional[int] = typer.Option(None, "--end", help="End of the range to wrap"),
    rows: Optional[int] = typer.Option(None, "--rows", help="Matrix rows"),
    cols: Optional[int] = typer.Option(None, "--cols", help="Matrix columns"),
    wrap_with_math: Optional[bool] = typer.Option(None, "--math/--no-math", help="Wrap the construct in $...$"),
    argument_index: Optional[int] = typer.Option(None, "--argument-index", "-i", help="Argument that receives the cursor"),
    absorb: bool = typer.Option(False, "--absorb", help="Use the text before the cursor as the first argument"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """
    Insert a LaTeX construct and show where the cursor lands.
    """
    config = load_config()
    if wrap_with_math is None and not config.insertion.wrap_with_math:
        wrap_with_math = False

    options = InsertionOptions(
        wrap_with_math=wrap_with_math,
        cursor_argument_index=argument_index,
        use_text_before_cursor=absorb or None,
    )
    position = len(text) if position is None else position
    engine = CommandInsertionEngine()

    if kind in (InsertKind.command, InsertKind.wrap) and not name:
        console.print(f"[red]Error: --name is required for '{kind.value}'[/red]")
        raise typer.Exit(1)
    if name:
        name = name.lstrip("\\")

    result: InsertionResult
    if kind == InsertKind.command:
        request = InsertionRequest(command_name=name, args=args or [], options=options)
        result = engine.apply(text, position, request)
    elif kind == InsertKind.wrap:
        stop = position if end is None else end
        low, high = sorted((max(0, position), min(len(text), stop)))
        result = engine.insert_command_with_wrapper(text, low, high, name, text[low:high], options)
    elif kind == InsertKind.fraction:
        result = engine.insert_fraction(text, position, options)
    elif kind == InsertKind.sqrt:
        result = engine.insert_sqrt(text, position, options, index=args[0] if args else None)
    elif kind == InsertKind.subscript:
        result = engine.insert_subscript(text, position, options)
    elif kind == InsertKind.superscript:
        result = engine.insert_superscript(text, position, options)
    elif kind == InsertKind.matrix:
        result = engine.insert_matrix(
            text,
            position,
            rows if rows is not None else config.insertion.matrix_rows,
            cols if cols is not None else config.insertion.matrix_cols,
            options,
        )
    else:
        color = tuple(args[:3]) if args and len(args) >= 3 else config.insertion.color
        result = engine.insert_color(text, position, options, color=color)

    if as_json:
        typer.echo(json.dumps(result.model_dump()))
        return

    console.print(Panel(
        Text(_with_cursor(result.new_text, result.new_cursor_position)),
        title=f"Cursor at {result.new_cursor_position}",
        border_style="green",
    ))


@app.command()
def tabstops(
    text: str = typer.Argument(..., help="Text to scan"),
) -> None:
    """
    List every valid cursor offset.
    """
    stops = PositionResolver().find_tab_stops(text)
    console.print(" ".join(str(stop) for stop in stops), highlight=False, soft_wrap=True)


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    create_default: bool = typer.Option(False, "--create-default", help="Create default config file"),
) -> None:
    """
    Manage latex-edit configuration.
    """
    config_manager = get_config_manager()

    if create_default:
        try:
            path = config_manager.create_default_config()
        except OSError as e:
            console.print(f"[red]Error: Could not write config file: {e}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]Created default configuration at {path}[/green]")
        return

    if show:
        config_info = config_manager.get_config_info()
        current_config = load_config()

        config_display = f"""[bold]latex-edit Configuration[/bold]

[bold cyan]Editor Settings:[/bold cyan]
• History Limit: {current_config.editor.history_limit}
• Normalize Adjacent Math: {current_config.editor.normalize_adjacent_math}

[bold yellow]Insertion Settings:[/bold yellow]
• Wrap With Math: {current_config.insertion.wrap_with_math}
• Matrix Size: {current_config.insertion.matrix_rows}x{current_config.insertion.matrix_cols}
• Color: {', '.join(current_config.insertion.color)}

[bold green]Render Settings:[/bold green]
• Escape HTML: {current_config.render.escape_html}

[bold magenta]Files:[/bold magenta]
• Config File: {config_info['config_file']}
• Exists: {'Yes' if config_info['config_exists'] else 'No'}
• Log Level: {current_config.log_level}"""

        console.print(Panel(config_display, border_style="green"))
        return

    # Default: show basic info
    console.print("Use [cyan]latex-edit config --show[/cyan] to see full configuration")
    console.print("Use [cyan]latex-edit config --create-default[/cyan] to create a default config file")


if __name__ == "__main__":
    app()
