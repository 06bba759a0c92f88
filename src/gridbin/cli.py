"""gridbin CLI for building bins from outline documents.

Provides command-line access to the grid calculation, bin assembly,
preview meshing and STEP export.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from binmodel import dimensions
from binmodel.grid import calculate_minimal_grid_area
from binmodel.schema import BinParameterError, BinParameters, MalformedOutlineError
from binmodel.serialize import OutlineDocument, load_document
from kernel.export import ExportError, mesh_to_json_bytes, write_output
from kernel.occt import OCCTNotAvailableError, OcctKernel, get_occt_info
from kernel.protocol import KernelError
from kernel.summary import SolidSummary, summarize_solid

from .assembler import BinAssembler, EmptyModelError
from .config import Settings
from .logging_setup import configure_for_environment


# Create Typer app
app = typer.Typer(
    name="gridbin",
    help="Build gridded storage bins from 2D outline documents",
    add_completion=False,
)

console = Console()

TOTAL_HEIGHT_OPTION = typer.Option(
    None, "--total-height", help="Overall bin height in mm (default: from document or depth)"
)
BASE_HEIGHT_OPTION = typer.Option(
    None, "--base-height", help="Gridded base height in mm (default: from document)"
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable verbose output")

_BUILD_ERRORS = (
    BinParameterError,
    MalformedOutlineError,
    KernelError,
    ExportError,
    OCCTNotAvailableError,
    EmptyModelError,
)


def _setup(verbose: bool) -> Settings:
    settings = Settings.from_env()
    configure_for_environment(settings.log_env, level="DEBUG" if verbose else "WARNING")
    return settings


def _display_error(message: str, error: Optional[Exception] = None) -> None:
    """Display error message with styling."""
    error_text = Text(f"❌ {message}", style="bold red")
    if error:
        error_text.append(f"\n   {str(error)}", style="red")
    console.print(Panel(error_text, title="Error", border_style="red"))


def _display_success(message: str) -> None:
    """Display success message with styling."""
    success_text = Text(f"✅ {message}", style="bold green")
    console.print(Panel(success_text, title="Success", border_style="green"))


def _display_warning(message: str) -> None:
    """Display warning message with styling."""
    warning_text = Text(f"⚠️  {message}", style="bold yellow")
    console.print(Panel(warning_text, title="Warning", border_style="yellow"))


def _format_file_size(size: float) -> str:
    """Format file size in human-readable units."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def _load(path: str) -> OutlineDocument:
    try:
        document = load_document(path)
    except (FileNotFoundError, ValueError) as e:
        _display_error("Failed to load outline document", e)
        raise typer.Exit(1)

    console.print(f"📄 Loaded {len(document.outlines)} outline(s) from {path}")
    return document


def _resolve_parameters(
    document: OutlineDocument,
    total_height: Optional[float],
    base_height: Optional[float],
) -> BinParameters:
    """Command-line heights win over the document's; depth decides otherwise."""
    base = document.base_height if base_height is None else base_height
    total = document.total_height if total_height is None else total_height
    if total is None:
        return BinParameters.default_for(document.outlines, base)
    return BinParameters(total_height=total, base_height=base)


@app.command()
def info() -> None:
    """Display kernel binding status and the bin dimensions."""
    console.print(Panel(
        "Gridded storage bins from 2D outlines\n"
        "Tiled base, bottom plate and walls with one pocket per outline",
        title="gridbin",
        border_style="blue"
    ))

    occt_info = get_occt_info()

    table = Table(title="OCCT Binding Status")
    table.add_column("Binding", style="cyan")
    table.add_column("Available", style="green")
    table.add_column("Version", style="yellow")
    table.add_row(
        "OCP",
        "✅" if occt_info["ocp_available"] else "❌",
        str(occt_info["occt_version"]) if occt_info["ocp_available"] else "N/A",
    )
    console.print(table)

    dims = Table(title="Bin Dimensions (mm)")
    dims.add_column("Name", style="cyan")
    dims.add_column("Value", style="white")
    for name in (
        "GRID_SIZE",
        "TOLERANCE",
        "OUTER_TILE_DIM",
        "BIN_CORNER_RADIUS",
        "BOTTOM_THICKNESS",
        "BASE_PROFILE_DEPTH",
        "DEFAULT_BASE_HEIGHT",
        "DEFAULT_CUTOUT_DEPTH",
        "MESH_TOLERANCE",
        "MESH_ANGULAR_TOLERANCE",
    ):
        dims.add_row(name, f"{getattr(dimensions, name):g}")
    console.print(dims)

    if not occt_info["ocp_available"]:
        _display_error(
            "No OCCT binding available",
            Exception("Install cadquery-ocp to enable bin assembly"),
        )


@app.command()
def grid(
    path: str = typer.Argument(..., help="Path to outline document (JSON)"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show the grid area enclosing a document's outlines."""
    _setup(verbose)
    document = _load(path)

    try:
        area = calculate_minimal_grid_area(document.outlines)
    except MalformedOutlineError as e:
        _display_error("Invalid outline", e)
        raise typer.Exit(1)

    units_x, units_y = area.grid_units

    table = Table(title="Grid Area")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Min", f"({area.min.x:.2f}, {area.min.y:.2f})")
    table.add_row("Max", f"({area.max.x:.2f}, {area.max.y:.2f})")
    table.add_row("Size (mm)", f"{area.width:.2f} × {area.height:.2f}")
    table.add_row("Size (cells)", f"{units_x} × {units_y}")
    console.print(table)


@app.command()
def build(
    path: str = typer.Argument(..., help="Path to outline document (JSON)"),
    total_height: Optional[float] = TOTAL_HEIGHT_OPTION,
    base_height: Optional[float] = BASE_HEIGHT_OPTION,
    mesh_out: Optional[str] = typer.Option(
        None, "--mesh-out", help="Write the preview mesh as JSON to this path"
    ),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Build a bin and print a summary of the solid."""
    settings = _setup(verbose)
    document = _load(path)
    params = _resolve_parameters(document, total_height, base_height)

    if not document.outlines:
        _display_warning("Document has no outlines, nothing to build")
        return

    try:
        console.print(
            f"🔄 Building bin: total {params.total_height:g} mm, base {params.base_height:g} mm"
        )
        assembler = BinAssembler(OcctKernel(), settings=settings)
        solid = assembler.build(document.outlines, params.total_height, params.base_height)

        summary = summarize_solid(solid)
        _display_summary(summary)

        if mesh_out is not None:
            mesh = assembler.mesh(document.outlines, params.total_height, params.base_height)
            data = mesh_to_json_bytes(mesh)
            uri = write_output(data, mesh_out)
            console.print(f"🧊 Mesh written to {uri} ({_format_file_size(len(data))})")

    except _BUILD_ERRORS as e:
        _display_error("Failed to build bin", e)
        raise typer.Exit(1)

    _display_success("Bin built")


@app.command()
def export(
    path: str = typer.Argument(..., help="Path to outline document (JSON)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output path for the STEP file"),
    total_height: Optional[float] = TOTAL_HEIGHT_OPTION,
    base_height: Optional[float] = BASE_HEIGHT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Export a bin as a STEP file."""
    settings = _setup(verbose)
    document = _load(path)
    params = _resolve_parameters(document, total_height, base_height)

    output_path = Path(path).with_suffix(".step") if output is None else Path(output)

    try:
        console.print("🔄 Exporting STEP...")
        assembler = BinAssembler(OcctKernel(), settings=settings)
        data = assembler.export_step(document.outlines, params.total_height, params.base_height)
        uri = write_output(data, output_path)

    except _BUILD_ERRORS as e:
        _display_error("Failed to export STEP", e)
        raise typer.Exit(1)

    table = Table(title="Export Results")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Format", "STEP")
    table.add_row("URI", uri)
    table.add_row("Size", _format_file_size(len(data)))
    console.print(table)

    _display_success(f"STEP file exported to: {output_path}")


def _display_summary(summary: SolidSummary) -> None:
    """Display solid summary in formatted tables."""
    topology_table = Table(title="Topology")
    topology_table.add_column("Entity", style="cyan")
    topology_table.add_column("Count", style="yellow")

    topology_table.add_row("Solids", str(summary.solids))
    topology_table.add_row("Shells", str(summary.shells))
    topology_table.add_row("Faces", str(summary.faces))
    topology_table.add_row("Edges", str(summary.edges))
    topology_table.add_row("Vertices", str(summary.vertices))

    console.print(topology_table)

    props_table = Table(title="Properties")
    props_table.add_column("Property", style="cyan")
    props_table.add_column("Value", style="white")

    if summary.bounding_box:
        bbox = summary.bounding_box
        bbox_str = (f"({bbox.min_x:.2f}, {bbox.min_y:.2f}, {bbox.min_z:.2f}) → "
                    f"({bbox.max_x:.2f}, {bbox.max_y:.2f}, {bbox.max_z:.2f})")
        props_table.add_row("Bounding Box", bbox_str)
        props_table.add_row("Size", " × ".join(f"{v:.2f}" for v in bbox.size))

    if summary.surface_area is not None:
        props_table.add_row("Surface Area", f"{summary.surface_area:.2f} mm²")

    if summary.volume is not None:
        props_table.add_row("Volume", f"{summary.volume:.2f} mm³")

    props_table.add_row("Valid", "✅" if summary.is_valid else "❌")

    console.print(props_table)

    if summary.analysis_warnings:
        console.print("\n[bold yellow]Warnings:[/bold yellow]")
        for warning in summary.analysis_warnings:
            console.print(f"  ⚠️  {warning}")


if __name__ == "__main__":
    app()
