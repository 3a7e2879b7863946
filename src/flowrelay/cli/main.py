"""flowrelay CLI for submitting keywords and checking the relay."""

from __future__ import annotations

import json

import httpx
import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from flowrelay.insights import ExtractedInsights, chart_series, extract_insights

app = typer.Typer(
    name="flowrelay",
    help="Keyword insights through a hosted Langflow flow",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()

DEFAULT_URL = "http://localhost:3000"


def _get_client(base_url: str, timeout: float) -> httpx.Client:
    return httpx.Client(base_url=base_url, timeout=timeout)


def _server_error(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and "error" in data:
        return str(data["error"])
    return response.text


def _format_metric(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


def render_insights(insights: ExtractedInsights) -> None:
    """Print the metrics table and insights, or the raw text on failure."""
    if not insights.parsed:
        console.print(Panel(insights.raw_text or "(empty response)", title="Server response", border_style="red"))
        return

    series = chart_series(insights)
    table = Table(title="Engagement by post type", border_style="blue")
    table.add_column("Post type", style="cyan")
    table.add_column("Avg likes", justify="right")
    table.add_column("Avg shares", justify="right")
    table.add_column("Avg comments", justify="right")
    for index, label in enumerate(series.labels):
        table.add_row(
            label,
            _format_metric(series.avg_likes[index]),
            _format_metric(series.avg_shares[index]),
            _format_metric(series.avg_comments[index]),
        )

    console.print()
    if series.labels:
        console.print(table)
    else:
        console.print("[dim]No engagement metrics returned.[/dim]")
    if insights.insights_markdown:
        console.print()
        console.print(Markdown(insights.insights_markdown))
    console.print()


@app.command()
def analyze(
    keyword: str = typer.Argument(..., help="Post type keyword to analyze, e.g. reels"),
    base_url: str = typer.Option(DEFAULT_URL, "--url", "-u", envvar="FLOWRELAY_URL"),
    timeout: float = typer.Option(180.0, "--timeout", help="Seconds to wait for the relay"),
    raw: bool = typer.Option(False, "--raw", help="Output raw JSON response"),
) -> None:
    """Send a keyword through the relay and render the extracted insights."""
    if not keyword.strip():
        console.print("[red]Please enter a keyword (post type) to analyze.[/red]")
        raise typer.Exit(1)

    client = _get_client(base_url, timeout)
    try:
        with console.status("Analyzing..."):
            resp = client.post("/runFlow", json={"inputValue": keyword})
        resp.raise_for_status()
    except httpx.ConnectError:
        console.print(f"[red]Error:[/red] Cannot connect to the relay at {base_url}")
        console.print("Is the server running? Start it with: flowrelay serve")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        console.print(f"[red]Error {e.response.status_code}:[/red] {_server_error(e.response)}")
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        console.print(f"[red]Error:[/red] Request to the relay failed: {e}")
        raise typer.Exit(1)
    finally:
        client.close()

    data = resp.json()
    if raw:
        console.print_json(json.dumps(data, indent=2))
        return

    render_insights(extract_insights(data.get("message")))


@app.command()
def status(
    base_url: str = typer.Option(DEFAULT_URL, "--url", "-u", envvar="FLOWRELAY_URL"),
) -> None:
    """Check that the relay is up."""
    client = _get_client(base_url, 10.0)

    try:
        resp = client.get("/health")
        resp.raise_for_status()
    except httpx.ConnectError:
        console.print(f"[red]✗[/red] flowrelay is not running at {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        console.print(f"[red]✗[/red] Health check failed with {e.response.status_code}")
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        console.print(f"[red]✗[/red] Health check failed: {e}")
        raise typer.Exit(1)
    finally:
        client.close()

    data = resp.json()

    table = Table(title="flowrelay status", show_header=False, border_style="blue")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Status", f"[green]{data.get('status', '?')}[/green]")
    table.add_row("Message", data.get("message", ""))
    table.add_row("Version", data.get("version", "?"))

    console.print()
    console.print(table)
    console.print()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", envvar="FLOWRELAY_HOST"),
    port: int = typer.Option(3000, "--port", envvar="FLOWRELAY_PORT"),
    reload: bool = typer.Option(False, "--reload"),
) -> None:
    """Start the relay server (for development)."""
    import uvicorn

    console.print(Panel("Starting flowrelay server...", border_style="blue"))
    uvicorn.run(
        "flowrelay.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def version() -> None:
    """Show flowrelay version."""
    from flowrelay import __version__

    console.print(f"flowrelay v{__version__}")


def main() -> None:
    """Entrypoint."""
    app()


if __name__ == "__main__":
    main()
