"""
Command line probe for a running Pollinations MCP server.
"""
import json
import os
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import requests
import typer
from rich.console import Console
from rich.panel import Panel
from rich.spinner import Spinner
from rich.live import Live
from rich.table import Table
from rich.text import Text

# --- Configuration ---
DEFAULT_BASE_URL = os.environ.get("POLLINATIONS_MCP_URL", "http://127.0.0.1:3000")
CONNECTION_HEADER = "X-Connection-ID"
PROTOCOL_VERSION = "2024-11-05"


console = Console()
app = typer.Typer(
    name="pollinations-cli",
    help="Probe a Pollinations MCP server over HTTP and SSE.",
    add_completion=False,
)


# --- Helpers ---

def parse_args(pairs: List[str]) -> Dict[str, object]:
    """Turn ["width=512", "prompt=a cat"] into tool arguments; values are JSON when they parse."""
    arguments: Dict[str, object] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        try:
            arguments[key] = json.loads(value)
        except json.JSONDecodeError:
            arguments[key] = value
    return arguments


def iter_events(lines: Iterable[str]) -> Iterator[Tuple[Optional[str], str]]:
    """Group raw SSE lines into (event, data) pairs; comment lines are skipped."""
    event: Optional[str] = None
    data: List[str] = []
    for line in lines:
        if line == "":
            if data:
                yield event, "\n".join(data)
            event, data = None, []
        elif line.startswith(":"):
            continue
        elif line.startswith("event:"):
            event = line[len("event:"):].strip()
        elif line.startswith("data:"):
            data.append(line[len("data:"):].lstrip())
    if data:
        yield event, "\n".join(data)


def rpc(method: str, request_id: Optional[int] = None, params: Optional[dict] = None) -> dict:
    message = {"jsonrpc": "2.0", "method": method}
    if request_id is not None:
        message["id"] = request_id
    if params is not None:
        message["params"] = params
    return message


def fail(message: str, details: object = None):
    console.print(f"[bold red]Error:[/bold red] {message}")
    if details:
        console.print(f"Details: {details}")
    raise typer.Exit(1)


def wait_for_response(events: Iterator[Tuple[Optional[str], str]], request_id: int) -> dict:
    """Read routed frames until the one answering `request_id` arrives."""
    for _, data in events:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict) and payload.get("id") == request_id:
            return payload
    fail(f"Stream ended before response {request_id} arrived")


def post_tagged(base_url: str, connection_id: str, message: dict) -> None:
    """POST a message tagged for the stream; requests are acknowledged 202, notifications 204."""
    expected = 204 if message.get("id") is None else 202
    response = requests.post(f"{base_url}/sse", json=message, headers={CONNECTION_HEADER: connection_id}, timeout=30)
    if response.status_code != expected:
        fail(f"POST /sse answered {response.status_code}", response.text)


# --- Commands ---

@app.command()
def health(base_url: str = typer.Option(DEFAULT_BASE_URL, "--url", help="Server base URL.")):
    """Show /health."""
    try:
        response = requests.get(f"{base_url}/health", timeout=10)
        response.raise_for_status()
    except requests.RequestException as e:
        fail(f"Could not reach the server at {base_url}.", e)
    body = response.json()
    table = Table(title="Server health")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in body.items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def tools(base_url: str = typer.Option(DEFAULT_BASE_URL, "--url", help="Server base URL.")):
    """List tools through a direct tools/list call on /mcp."""
    try:
        response = requests.post(f"{base_url}/mcp", json=rpc("tools/list", 1), timeout=10)
        response.raise_for_status()
    except requests.RequestException as e:
        fail(f"Could not reach the server at {base_url}.", e)
    body = response.json()
    if "error" in body:
        fail(body["error"].get("message"), body["error"].get("data"))

    table = Table(title="Available tools")
    table.add_column("Name", style="green")
    table.add_column("Description")
    table.add_column("Required", style="yellow")
    for tool in body["result"]["tools"]:
        table.add_row(tool["name"], tool.get("description", ""), ", ".join(tool["inputSchema"].get("required", [])))
    console.print(table)


@app.command()
def call(
    tool: str = typer.Argument(..., help="Tool name, e.g. generate_image."),
    arg: List[str] = typer.Option([], "--arg", "-a", help="Tool argument as key=value; repeatable."),
    base_url: str = typer.Option(DEFAULT_BASE_URL, "--url", help="Server base URL."),
):
    """Open /sse, initialize over it and call a tool; the result arrives on the stream."""
    arguments = parse_args(arg)
    try:
        with requests.get(f"{base_url}/sse", stream=True, timeout=(10, 120)) as stream:
            stream.raise_for_status()
            events = iter_events(stream.iter_lines(decode_unicode=True))

            _, data = next(events, (None, "{}"))
            connection_id = json.loads(data).get("connectionId")
            if not connection_id:
                fail("Stream did not announce a connection id", data)
            console.print(f"Connected: [yellow]{connection_id}[/yellow]")

            post_tagged(base_url, connection_id, rpc("initialize", 1, {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": "pollinations-cli", "version": "1.0.0"},
            }))
            init = wait_for_response(events, 1)
            server = init.get("result", {}).get("serverInfo", {})
            console.print(f"Initialized with [green]{server.get('name')}[/green] {server.get('version')}")
            post_tagged(base_url, connection_id, rpc("notifications/initialized"))

            post_tagged(base_url, connection_id, rpc("tools/call", 2, {"name": tool, "arguments": arguments}))
            with Live(Spinner("dots", text=f"[dim]Waiting for {tool}...[/dim]"), console=console, refresh_per_second=10):
                result = wait_for_response(events, 2)
    except requests.RequestException as e:
        fail(f"Could not reach the server at {base_url}.", e)

    if "error" in result:
        error = result["error"]
        console.print(Panel(Text(json.dumps(error, indent=2), style="red"), title=f"{tool} failed", border_style="red"))
        raise typer.Exit(1)
    for part in result["result"].get("content", []):
        console.print(Panel(Text(part.get("text", "")), title=tool, title_align="left", border_style="green"))


if __name__ == "__main__":
    app()
