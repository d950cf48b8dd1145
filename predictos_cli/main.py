"""
Command line interface for the PredictOS SDK.
"""
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import typer

from predictos_sdk.agents import EventAnalysisAgent
from predictos_sdk.config import GatewayConfig
from predictos_sdk.providers import BlockRunGateway
from predictos_sdk.router import AnalysisRouter, route as route_model

app = typer.Typer(help="PredictOS multi-provider analysis tools")


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _load_markets(source: str) -> Any:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    return json.loads(text)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def route(model: str = typer.Argument(..., help="Model identifier, e.g. blockrun/gpt-4o")):
    """Show which provider serves MODEL."""
    _echo_json({"model": model, "provider": route_model(model).value})


@app.command()
def models():
    """List the models available through BlockRun."""
    gateway = BlockRunGateway(GatewayConfig.from_env())
    try:
        _echo_json(gateway.list_models())
    finally:
        gateway.close()


@app.command()
def analyze(
    markets_json: str = typer.Argument(..., help="Path to a JSON list of markets, or - for stdin"),
    event: str = typer.Option(..., "--event", help="Event ticker or slug"),
    pm_type: str = typer.Option("Polymarket", "--pm-type", help="Kalshi or Polymarket"),
    model: str = typer.Option(..., "--model", help="Model identifier"),
    question: Optional[str] = typer.Option(None, "--question", help="Question to answer"),
    tool: Optional[List[str]] = typer.Option(None, "--tool", help="x_search or web_search (repeatable)"),
):
    """Analyze an event's markets with one model."""
    try:
        markets = _load_markets(markets_json)
    except (OSError, ValueError) as e:
        typer.echo(f"Could not read markets: {e}", err=True)
        raise typer.Exit(code=1)

    body = {
        "markets": markets,
        "eventIdentifier": event,
        "pmType": pm_type,
        "model": model,
        "question": question,
        "tools": list(tool or []),
    }
    router = AnalysisRouter(GatewayConfig.from_env())
    try:
        status, payload = EventAnalysisAgent(router).handle(body)
    finally:
        router.close()

    _echo_json(payload)
    if status != 200 or not payload.get("success"):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
