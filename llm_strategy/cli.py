"""Typer-powered command line interface for the provider strategies."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import typer

from . import create_strategy
from .config import load_settings
from .core import ChatOptions, EmbedOptions, StrategyError


app = typer.Typer(
    add_completion=False,
    help=(
        "Send chat completion and embedding requests through a provider "
        "strategy. Prompts and texts may be passed as arguments or via "
        "standard input."
    ),
)


def _ensure_strategy(config: Optional[Path], provider: str) -> Any:
    """Build the strategy, surfacing helpful credential errors."""

    try:
        settings = load_settings(config)
        return create_strategy(provider, settings)
    except StrategyError as exc:
        _raise_cli_error(exc)
        raise typer.Exit(1)  # Unreachable, satisfies type-checkers


def _raise_cli_error(exc: Exception) -> None:
    """Render an informative error message and abort the command."""

    message = str(exc).strip() or exc.__class__.__name__
    lowered = message.lower()
    if any(keyword in lowered for keyword in ("credential", "api key", "apikey", "token")):
        message = (
            f"{message}\nProvide the required credentials via environment variables or "
            "a configuration file supplied with --config."
        )
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1) from exc


def _read_prompt(argument: Optional[str]) -> str:
    """Resolve the user prompt either from an argument or standard input."""

    if argument and argument != "-":
        return argument
    data = sys.stdin.read()
    if not data.strip():
        raise typer.BadParameter("Provide a prompt argument or pipe text via standard input.")
    return data.strip()


def _collect_texts(arguments: List[str]) -> List[str]:
    """Collect embedding texts from arguments and standard input."""

    values: List[str] = []
    read_stdin = False
    for value in arguments:
        if value == "-":
            read_stdin = True
        else:
            values.append(value)
    if not values or read_stdin:
        values.extend(line for line in _read_prompt(None).splitlines() if line.strip())
    return values


@app.command()
def chat(
    prompt: str = typer.Argument(..., help="Prompt to send to the assistant. Use '-' to read from stdin."),
    *,
    model: str = typer.Option(..., "--model", "-m", help="Model identifier to target."),
    system: Optional[str] = typer.Option(None, "--system", "-s", help="Optional system message sent before the prompt."),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t", help="Sampling temperature."),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Maximum number of tokens to generate."),
    top_p: Optional[float] = typer.Option(None, "--top-p", help="Nucleus sampling probability mass."),
    stop: Optional[List[str]] = typer.Option(None, "--stop", help="Stop sequence; may be repeated."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a JSON or YAML configuration file."),
    provider: str = typer.Option("openai", "--provider", "-p", help="Strategy to use."),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Emit JSON instead of plain text."),
) -> None:
    """Send a prompt and print the assistant response."""

    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": _read_prompt(prompt)})
    options = ChatOptions(
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        top_p=top_p,
        stop=list(stop) if stop else None,
    )
    strategy = _ensure_strategy(config, provider)
    try:
        response = strategy.chat(messages, options)
    except StrategyError as exc:
        _raise_cli_error(exc)
    finally:
        strategy.close()
    content = response.get_content()
    if json_output:
        typer.echo(json.dumps({"content": content}, indent=2, ensure_ascii=False))
        return
    typer.echo(content)


@app.command()
def embed(
    texts: Optional[List[str]] = typer.Argument(None, help="Texts to embed. Use '-' or omit to read lines from stdin."),
    *,
    model: str = typer.Option(..., "--model", "-m", help="Model identifier to target."),
    embedding_type: Optional[str] = typer.Option(None, "--embedding-type", help="Provider specific text type tag."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a JSON or YAML configuration file."),
    provider: str = typer.Option("openai", "--provider", "-p", help="Strategy to use."),
    json_output: bool = typer.Option(True, "--json/--no-json", help="Emit JSON embeddings (recommended)."),
) -> None:
    """Generate embeddings for one or more pieces of text."""

    entries = _collect_texts(list(texts or []))
    options = EmbedOptions(model=model, embedding_type=embedding_type)
    strategy = _ensure_strategy(config, provider)
    try:
        response = strategy.embed(entries, options)
    except StrategyError as exc:
        _raise_cli_error(exc)
    finally:
        strategy.close()
    embeddings = response.get_embeddings()
    if json_output:
        typer.echo(json.dumps({"embeddings": embeddings}, indent=2))
        return
    for vector in embeddings:
        typer.echo(" ".join(repr(value) for value in vector))


def main() -> None:
    """Entry point compatible with ``python -m llm_strategy.cli``."""

    app()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
