"""CLI interface for the searx-rag answering pipeline."""

import asyncio
import logging
from typing import Optional

import httpx
import typer

from .config import get_settings
from .exceptions import EmbeddingModelError
from .observability import setup_logging
from .pipeline import QueryOutcome, SearchPipeline, create_pipeline

logger = logging.getLogger(__name__)

app = typer.Typer(help="Web-grounded answers from SearXNG results and local Ollama models")

EXIT_COMMAND = "exit"
QUERY_PROMPT = "\nEnter your search query (or type 'exit' to quit)"


def is_exit_command(text: str) -> bool:
    """The loop ends on 'exit', in any case."""
    return text.strip().lower() == EXIT_COMMAND


def _echo_status(message: str) -> None:
    typer.echo(message)


def _echo_fragment(fragment: str) -> None:
    typer.echo(fragment, nl=False)


def _echo_sources(outcome: QueryOutcome) -> None:
    if not outcome.grounded:
        return
    typer.echo("\nSources:")
    for i, item in enumerate(outcome.ranked, start=1):
        typer.echo(f"  [{i}] {item.url} (similarity {item.similarity:.3f})")


def _read_query() -> str | None:
    """Read one line of input. Returns None on EOF or Ctrl-C."""
    try:
        return typer.prompt(QUERY_PROMPT, default="", show_default=False)
    except (typer.Abort, EOFError, KeyboardInterrupt):
        return None


async def _answer_one(pipeline: SearchPipeline, query: str) -> QueryOutcome:
    outcome = await pipeline.answer(query)
    typer.echo("")
    _echo_sources(outcome)
    return outcome


def _setup() -> None:
    settings = get_settings()
    setup_logging(settings.logging.level, settings.logging.json_output)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Start the interactive loop when no command is given."""
    if ctx.invoked_subcommand is None:
        chat()


@app.command()
def chat() -> None:
    """Answer queries interactively until 'exit'."""
    _setup()
    settings = get_settings()

    async def _loop() -> None:
        async with httpx.AsyncClient() as client:
            pipeline = create_pipeline(settings, client, on_status=_echo_status, on_fragment=_echo_fragment)
            while True:
                query = _read_query()
                if query is None or is_exit_command(query):
                    break
                if not query.strip():
                    continue
                try:
                    await _answer_one(pipeline, query.strip())
                except EmbeddingModelError:
                    raise
                except Exception as e:
                    logger.error(f"Query failed for '{query.strip()}': {e}", exc_info=True)
                    typer.echo(f"\nQuery failed: {e}", err=True)

    typer.echo("SearXNG semantic search with Ollama embeddings")
    try:
        asyncio.run(_loop())
    except EmbeddingModelError as e:
        typer.echo(f"Model setup error: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo("\nExiting search.")


@app.command()
def ask(
    query: str = typer.Argument(..., help="Question to answer"),
    always_search: Optional[bool] = typer.Option(None, "--search/--no-search", help="Force or skip the web search"),
) -> None:
    """Answer a single query and exit."""
    _setup()
    settings = get_settings()
    if always_search is not None:
        settings = settings.model_copy(update={"pipeline": settings.pipeline.model_copy(update={"always_search": always_search, "trigger": ""})})

    async def _ask() -> QueryOutcome:
        async with httpx.AsyncClient() as client:
            pipeline = create_pipeline(settings, client, on_status=_echo_status, on_fragment=_echo_fragment)
            return await _answer_one(pipeline, query)

    try:
        outcome = asyncio.run(_ask())
    except EmbeddingModelError as e:
        typer.echo(f"Model setup error: {e}", err=True)
        raise typer.Exit(code=1) from e

    if outcome.error:
        raise typer.Exit(code=1)


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()
    print(f"SearXNG: {settings.search.instance_url} (categories: {settings.search.categories})")
    print(f"Ollama: {settings.ollama.host}")
    print(f"Embedding model: {settings.ollama.embedding_model}")
    print(f"Generation model: {settings.ollama.generation_model}")
    print(f"Context window: {settings.ollama.num_ctx}, temperature: {settings.ollama.temperature}")
    print(f"Fetch timeout: {settings.fetch.timeout_ms}ms, max content: {settings.fetch.max_content_length} chars")
    print(f"Required sources: {settings.pipeline.required_sources}, top-K: {settings.pipeline.top_k}")
    print(f"Mode: {'always search' if settings.pipeline.always_search else repr(settings.pipeline.trigger) + ' trigger'}")


if __name__ == "__main__":
    app()
