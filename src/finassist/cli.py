from __future__ import annotations

import asyncio
import json
from datetime import date, datetime
from typing import Optional

import typer

from .config.runtime_config import load_runtime_config
from .config.settings import local_now, settings
from .nlp.parser import describe_filter, parse_user_query
from .logs import log_error

app = typer.Typer(add_completion=False)


def _reference_time(today: Optional[str]) -> datetime:
    if not today:
        return local_now()
    try:
        return datetime.combine(date.fromisoformat(today), datetime.min.time())
    except ValueError:
        typer.echo(f"Invalid --today value '{today}', expected YYYY-MM-DD")
        raise typer.Exit(code=2)


@app.command("parse")
def parse(
    query: str = typer.Option(..., "--query", "-q", help="Question to interpret"),
    today: Optional[str] = typer.Option(None, "--today", help="Reference date (YYYY-MM-DD)"),
):
    """Show the transaction filter a question resolves to."""
    cfg = load_runtime_config()
    f = parse_user_query(
        query,
        _reference_time(today),
        phrases=cfg.keywords,
        magnitude_scope=cfg.query.magnitude_scope,
    )
    typer.echo(json.dumps(f.model_dump(mode="json", exclude_none=True), indent=2))
    typer.echo(describe_filter(f))


@app.command("ask")
def ask(
    query: str = typer.Option(..., "--query", "-q", help="Question about your finances"),
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    today: Optional[str] = typer.Option(None, "--today", help="Reference date (YYYY-MM-DD)"),
):
    """Answer a question against the user's transactions."""
    from .assistant.chat import answer_question
    from .api.server import get_llm_client
    from .store.supabase import TransactionStore

    cfg = load_runtime_config()
    try:
        reply = asyncio.run(
            answer_question(
                query, user, TransactionStore(), get_llm_client(), cfg, now=_reference_time(today)
            )
        )
    except Exception as e:
        log_error("ask failed", e)
        typer.echo(f"Failed to answer: {e}")
        raise typer.Exit(code=1)
    typer.echo(reply.reply)
    meta = reply.metadata
    typer.echo(f"\n[intent={meta.intent.value} rows={meta.data_count} used_ai={meta.used_ai}]")


@app.command("insights")
def insights(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Only this user id"),
    today: Optional[str] = typer.Option(None, "--today", help="Reference date (YYYY-MM-DD)"),
):
    """Generate and store insights for one or all users."""
    from .api.server import get_llm_client
    from .insights.generator import run_insights
    from .store.supabase import TransactionStore

    cfg = load_runtime_config()
    result = asyncio.run(
        run_insights(
            TransactionStore(),
            get_llm_client(),
            cfg,
            today=_reference_time(today).date(),
            user_ids=[user] if user else None,
        )
    )
    typer.echo(result["message"])
    if result["errors"]:
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    port: int = typer.Option(settings.api_port, "--port", "-p", help="Port to listen on"),
):
    """Run the HTTP API."""
    from .api.server import run_server

    run_server(port=port)


if __name__ == "__main__":
    app()
