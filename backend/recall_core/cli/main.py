"""CLI entrypoint for recall-core."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import requests
import typer
import uvicorn

from recall_core.ingest.loaders import load_mailbox
from recall_core.utils.time import iso8601

app = typer.Typer(name="recall", help="recall-core command-line interface")

DEFAULT_HOST = "http://127.0.0.1:5173"
MAILBOX_SUFFIXES = {".mbox", ".eml"}


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("RECALL_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=120, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _read_json_list(path: Path, key: str) -> list[dict[str, Any]]:
    data = json.loads(path.expanduser().read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise typer.BadParameter(f"{path} must hold a JSON list or an object with '{key}'")
    return data


def _mailbox_payload(path: Path) -> list[dict[str, Any]]:
    return [
        {
            "subject": message.subject,
            "from": message.sender,
            "to": list(message.to),
            "cc": list(message.cc),
            "date": iso8601(message.date),
            "body": message.body,
            "message_id": message.message_id,
        }
        for message in load_mailbox(path)
    ]


@app.command("ingest-text")
def ingest_text(
    text: Optional[str] = typer.Argument(None, help="Text to index; read from --file when omitted"),
    file: Optional[Path] = typer.Option(None, "--file", help="Read the text from this file"),
    name: Optional[str] = typer.Option(None, "--name", help="Display name"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Index a piece of free text."""
    if text is None:
        if file is None:
            raise typer.BadParameter("Provide TEXT or --file")
        text = file.expanduser().read_text(encoding="utf-8")
    resp = _request("POST", "/ingest/text", host=host, json={"text": text, "name": name})
    _echo(resp.json())


@app.command("ingest-file")
def ingest_file(
    path: Path = typer.Argument(..., help="File to index (.txt, .md, .pdf)"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Index a file readable by the backend."""
    resp = _request("POST", "/ingest/file", host=host, json={"path": str(path.expanduser().resolve())})
    _echo(resp.json())


@app.command("ingest-emails")
def ingest_emails(
    path: Path = typer.Argument(..., help="Mailbox (.mbox/.eml) or JSON list of messages"),
    source_id: str = typer.Option(..., "--source-id", help="Source id for this batch"),
    name: Optional[str] = typer.Option(None, "--name", help="Display name"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Index a batch of email messages as one document."""
    path = path.expanduser()
    if path.suffix.lower() in MAILBOX_SUFFIXES:
        messages = _mailbox_payload(path)
    else:
        messages = _read_json_list(path, "messages")
    body = {"source_id": source_id, "name": name, "messages": messages}
    resp = _request("POST", "/ingest/emails", host=host, json=body)
    _echo(resp.json())


@app.command("ingest-schedule")
def ingest_schedule(
    path: Path = typer.Argument(..., help="JSON list of calendar events"),
    source_id: str = typer.Option(..., "--source-id", help="Source id for this batch"),
    name: Optional[str] = typer.Option(None, "--name", help="Display name"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Index calendar events as one document."""
    body = {"source_id": source_id, "name": name, "events": _read_json_list(path, "events")}
    resp = _request("POST", "/ingest/schedule", host=host, json=body)
    _echo(resp.json())


@app.command()
def search(
    q: str = typer.Argument(..., help="Query text"),
    k: int = typer.Option(8, "--k", help="Number of results to return"),
    mode: str = typer.Option("semantic", "--mode", help="semantic, keyword, withContext or hybrid"),
    expand: int = typer.Option(1, "--expand", help="Context characters around each hit"),
    bm25_weight: float = typer.Option(0.5, "--bm25-weight", help="Lexical share for hybrid mode"),
    source: Optional[str] = typer.Option(None, "--source", help="Restrict to one source id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Query the retrieval index."""
    payload = {
        "query": q,
        "k": k,
        "source_id": source,
        "mode": {"type": mode, "expand": expand, "bm25_weight": bm25_weight},
    }
    resp = _request("POST", "/search", host=host, json=payload)
    _echo(resp.json())


@app.command()
def documents(
    source_id: Optional[str] = typer.Argument(None, help="Show a single document"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List indexed documents."""
    path = f"/documents/{source_id}" if source_id else "/documents"
    resp = _request("GET", path, host=host)
    _echo(resp.json())


@app.command()
def health(
    deep: bool = typer.Option(False, "--deep", help="Run the end-to-end self-check"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Report backend health."""
    resp = _request("GET", "/health/deep" if deep else "/health", host=host)
    payload = resp.json()
    _echo(payload)
    if deep and not payload.get("ok"):
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--bind", help="Interface to bind"),
    port: int = typer.Option(5173, "--port", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP backend."""
    uvicorn.run("recall_core.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
