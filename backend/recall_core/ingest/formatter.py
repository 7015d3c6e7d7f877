"""Deterministic text rendering of email messages and calendar events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from recall_core.utils.time import iso8601

BLOCK_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True, slots=True)
class EmailMessage:
    subject: str
    sender: str
    to: Sequence[str]
    date: datetime
    body: str
    cc: Sequence[str] = ()
    message_id: str | None = None


@dataclass(frozen=True, slots=True)
class CalendarEvent:
    title: str
    start: datetime
    end: datetime
    location: str | None = None
    notes: str | None = None
    uid: str | None = None


def format_email(message: EmailMessage) -> str:
    header = (
        f"Subject: {message.subject}\n"
        f"From: {message.sender}\n"
        f"To: {', '.join(message.to)}\n"
        f"Date: {iso8601(message.date)}"
    )
    if message.cc:
        header += "\nCC: " + ", ".join(message.cc)
    return header.strip() + "\n\n" + message.body


def format_event(event: CalendarEvent) -> str:
    notes = event.notes.strip() if event.notes is not None else ""
    block = (
        f"Event: {event.title}\n"
        f"When: {iso8601(event.start)} – {iso8601(event.end)}\n"
        f"Location: {event.location if event.location is not None else 'N/A'}\n"
        f"Notes: {notes}"
    )
    return block.strip()


def join_blocks(blocks: Iterable[str]) -> str:
    return BLOCK_SEPARATOR.join(blocks)


def render_emails(messages: Iterable[EmailMessage]) -> str:
    return join_blocks(format_email(message) for message in messages)


def render_events(events: Iterable[CalendarEvent]) -> str:
    return join_blocks(format_event(event) for event in events)


__all__ = [
    "BLOCK_SEPARATOR",
    "EmailMessage",
    "CalendarEvent",
    "format_email",
    "format_event",
    "join_blocks",
    "render_emails",
    "render_events",
]
