"""Terminal presentation for schema negotiation (rich)."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.syntax import Syntax
from rich.text import Text

from llmhelper import logger as logger_mod

from .types import ConversationState, FeedbackAction, FeedbackChoice


class FeedbackPresenter(Protocol):
    """What the negotiation loop needs from a reviewer."""

    def present(self, state: ConversationState) -> FeedbackChoice:
        raise NotImplementedError

    def show(self, text: str, lexer: str = "json") -> None:
        raise NotImplementedError


_MENU = [
    ("1", FeedbackAction.ACCEPT, "I'm satisfied with this schema"),
    ("2", FeedbackAction.MODIFY, "I want to modify this schema"),
    ("3", FeedbackAction.INSPECT, "Show me the full schema in detail"),
    ("4", FeedbackAction.SHOW_CODE, "Show me the Python code format"),
    ("5", FeedbackAction.RESTART, "Start over with a new description"),
]


class ConsoleFeedbackPresenter:
    """Numbered-menu reviewer reading choices from the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def present(self, state: ConversationState) -> FeedbackChoice:
        self.console.rule(f"Iteration {state.iteration}")
        if len(state.history) > 1:
            self.console.print(Text("Drafts so far:\n" + "\n".join(history_lines(state))))
        self.console.print("[bold]Options:[/bold]")
        for key, _, label in _MENU:
            self.console.print(f"  [cyan]{key}[/cyan]. {label}")

        choice = Prompt.ask(
            "Enter your choice",
            choices=[key for key, _, _ in _MENU],
            console=self.console,
        )
        action = next(a for key, a, _ in _MENU if key == choice)

        text = None
        if action is FeedbackAction.MODIFY:
            text = Prompt.ask(
                "What changes would you like? Describe specifically",
                default="",
                console=self.console,
            )
        elif action is FeedbackAction.RESTART:
            text = Prompt.ask(
                "Enter new description", default="", console=self.console
            )
        return FeedbackChoice(action=action, text=text)

    def show(self, text: str, lexer: str = "json") -> None:
        self.console.print(Syntax(text, lexer, word_wrap=True))


def print_schema_preview(
    schema_obj: Optional[Mapping[str, Any]], console: Optional[Console] = None
) -> None:
    """Render name, description and the top-level shape of a schema object."""

    console = console or Console()
    schema_obj = schema_obj or {}
    lines = [
        f"Name: {schema_obj.get('name') or 'not specified'}",
        f"Description: {schema_obj.get('description') or 'not specified'}",
    ]

    schema = schema_obj.get("schema")
    if isinstance(schema, Mapping):
        lines.append(f"Schema Type: {schema.get('type') or 'not specified'}")
        properties = schema.get("properties")
        if isinstance(properties, Mapping) and properties:
            lines.append("Properties:")
            for prop_name, prop in properties.items():
                prop = prop if isinstance(prop, Mapping) else {}
                desc = f" - {prop['description']}" if prop.get("description") else ""
                lines.append(
                    f"  - {prop_name} ({prop.get('type') or 'unspecified'}){desc}"
                )
        if schema.get("required"):
            lines.append(f"Required fields: {', '.join(map(str, schema['required']))}")
        if "additionalProperties" in schema:
            lines.append(
                f"Additional properties allowed: {schema['additionalProperties']}"
            )

    console.print(
        Panel(Text("\n".join(lines)), title="Generated Schema Preview", expand=False)
    )


def history_lines(state: ConversationState) -> list[str]:
    return [
        f"{d.iteration}: {d.schema.get('name', '?')} @ {logger_mod.format_date(d.timestamp)}"
        for d in state.history
    ]
