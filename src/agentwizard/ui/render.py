"""Rich renderer for the store.

Finished history is printed once, above a live region that redraws the
pending surface and spinner. History items never change after they are
appended, so the region below is the only part of the screen that is
repainted.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from typing import Any

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.padding import Padding
from rich.spinner import Spinner
from rich.text import Text

from agentwizard.logging import get_logger
from agentwizard.ui.keys import (
    APPROVAL_OPTIONS,
    PLAN_OPTIONS,
    REVIEW_OPTIONS,
    KeyRouter,
    SurfaceView,
    question_items,
)
from agentwizard.ui.store import UIStateStore
from agentwizard.ui.types import (
    ClarifyingQuestionsSurface,
    HistoryItem,
    HistoryKind,
    PersistentInputSurface,
    PlanApprovalSurface,
    SelectSurface,
    TextSurface,
    ToolApprovalSurface,
    ToolCallRecord,
    ToolCallStatus,
)

log = get_logger("ui.render")

_STATUS_SYMBOLS: dict[ToolCallStatus, tuple[str, str]] = {
    ToolCallStatus.PENDING: ("○", "grey50"),
    ToolCallStatus.EXECUTING: ("◐", "yellow"),
    ToolCallStatus.SUCCESS: ("●", "green"),
    ToolCallStatus.ERROR: ("●", "red"),
    ToolCallStatus.INTERRUPTED: ("●", "red"),
    ToolCallStatus.DENIED: ("○", "red"),
}

_SEARCH_TOOLS = frozenset({"Glob", "Grep"})
_FILE_TOOLS = frozenset({"Read", "Write", "Edit", "MultiEdit", "NotebookEdit"})

_KIND_STYLES: dict[HistoryKind, tuple[str, str]] = {
    HistoryKind.STEP: ("◇", "cyan"),
    HistoryKind.NOTE: ("│", "dim"),
    HistoryKind.RESPONSE: ("│", ""),
    HistoryKind.WARNING: ("▲", "yellow"),
    HistoryKind.ERROR: ("■", "red"),
    HistoryKind.SUCCESS: ("◆", "green"),
    HistoryKind.AGENT_MESSAGE: ("●", "white"),
    HistoryKind.USER_MESSAGE: (">", "bold blue"),
}


# -----------------------------------------------------------------------------
# History
# -----------------------------------------------------------------------------


def short_path(path: str) -> str:
    """Last two segments of a path."""
    parts = [p for p in path.replace("\\", "/").split("/") if p]
    return "/".join(parts[-2:]) if parts else path


def tool_title(tool_name: str, tool_input: Mapping[str, Any]) -> tuple[str, str | None]:
    """Headline and optional subtitle for a tool call."""
    if tool_name in _SEARCH_TOOLS:
        pattern = tool_input.get("pattern")
        return (f'Search(pattern: "{pattern}")' if pattern else "Search"), None
    if tool_name in _FILE_TOOLS:
        path = tool_input.get("file_path") or tool_input.get("notebook_path")
        return (f"{tool_name}({short_path(str(path))})" if path else tool_name), None
    if tool_name == "Bash":
        command = tool_input.get("command")
        return "Bash", str(command) if command else None
    return tool_name, None


def render_tool_call(record: ToolCallRecord) -> RenderableType:
    symbol, style = _STATUS_SYMBOLS[record.status]
    title, subtitle = tool_title(record.tool_name, record.input)

    line = Text.assemble((f"{symbol} ", style), (title, "bold"))
    lines: list[RenderableType] = [line]
    if subtitle:
        lines.append(Text(f"  {subtitle}", style="dim"))

    if record.status is ToolCallStatus.SUCCESS and record.result:
        lines.append(Text(f"  ⎿  {record.result}", style="dim"))
    elif record.status is ToolCallStatus.ERROR and record.error:
        lines.append(Text(f"  ⎿  {record.error}", style="red"))
    elif record.status is ToolCallStatus.INTERRUPTED:
        lines.append(Text("  ⎿  Interrupted", style="red"))
    elif record.status is ToolCallStatus.DENIED:
        lines.append(Text(f"  ⎿  {record.error or 'Denied'}", style="red"))
    return Group(*lines)


def render_history_item(item: HistoryItem) -> RenderableType:
    """Render one frozen history entry."""
    kind = item.kind
    if kind is HistoryKind.TOOL_CALL and item.tool_call is not None:
        return render_tool_call(item.tool_call)

    if kind in (HistoryKind.SELECT_RESULT, HistoryKind.TEXT_RESULT):
        return Text.assemble(("◇ ", "green"), item.text, "\n  ", (item.label or "", "dim"))

    if kind is HistoryKind.CLARIFYING_QUESTIONS_RESULT:
        lines: list[RenderableType] = [Text.assemble(("◇ ", "green"), item.text)]
        for qa in item.questions_and_answers:
            lines.append(Text.assemble("  ", (qa.question, "dim"), " → ", qa.answer))
        return Group(*lines)

    if kind is HistoryKind.DECLINED_QUESTIONS:
        return Text.assemble(("■ ", "yellow"), item.text)

    if kind is HistoryKind.PLAN_APPROVED:
        return Text.assemble(("◆ ", "green"), item.text)

    if kind is HistoryKind.PLAN_REJECTED:
        return Text.assemble(("■ ", "red"), item.text)

    symbol, style = _KIND_STYLES.get(kind, ("│", ""))
    return Text.assemble((f"{symbol} ", style), (item.text, style if kind is not HistoryKind.RESPONSE else ""))


def render_diff(diff: str) -> Text:
    """Colour a unified diff line by line."""
    out = Text()
    for line in diff.splitlines():
        if line.startswith(("+++", "---")):
            style = "bold"
        elif line.startswith("@@"):
            style = "cyan"
        elif line.startswith("+"):
            style = "green"
        elif line.startswith("-"):
            style = "red"
        else:
            style = "dim"
        out.append(line + "\n", style=style)
    out.rstrip()
    return out


# -----------------------------------------------------------------------------
# Surfaces
# -----------------------------------------------------------------------------


def _option_row(label: str, highlighted: bool, checked: bool = False) -> Text:
    pointer = "❯ " if highlighted else "  "
    check = "[x] " if checked else ""
    return Text(f"  {pointer}{check}{label}", style="bold cyan" if highlighted else "")


def _options(labels: Sequence[str], index: int, marked: Collection[str] = ()) -> list[Text]:
    return [_option_row(label, i == index, label in marked) for i, label in enumerate(labels)]


def _input_line(buffer: str, placeholder: str | None) -> Text:
    if buffer:
        return Text.assemble(("> ", "bold"), buffer, ("▌", "dim"))
    return Text.assemble(("> ", "bold"), (placeholder or "", "dim"))


def render_surface(surface: Any, view: SurfaceView) -> RenderableType:
    """Render the live pending surface with its view state."""
    if isinstance(surface, PersistentInputSurface):
        return Group(
            Spinner("dots", text=Text(surface.spinner_message, style="cyan")),
            _input_line(view.buffer, surface.placeholder),
        )

    if isinstance(surface, TextSurface):
        return Group(
            Text.assemble(("◆ ", "cyan"), (surface.message, "bold")),
            _input_line(view.buffer, surface.placeholder),
        )

    if isinstance(surface, SelectSurface):
        rows: list[RenderableType] = [Text.assemble(("◆ ", "cyan"), (surface.message, "bold"))]
        for i, option in enumerate(surface.options):
            row = _option_row(option.label, i == view.index)
            if option.hint:
                row.append(f"  ({option.hint})", style="dim")
            rows.append(row)
        return Group(*rows)

    if isinstance(surface, ToolApprovalSurface):
        title, subtitle = tool_title(surface.tool_name, surface.input)
        rows = [Text.assemble(("◆ ", "yellow"), ("Allow ", "bold"), (title, "bold"), ("?", "bold"))]
        if subtitle:
            rows.append(Text(f"  {subtitle}"))
        if surface.description:
            rows.append(Text(f"  {surface.description}", style="dim"))
        if surface.diff_content:
            rows.append(Padding(render_diff(surface.diff_content), (0, 0, 0, 2)))
        rows.extend(_options(APPROVAL_OPTIONS, view.index))
        if view.typing:
            rows.append(_input_line(view.buffer, "Tell the agent what to do instead"))
        return Group(*rows)

    if isinstance(surface, PlanApprovalSurface):
        rows = [
            Text("◆ Proposed plan", style="bold cyan"),
            Padding(Text(surface.plan), (0, 0, 0, 2)),
        ]
        rows.extend(_options(PLAN_OPTIONS, view.index))
        if view.typing:
            rows.append(_input_line(view.buffer, "What should change?"))
        return Group(*rows)

    if isinstance(surface, ClarifyingQuestionsSurface):
        return _render_questions(surface, view)

    log.warning("No renderer for surface %r", surface)
    return Text("")


def _render_questions(surface: ClarifyingQuestionsSurface, view: SurfaceView) -> RenderableType:
    if not surface.questions:
        return Text("◆ No questions (press Enter)", style="dim")

    if view.reviewing:
        rows: list[RenderableType] = [Text("◆ Review your answers", style="bold cyan")]
        for question in surface.questions:
            answer = view.answers.get(question.question, "")
            rows.append(Text.assemble("  ", (question.header, "dim"), "  ", answer))
        rows.extend(_options(REVIEW_OPTIONS, view.index))
        return Group(*rows)

    question = surface.questions[view.question]
    progress = f"{view.question + 1}/{len(surface.questions)}"
    rows = [
        Text.assemble(("◆ ", "cyan"), (question.header, "bold"), (f"  {progress}", "dim")),
        Text(f"  {question.question}"),
    ]
    rows.extend(_options(question_items(surface, view), view.index, set(view.selections)))
    if view.typing:
        rows.append(_input_line(view.buffer, "Your answer"))
    return Group(*rows)


# -----------------------------------------------------------------------------
# Live renderer
# -----------------------------------------------------------------------------


class Renderer:
    """Prints history as it is appended and redraws the pending surface.

    Usage:
        with Renderer(store, router):
            await loop.run_session(prompt)
    """

    def __init__(
        self,
        store: UIStateStore,
        router: KeyRouter,
        console: Console | None = None,
        refresh_per_second: float = 8.0,
    ) -> None:
        self._store = store
        self._router = router
        self._console = console or Console()
        self._refresh = refresh_per_second
        self._live: Live | None = None
        self._unsubscribe: Any = None

    def live_view(self) -> RenderableType:
        pending = self._store.pending
        if pending is None:
            return Text("")
        return render_surface(pending.surface, self._router.view)

    def start(self) -> None:
        if self._live is not None:
            return
        for item in self._store.history:
            self._console.print(render_history_item(item))
        self._live = Live(
            get_renderable=self.live_view,
            console=self._console,
            refresh_per_second=self._refresh,
            transient=True,
        )
        self._live.start()
        self._unsubscribe = self._store.subscribe(self._on_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._live is not None:
            self._live.stop()
            self._live = None

    def refresh(self) -> None:
        if self._live is not None:
            self._live.refresh()

    def _on_change(self, item: HistoryItem | None) -> None:
        if item is not None:
            self._console.print(render_history_item(item))
        self.refresh()

    def __enter__(self) -> Renderer:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()
