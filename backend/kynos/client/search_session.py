from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Union

from kynos.models.records import MatchCandidate, ResolvedSelection, Span
from kynos.services.search import SearchService


def highlight(text: str, spans: Sequence[Span], open_mark: str = "[", close_mark: str = "]") -> str:
    """Wrap each matched (start, end inclusive) range of text in markers."""
    parts: List[str] = []
    last = 0
    for start, end in spans:
        if start > last:
            parts.append(text[last:start])
        parts.append(f"{open_mark}{text[start:end + 1]}{close_mark}")
        last = end + 1
    if last < len(text):
        parts.append(text[last:])
    return "".join(parts)


class SearchSession:
    """
    State of one search box: current input, visible suggestions and whether
    the suggestion panel is shown. The day window for the chosen company is
    up to the on_select callback.
    """

    def __init__(self, service: SearchService, on_select: Callable[[ResolvedSelection], None],
                 limit: Optional[int] = None, initial_value: str = "", clear_on_focus: bool = False):
        self.service = service
        self.on_select = on_select
        self.limit = limit
        self.clear_on_focus = clear_on_focus
        self.text = initial_value
        self.results: List[MatchCandidate] = []
        self.visible = False

    def on_input(self, text: str) -> List[MatchCandidate]:
        self.text = text
        if not text or not text.strip():
            self.results = []
            self.visible = False
            return self.results
        self.results = self.service.search(text, self.limit)
        self.visible = True
        return self.results

    def on_focus(self) -> None:
        if self.clear_on_focus:
            self.text = ""
        if self.text.strip():
            self.visible = True

    def dismiss(self) -> None:
        self.visible = False

    def select(self, choice: Union[int, MatchCandidate]) -> ResolvedSelection:
        cand = self.results[choice] if isinstance(choice, int) else choice
        selection = ResolvedSelection(symbol=cand.record.symbol, name=cand.record.name)
        self.text = selection.label
        self.visible = False
        self.on_select(selection)
        return selection

    def render(self, open_mark: str = "[", close_mark: str = "]") -> List[str]:
        """One line per suggestion: highlighted symbol, then highlighted name."""
        if not self.visible:
            return []
        lines = []
        for c in self.results:
            sym = highlight(c.record.symbol, c.matched_spans.get("symbol", []), open_mark, close_mark)
            nm = highlight(c.record.name, c.matched_spans.get("name", []), open_mark, close_mark)
            lines.append(f"{sym}  {nm}")
        return lines
