"""Renderable tree for PDF export.

Nodes carry geometry that is already resolved, in source pixels relative to
the top-left corner of the root. The compositor only reads this tree; it
never measures anything itself.
"""
from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass, field

from tripz.itinerary import cost_summary, estimate_trip_cost
from tripz.models import DestinationSuggestion, TravelPlan

# Average glyph advance as a fraction of the font size, for word wrapping
CHAR_WIDTH_RATIO = 0.55
LINE_HEIGHT_RATIO = 1.4


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass
class TextNode:
    text: str
    rect: Rect


@dataclass
class Element:
    tag: str
    rect: Rect
    children: list[Element | TextNode] = field(default_factory=list)
    font_size: float = 16
    display: str = "block"
    visibility: str = "visible"
    href: str | None = None
    background: str | None = None
    color: str = "#e2e8f0"

    @property
    def hidden(self) -> bool:
        return self.display == "none" or self.visibility == "hidden" or self.font_size == 0

    def iter_elements(self):
        yield self
        for child in self.children:
            if isinstance(child, Element):
                yield from child.iter_elements()


class _Flow:
    """Stacks blocks vertically inside a fixed-width column."""

    def __init__(self, width: float, padding: float = 24):
        self.width = width
        self.padding = padding
        self.y = padding

    @property
    def inner_width(self) -> float:
        return self.width - 2 * self.padding

    def text_block(
        self,
        text: str,
        font_size: float,
        tag: str = "p",
        color: str = "#e2e8f0",
        indent: float = 0,
        href: str | None = None,
        gap: float = 8,
    ) -> Element:
        left = self.padding + indent
        width = self.inner_width - indent
        chars_per_line = max(1, int(width / (font_size * CHAR_WIDTH_RATIO)))
        line_height = font_size * LINE_HEIGHT_RATIO
        lines = textwrap.wrap(text, chars_per_line) or [""]
        top = self.y
        runs = [
            TextNode(
                line,
                Rect(
                    left,
                    top + i * line_height,
                    min(width, len(line) * font_size * CHAR_WIDTH_RATIO),
                    line_height,
                ),
            )
            for i, line in enumerate(lines)
            if line
        ]
        height = len(lines) * line_height
        self.y = top + height + gap
        return Element(
            tag,
            Rect(left, top, width, height),
            children=runs,
            font_size=font_size,
            href=href,
            color=color,
        )

    def space(self, amount: float) -> None:
        self.y += amount


def _markdown_bullets(text: str) -> list[str]:
    bullets = []
    for line in text.splitlines():
        line = re.sub(r"^\s*[*-]\s+", "", line).replace("**", "").strip()
        if line:
            bullets.append(line)
    return bullets


def build_plan_tree(
    plan: TravelPlan, destination: DestinationSuggestion, width: float = 800
) -> Element:
    """Lay out a plan as a single tall column, ready to rasterize."""
    flow = _Flow(width)
    children: list[Element | TextNode] = []
    days = len(plan.itinerary)

    children.append(flow.text_block(f"Trip to {destination.name}", 30, tag="h1", color="#22d3ee"))
    estimate = estimate_trip_cost(destination, days)
    if estimate:
        children.append(
            flow.text_block(f"Estimated cost for {days} days: ${estimate:,}", 14, color="#94a3b8")
        )
    summary = cost_summary(plan, destination)
    children.append(
        flow.text_block(
            f"Activities ${summary.activities:,.0f} | Food ${summary.food:,.0f} | "
            f"Travel ${summary.travel:,.0f} | Accommodation ${summary.accommodation:,.0f} | "
            f"Total ${summary.grand_total:,.0f}",
            13,
            color="#94a3b8",
            gap=20,
        )
    )

    for day in plan.itinerary:
        card_top = flow.y
        card_children: list[Element | TextNode] = []
        flow.space(12)
        heading = f"Day {day.day}: {day.title}"
        if day.city:
            heading += f" ({day.city})"
        card_children.append(flow.text_block(heading, 20, tag="h2", color="#67e8f9"))
        if day.travel_info and day.travel_info.options:
            options = ", ".join(
                f"{o.mode} ${o.cost:,.0f}" for o in day.travel_info.options
            )
            card_children.append(
                flow.text_block(
                    f"Travel {day.travel_info.from_city} to {day.travel_info.to_city}: {options}",
                    13,
                    color="#94a3b8",
                )
            )
        for activity in day.activities:
            card_children.append(
                flow.text_block(
                    f"{activity.name} ({activity.type}, ${activity.average_cost:,.0f})",
                    16,
                    tag="h3",
                    indent=12,
                    gap=4,
                )
            )
            card_children.append(
                flow.text_block(activity.description, 14, color="#cbd5e1", indent=12, gap=4)
            )
            if activity.link:
                card_children.append(
                    flow.text_block(
                        activity.link, 12, tag="a", color="#38bdf8", indent=12, href=activity.link
                    )
                )
        bullets = _markdown_bullets(day.keep_in_mind)
        if bullets:
            card_children.append(flow.text_block("Keep in mind", 15, tag="h4", color="#fbbf24", gap=4))
            for bullet in bullets:
                card_children.append(
                    flow.text_block(f"- {bullet}", 13, color="#cbd5e1", indent=12, gap=2)
                )
        flow.space(12)
        children.append(
            Element(
                "section",
                Rect(flow.padding / 2, card_top, width - flow.padding, flow.y - card_top),
                children=card_children,
                background="#334155",
            )
        )
        flow.space(16)

    if plan.optimization_suggestions:
        children.append(flow.text_block("Optimization tips", 20, tag="h2", color="#67e8f9"))
        children.append(flow.text_block(plan.optimization_suggestions, 14, color="#cbd5e1"))

    if plan.official_links:
        children.append(flow.text_block("Official links", 20, tag="h2", color="#67e8f9"))
        for link in plan.official_links:
            children.append(
                flow.text_block(link.title, 14, tag="a", color="#38bdf8", href=link.url, gap=4)
            )

    flow.space(flow.padding)
    return Element(
        "div",
        Rect(0, 0, width, flow.y),
        children=children,
        background="#1e293b",
    )
