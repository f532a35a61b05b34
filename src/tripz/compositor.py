"""Multi-page PDF export of a renderable tree.

The tree is rasterized once into a single tall image. Each content page
draws that same image shifted up by one page of content height, so page
``i`` shows the window ``[i * P, (i + 1) * P)`` of the scaled image. On top
of the image go an invisible text layer (so the PDF is searchable and
selectable) and borderless link annotations, both placed by mapping source
pixel geometry through the same scale factor.

Coordinates in this module are measured from the top of the page, as in the
source tree; they are flipped to PDF's bottom-left origin only when drawing.
"""
from __future__ import annotations

import asyncio
import io
import logging
import math
import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfgen import canvas

from tripz.layout import Element, Rect, TextNode, build_plan_tree
from tripz.models import DestinationSuggestion, TravelPlan

log = logging.getLogger(__name__)

PX_TO_PT = 0.75
RASTER_SCALE = 2
SKIPPED_TAGS = frozenset({"script", "style", "noscript", "template"})
INVISIBLE = 3  # PDF text render mode: neither fill nor stroke

# Text-layer strings are written as UTF-16, so any script stays extractable.
TEXT_LAYER_FONT = "HeiseiKakuGo-W5"
pdfmetrics.registerFont(UnicodeCIDFont(TEXT_LAYER_FONT))


@dataclass(frozen=True)
class PageGeometry:
    page_width: float
    page_height: float
    margin: float = 40

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def content_height(self) -> float:
        return self.page_height - 2 * self.margin


A4_GEOMETRY = PageGeometry(*A4, margin=40)


@dataclass(frozen=True)
class PagePlacement:
    page_index: int
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class TextRun:
    page_index: int
    x: float
    y: float  # baseline
    font_size: float  # points
    text: str


@dataclass(frozen=True)
class LinkRegion:
    page_index: int
    x: float
    y: float
    width: float
    height: float
    url: str


class ExportInProgressError(Exception):
    """Raised when an export is requested while another is still running."""


def page_count(image_height: float, content_height: float) -> int:
    """Number of content pages needed for an image of ``image_height``."""
    return max(1, math.ceil(image_height / content_height))


def map_rect(rect: Rect, scale: float, geometry: PageGeometry) -> PagePlacement:
    """Place a source rectangle on the page whose window contains its top."""
    scaled_top = rect.top * scale
    page_height = geometry.content_height
    return PagePlacement(
        page_index=math.floor(scaled_top / page_height),
        x=geometry.margin + rect.left * scale,
        y=(scaled_top % page_height) + geometry.margin,
        width=rect.width * scale,
        height=rect.height * scale,
    )


def _walk(element: Element, hidden: bool = False):
    """Yield ``(element, hidden)`` depth-first, skipping script-like subtrees."""
    hidden = hidden or element.hidden
    yield element, hidden
    for child in element.children:
        if isinstance(child, Element) and child.tag.lower() not in SKIPPED_TAGS:
            yield from _walk(child, hidden)


def collect_text_runs(
    root: Element, scale: float, geometry: PageGeometry, pages: int
) -> list[TextRun]:
    runs = []
    bottom_limit = geometry.page_height - geometry.margin
    for element, hidden in _walk(root):
        if hidden:
            continue
        for child in element.children:
            if not isinstance(child, TextNode):
                continue
            text = child.text.strip()
            if not text or child.rect.width <= 0 or child.rect.height <= 0:
                continue
            placement = map_rect(child.rect, scale, geometry)
            # Baseline sits at the bottom of the line box
            baseline = placement.y + placement.height
            if baseline > bottom_limit or placement.page_index >= pages:
                continue
            runs.append(
                TextRun(
                    page_index=placement.page_index,
                    x=placement.x,
                    y=baseline,
                    font_size=element.font_size * PX_TO_PT,
                    text=text,
                )
            )
    return runs


def is_external_url(href: str | None) -> bool:
    if not href:
        return False
    parsed = urlparse(href)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def collect_links(
    root: Element, scale: float, geometry: PageGeometry, pages: int
) -> list[LinkRegion]:
    links = []
    for element, _ in _walk(root):
        if element.tag.lower() != "a" or not is_external_url(element.href):
            continue
        if element.rect.width <= 0 or element.rect.height <= 0:
            continue
        placement = map_rect(element.rect, scale, geometry)
        if placement.page_index >= pages:
            continue
        links.append(
            LinkRegion(
                page_index=placement.page_index,
                x=placement.x,
                y=placement.y,
                width=placement.width,
                height=placement.height,
                url=element.href,
            )
        )
    return links


class Rasterizer(Protocol):
    async def rasterize(self, root: Element, scale: float) -> Image.Image: ...


class PillowRasterizer:
    """Paints backgrounds and text of a tree into an RGB image."""

    def __init__(self, background: str = "#1e293b"):
        self.background = background
        self._fonts: dict[int, ImageFont.ImageFont | ImageFont.FreeTypeFont] = {}

    def _font(self, size: float):
        key = max(1, round(size))
        if key not in self._fonts:
            self._fonts[key] = ImageFont.load_default(size=key)
        return self._fonts[key]

    def paint(self, root: Element, scale: float) -> Image.Image:
        width = max(1, math.ceil(root.rect.width * scale))
        height = max(1, math.ceil(root.rect.height * scale))
        image = Image.new("RGB", (width, height), root.background or self.background)
        draw = ImageDraw.Draw(image)
        for element, hidden in _walk(root):
            if hidden:
                continue
            if element.background and element is not root:
                r = element.rect
                draw.rectangle(
                    (r.left * scale, r.top * scale, (r.left + r.width) * scale, r.bottom * scale),
                    fill=element.background,
                )
            for child in element.children:
                if isinstance(child, TextNode) and child.text.strip():
                    draw.text(
                        (child.rect.left * scale, child.rect.top * scale),
                        child.text,
                        fill=element.color,
                        font=self._font(element.font_size * scale),
                    )
        return image

    async def rasterize(self, root: Element, scale: float) -> Image.Image:
        return await asyncio.to_thread(self.paint, root, scale)


def _draw_cover(pdf: canvas.Canvas, geometry: PageGeometry, title: str, subtitle: str) -> None:
    width, height = geometry.page_width, geometry.page_height
    pdf.setFillColor(HexColor("#0f172a"))
    pdf.rect(0, 0, width, height, fill=1, stroke=0)
    pdf.setFillColor(HexColor("#e2e8f0"))
    pdf.setFont("Helvetica-Bold", 32)
    pdf.drawCentredString(width / 2, height / 2 + 20, title)
    pdf.setFillColor(HexColor("#94a3b8"))
    pdf.setFont("Helvetica", 18)
    pdf.drawCentredString(width / 2, height / 2 - 10, subtitle)
    pdf.showPage()


def compose_pdf(
    image: Image.Image,
    root: Element,
    title: str,
    subtitle: str,
    geometry: PageGeometry = A4_GEOMETRY,
) -> bytes:
    """Build the PDF: a cover page followed by the paginated content."""
    output = io.BytesIO()
    pdf = canvas.Canvas(output, pagesize=(geometry.page_width, geometry.page_height))
    _draw_cover(pdf, geometry, title, subtitle)

    content_width = geometry.content_width
    content_height = geometry.content_height
    image_height = image.height * content_width / image.width
    pages = page_count(image_height, content_height)
    scale = content_width / root.rect.width

    runs_by_page: dict[int, list[TextRun]] = defaultdict(list)
    for run in collect_text_runs(root, scale, geometry, pages):
        runs_by_page[run.page_index].append(run)
    links_by_page: dict[int, list[LinkRegion]] = defaultdict(list)
    for link in collect_links(root, scale, geometry, pages):
        links_by_page[link.page_index].append(link)

    page_top = geometry.page_height
    reader = ImageReader(image)
    for index in range(pages):
        pdf.saveState()
        clip = pdf.beginPath()
        clip.rect(geometry.margin, geometry.margin, content_width, content_height)
        pdf.clipPath(clip, stroke=0, fill=0)
        image_top = page_top - geometry.margin + index * content_height
        pdf.drawImage(
            reader,
            geometry.margin,
            image_top - image_height,
            width=content_width,
            height=image_height,
        )
        pdf.restoreState()

        for run in runs_by_page[index]:
            text = pdf.beginText()
            text.setTextRenderMode(INVISIBLE)
            text.setFont(TEXT_LAYER_FONT, run.font_size)
            text.setTextOrigin(run.x, page_top - run.y)
            text.textOut(run.text)
            pdf.drawText(text)

        for link in links_by_page[index]:
            pdf.linkURL(
                link.url,
                (link.x, page_top - link.y - link.height, link.x + link.width, page_top - link.y),
                relative=0,
                thickness=0,
            )
        pdf.showPage()

    pdf.save()
    return output.getvalue()


def export_filename(destination_name: str) -> str:
    slug = re.sub(r"[^\w-]+", "-", destination_name.strip()).strip("-")
    return f"trip-to-{slug or 'destination'}.pdf"


class DocumentExporter:
    """Runs one export at a time.

    ``busy`` is set for the whole duration of :meth:`export`, and a second
    call made while it is set is rejected rather than queued.
    """

    def __init__(
        self,
        rasterizer: Rasterizer | None = None,
        geometry: PageGeometry = A4_GEOMETRY,
        raster_scale: float = RASTER_SCALE,
    ):
        self.rasterizer = rasterizer or PillowRasterizer()
        self.geometry = geometry
        self.raster_scale = raster_scale
        self.busy = False

    async def export(self, root: Element, title: str, subtitle: str) -> bytes | None:
        """Return the PDF bytes, or None if rasterization or composition failed.

        Raises:
            ExportInProgressError: If another export is still running.
        """
        if self.busy:
            raise ExportInProgressError("A PDF export is already in progress.")
        self.busy = True
        try:
            image = await self.rasterizer.rasterize(root, self.raster_scale)
            return await asyncio.to_thread(
                compose_pdf, image, root, title, subtitle, self.geometry
            )
        except Exception:
            log.exception("Error generating PDF")
            return None
        finally:
            self.busy = False

    async def export_plan(
        self, plan: TravelPlan, destination: DestinationSuggestion
    ) -> bytes | None:
        root = build_plan_tree(plan, destination)
        return await self.export(
            root,
            f"Your Trip to {destination.name}",
            f"{len(plan.itinerary)} Day Adventure",
        )
