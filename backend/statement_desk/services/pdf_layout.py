"""Layout constants and a top-down drawing helper for the PDF documents.

Each document type owns a frozen table of offsets so a layout tweak is a
one-place edit. Coordinates are measured from the page's top-left corner
(y grows downwards); :class:`PageCanvas` flips them into PDF space.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.enums import TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Paragraph

PAGE_WIDTH, PAGE_HEIGHT = A4

# Baseline sits this fraction of the font size below the top of the text line
ASCENT_RATIO = 0.8
LINE_HEIGHT_RATIO = 1.16


class Palette:
    TEXT = HexColor("#000000")
    LABEL = HexColor("#666666")
    MUTED = HexColor("#999999")
    RULE = HexColor("#e5e5e5")
    SHADE = HexColor("#f5f5f5")
    SUCCESS = HexColor("#22c55e")
    RECEIPT_SEAL = HexColor("#ff6b35")
    REPORT_SEAL = HexColor("#0066cc")


@dataclass(frozen=True)
class StatementLayout:
    margin: float = 50
    title_size: float = 20
    heading_size: float = 16
    body_size: float = 12
    amount_size: float = 14


@dataclass(frozen=True)
class ReceiptLayout:
    margin: float = 60
    title_size: float = 24
    # Top of the operation metadata rows (title line + 1.5 lines of spacing)
    info_top: float = 130
    label_x: float = 60
    value_x: float = 300
    rule_left: float = 60
    rule_right: float = 535
    label_size: float = 10
    heading_size: float = 14
    total_size: float = 12
    row_height: float = 20
    heading_gap: float = 25
    meta_rule_offset: float = 70
    first_section_offset: float = 95
    sender_block: float = 55
    receiver_block: float = 75
    section_gap: float = 25
    amount_block: float = 45
    seal_gap: float = 60
    seal_center_x: float = 480
    seal_center_offset: float = 40
    seal_radius: float = 35
    seal_ring_step: float = 5
    seal_rings: int = 3
    seal_label_width: float = 50
    seal_label_size: float = 8
    footer_top: float = 750
    footer_size: float = 8
    content_width: float = 475


@dataclass(frozen=True)
class ReportLayout:
    margin: float = 60
    left: float = 60
    content_width: float = 475
    rule_right: float = 535
    # header
    title_top: float = 60
    title_size: float = 18
    number_x: float = 125
    number_top: float = 63
    number_size: float = 14
    subtitle_top: float = 85
    subtitle_size: float = 11
    place_top: float = 105
    date_x: float = 450
    header_rule: float = 130
    # parties
    parties_top: float = 150
    party_label_size: float = 11
    party_value_x: float = 160
    party_line: float = 15
    executor_block: float = 60
    customer_block: float = 45
    # sections
    section_size: float = 12
    section_gap: float = 25
    intro_block: float = 50
    body_size: float = 10
    # services table
    table_font: float = 9
    header_row: float = 25
    header_text_offset: float = 8
    transfer_row: float = 30
    transfer_text_offset: float = 10
    transfer_desc_offset: float = 5
    transfer_desc_width: float = 240
    commission_row: float = 20
    commission_text_offset: float = 6
    total_row: float = 25
    total_text_offset: float = 7
    total_label_x: float = 350
    total_value_x: float = 440
    after_table: float = 45
    col_number: float = 70
    col_name: float = 100
    col_qty_header: float = 350
    col_qty: float = 360
    col_price_header: float = 410
    col_price: float = 400
    col_sum_header: float = 470
    col_sum: float = 455
    col_commission_price: float = 410
    col_commission_sum: float = 475
    # transfer details
    detail_label_width: float = 150
    detail_value_x: float = 220
    detail_value_width: float = 315
    detail_row: float = 18
    after_details: float = 20
    # signatures
    signatures_gap: float = 35
    signer_right_x: float = 320
    signer_name_offset: float = 18
    signer_line_offset: float = 45
    signer_caption_offset: float = 60
    signer_caption_indent: float = 30
    # seal
    seal_x: float = 480
    seal_offset: float = 35
    seal_outer: float = 35
    seal_inner: float = 30
    seal_label_dx: float = 10
    seal_label_dy: float = 3
    seal_label_size: float = 7
    # footer
    footer_top: float = 750
    footer_size: float = 7


STATEMENT_LAYOUT = StatementLayout()
RECEIPT_LAYOUT = ReceiptLayout()
REPORT_LAYOUT = ReportLayout()


class PageCanvas:
    """Top-down drawing over a single ReportLab canvas page."""

    def __init__(self, canvas: Canvas, fonts: tuple[str, str], page_height: float = PAGE_HEIGHT):
        self.canvas = canvas
        self.regular, self.bold = fonts
        self.page_height = page_height

    def _pdf_y(self, top: float) -> float:
        return self.page_height - top

    def text(
        self,
        value: str,
        x: float,
        top: float,
        *,
        size: float = 10,
        bold: bool = False,
        color: Color = Palette.TEXT,
        width: Optional[float] = None,
        align: str = "left",
    ) -> float:
        """Draw (optionally wrapped) text whose first line starts at ``top``.

        Returns the height consumed so callers can advance their cursor.
        """
        font = self.bold if bold else self.regular
        leading = size * LINE_HEIGHT_RATIO
        lines: list[str] = []
        for paragraph in str(value).split("\n"):
            if width:
                lines.extend(simpleSplit(paragraph, font, size, width) or [""])
            else:
                lines.append(paragraph)
        self.canvas.setFont(font, size)
        self.canvas.setFillColor(color)
        for index, line in enumerate(lines):
            baseline = self._pdf_y(top + size * ASCENT_RATIO + index * leading)
            if align == "center" and width:
                self.canvas.drawCentredString(x + width / 2, baseline, line)
            elif align == "right" and width:
                self.canvas.drawRightString(x + width, baseline, line)
            else:
                self.canvas.drawString(x, baseline, line)
        return len(lines) * leading

    def justified(self, value: str, x: float, top: float, *, width: float,
                  size: float = 10, color: Color = Palette.TEXT) -> float:
        style = ParagraphStyle(
            "justified",
            fontName=self.regular,
            fontSize=size,
            leading=size * LINE_HEIGHT_RATIO,
            alignment=TA_JUSTIFY,
            textColor=color,
        )
        paragraph = Paragraph(xml_escape(value), style)
        _, height = paragraph.wrapOn(self.canvas, width, self.page_height)
        paragraph.drawOn(self.canvas, x, self._pdf_y(top) - height)
        return height

    def rule(self, top: float, left: float, right: float,
             color: Color = Palette.RULE, width: float = 1) -> None:
        self.canvas.setStrokeColor(color)
        self.canvas.setLineWidth(width)
        self.canvas.line(left, self._pdf_y(top), right, self._pdf_y(top))

    def rect(self, x: float, top: float, width: float, height: float, *,
             stroke: Color = Palette.RULE, fill: Optional[Color] = None) -> None:
        self.canvas.setStrokeColor(stroke)
        self.canvas.setLineWidth(1)
        if fill is not None:
            self.canvas.setFillColor(fill)
        self.canvas.rect(x, self._pdf_y(top + height), width, height,
                         stroke=1, fill=1 if fill is not None else 0)

    def circle(self, cx: float, cy: float, radius: float, *,
               color: Color, width: float = 1) -> None:
        self.canvas.setStrokeColor(color)
        self.canvas.setLineWidth(width)
        self.canvas.circle(cx, self._pdf_y(cy), radius, stroke=1, fill=0)
