"""PDF Service

Builds the three printable documents for a money-transfer statement:

 - statement: the transfer application (flowing platypus story)
 - receipt: confirmation of a completed transfer (absolute canvas layout)
 - report: detailed act of services rendered (absolute canvas layout)

Generation happens in two phases. ``generate_*`` lays the document out
synchronously and returns a :class:`RenderedDocument`; :func:`pdf_to_bytes`
then writes it into memory off the event loop. Documents are produced in
ReportLab's invariant mode so the same record always yields the same bytes.
Whether a receipt may be issued at all is decided by the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, UTC
from decimal import Decimal
from io import BytesIO
from typing import Callable, Optional
import asyncio
import logging

from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer
from xml.sax.saxutils import escape as xml_escape

from statement_desk.config.settings import get_settings
from statement_desk.models.records import StatementRecord
from statement_desk.services.fonts import register_fonts
from statement_desk.services.pdf_layout import (
    PageCanvas,
    Palette,
    RECEIPT_LAYOUT,
    REPORT_LAYOUT,
    STATEMENT_LAYOUT,
)
from statement_desk.utils.errors import PdfGenerationError
from statement_desk.utils.formatting import (
    format_amount,
    format_date,
    format_full_date,
    parse_amount,
    status_text,
)

LOGGER = logging.getLogger("pdf_service")

DOCUMENT_KINDS = ("statement", "receipt", "report")
PDF_AUTHOR = "Система бизнес-автоматизации"
COMPLETED = "COMPLETED"
ZERO_COMMISSION = "0.00"


class RenderedDocument:
    """A laid-out document whose bytes have not been written yet.

    ``drain()`` performs the write and may be called exactly once.
    """

    def __init__(self, kind: str, statement_id: int, buffer: BytesIO, write: Callable[[], None]):
        self.kind = kind
        self.statement_id = statement_id
        self._buffer = buffer
        self._write = write
        self._drained = False

    @property
    def filename(self) -> str:
        return f"{self.kind}_{self.statement_id}.pdf"

    @property
    def drained(self) -> bool:
        return self._drained

    def drain(self) -> bytes:
        if self._drained:
            raise PdfGenerationError(f"{self.filename} has already been written")
        self._drained = True
        try:
            self._write()
            return self._buffer.getvalue()
        finally:
            self._buffer.close()


def _new_canvas(buffer: BytesIO, title: str) -> Canvas:
    canvas = Canvas(buffer, pagesize=A4, invariant=1)
    canvas.setTitle(title)
    canvas.setAuthor(PDF_AUTHOR)
    return canvas


# ------------------------------- Statement ---------------------------------- #


def generate_statement(record: StatementRecord) -> RenderedDocument:
    """Transfer application: title, sender, receiver and amount blocks."""
    layout = STATEMENT_LAYOUT
    regular, bold = register_fonts()

    def style(name: str, font: str, size: float, **extra) -> ParagraphStyle:
        return ParagraphStyle(name, fontName=font, fontSize=size, leading=size * 1.2, **extra)

    title = style("title", bold, layout.title_size, alignment=TA_CENTER)
    heading = style("heading", bold, layout.heading_size)
    body = style("body", regular, layout.body_size)
    amount = style("amount", regular, layout.amount_size)

    def para(text: str, st: ParagraphStyle) -> Paragraph:
        return Paragraph(xml_escape(text), st)

    sender, receiver = record.sender, record.receiver
    story = [
        para("ЗАЯВЛЕНИЕ НА ПЕРЕВОД", title),
        Spacer(1, layout.title_size),
        para("Информация об отправителе", heading),
        Spacer(1, layout.body_size / 2),
        para(f"ФИО: {sender.sender_fullname}", body),
        para(f"Номер паспорта: {sender.sender_passport}", body),
        Spacer(1, layout.body_size),
        para("Информация о получателе", heading),
        Spacer(1, layout.body_size / 2),
        para(f"ФИО: {receiver.receiver_fullname}", body),
        para(f"Номер счёта: {receiver.receiver_account_number}", body),
        para(f"SWIFT код банка: {receiver.receiver_swift}", body),
        Spacer(1, layout.body_size),
        para("Сумма перевода", heading),
        Spacer(1, layout.body_size / 2),
        para(f"{format_amount(record.amount)} {record.currency}", amount),
    ]

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=layout.margin,
        rightMargin=layout.margin,
        topMargin=layout.margin,
        bottomMargin=layout.margin,
        title=f"Заявление на перевод №{record.id}",
        author=PDF_AUTHOR,
        invariant=1,
    )
    return RenderedDocument("statement", record.id, buffer, lambda: doc.build(story))


# -------------------------------- Receipt ----------------------------------- #


def _receipt_seal(page: PageCanvas, center_y: float) -> None:
    layout = RECEIPT_LAYOUT
    cx = layout.seal_center_x
    for ring in range(layout.seal_rings):
        page.circle(cx, center_y, layout.seal_radius - ring * layout.seal_ring_step,
                    color=Palette.RECEIPT_SEAL, width=2 if ring == 0 else 1)
    left = cx - layout.seal_label_width / 2
    for offset, label in ((-8, "СИСТЕМА"), (2, "АВТОМАТИЗАЦИИ")):
        page.text(label, left, center_y + offset, size=layout.seal_label_size, bold=True,
                  color=Palette.RECEIPT_SEAL, width=layout.seal_label_width, align="center")


def generate_receipt(record: StatementRecord) -> RenderedDocument:
    """Receipt for a transfer. Renders any status; issuance rules live upstream."""
    layout = RECEIPT_LAYOUT
    buffer = BytesIO()
    canvas = _new_canvas(buffer, f"Квитанция №{record.id}")
    page = PageCanvas(canvas, register_fonts())
    amount_text = f"{format_amount(record.amount)} {record.currency}"

    def row(label: str, value: str, top: float, color=Palette.TEXT) -> None:
        page.text(label, layout.label_x, top, size=layout.label_size, color=Palette.LABEL)
        page.text(value, layout.value_x, top, size=layout.label_size, color=color)

    def heading(text: str, top: float) -> None:
        page.text(text, layout.label_x, top, size=layout.heading_size, bold=True)

    def divider(top: float) -> None:
        page.rule(top, layout.rule_left, layout.rule_right)

    page.text("КВИТАНЦИЯ", layout.margin, layout.margin, size=layout.title_size, bold=True)

    y = layout.info_top
    completed = record.status == COMPLETED
    status_label = status_text(record.status) + (" ✓" if completed else "")
    row("Номер операции:", f"#{record.id}", y)
    row("Дата операции:", format_full_date(record.created_at), y + layout.row_height)
    row("Статус:", status_label, y + 2 * layout.row_height,
        color=Palette.SUCCESS if completed else Palette.TEXT)
    divider(y + layout.meta_rule_offset)

    y += layout.first_section_offset
    heading("Отправитель", y)
    y += layout.heading_gap
    row("ФИО:", record.sender.sender_fullname, y)
    row("Паспорт:", record.sender.sender_passport, y + layout.row_height)
    y += layout.sender_block
    divider(y)

    y += layout.section_gap
    heading("Получатель", y)
    y += layout.heading_gap
    row("ФИО:", record.receiver.receiver_fullname, y)
    row("Номер счёта:", record.receiver.receiver_account_number, y + layout.row_height)
    row("SWIFT код:", record.receiver.receiver_swift, y + 2 * layout.row_height)
    y += layout.receiver_block
    divider(y)

    y += layout.section_gap
    row("Сумма перевода:", amount_text, y)
    row("Сумма комиссии:", f"{ZERO_COMMISSION} {record.currency}", y + layout.row_height)
    y += layout.amount_block
    page.text("Итого:", layout.label_x, y, size=layout.total_size, bold=True)
    page.text(amount_text, layout.value_x, y, size=layout.total_size, bold=True)

    y += layout.seal_gap
    _receipt_seal(page, y + layout.seal_center_offset)

    page.text("Сгенерировано автоматически системой бизнес-автоматизации",
              layout.margin, layout.footer_top, size=layout.footer_size,
              color=Palette.MUTED, width=layout.content_width, align="center")
    canvas.showPage()
    return RenderedDocument("receipt", record.id, buffer, canvas.save)


# ----------------------------- Detailed report ------------------------------ #


@dataclass(frozen=True)
class ServiceLine:
    name: str
    quantity: int
    price: Decimal


def report_service_lines(record: StatementRecord) -> list[ServiceLine]:
    """Billable lines of the act: the transfer itself and a zero commission."""
    amount = parse_amount(record.amount)
    return [
        ServiceLine("Международный перевод денежных средств", 1, amount),
        ServiceLine("Комиссия за перевод", 1, Decimal("0")),
    ]


def report_total(lines: list[ServiceLine]) -> Decimal:
    return sum((line.price * line.quantity for line in lines), Decimal("0"))


def _report_details(record: StatementRecord) -> list[tuple[str, str]]:
    return [
        ("Получатель:", record.receiver.receiver_fullname),
        ("Номер счёта получателя:", record.receiver.receiver_account_number),
        ("SWIFT код банка:", record.receiver.receiver_swift),
        ("Валюта перевода:", record.currency),
        ("Дата выполнения:", format_full_date(record.created_at)),
        ("Статус:", status_text(record.status)),
    ]


def generate_detailed_report(record: StatementRecord, now: Optional[datetime] = None) -> RenderedDocument:
    """Act of services rendered for the transfer.

    Args:
        record: statement snapshot
        now: date printed in the header (defaults to the current time)
    """
    layout = REPORT_LAYOUT
    settings = get_settings()
    issued_at = now or datetime.now(UTC)
    buffer = BytesIO()
    canvas = _new_canvas(buffer, f"Акт №{record.id}")
    page = PageCanvas(canvas, register_fonts())
    left, width = layout.left, layout.content_width
    currency = record.currency
    lines = report_service_lines(record)
    transfer, commission = lines
    total = report_total(lines)

    # Header
    page.text("АКТ №", left, layout.title_top, size=layout.title_size, bold=True)
    page.text(f" {record.id}", layout.number_x, layout.number_top, size=layout.number_size)
    page.text("выполненных услуг по международному переводу", left, layout.subtitle_top,
              size=layout.subtitle_size)
    page.text(settings.ACT_CITY, left, layout.place_top, size=layout.body_size, color=Palette.LABEL)
    page.text(format_date(issued_at), layout.date_x, layout.place_top, size=layout.body_size,
              color=Palette.LABEL)
    page.rule(layout.header_rule, left, layout.rule_right)

    # Parties
    y = layout.parties_top
    page.text("Исполнитель:", left, y, size=layout.party_label_size, bold=True)
    executor = (settings.EXECUTOR_NAME, settings.EXECUTOR_REQUISITES, settings.EXECUTOR_ADDRESS)
    for index, value in enumerate(executor):
        page.text(value, layout.party_value_x, y + index * layout.party_line, size=layout.body_size)
    y += layout.executor_block
    page.text("Заказчик:", left, y, size=layout.party_label_size, bold=True)
    page.text(record.sender.sender_fullname, layout.party_value_x, y, size=layout.body_size)
    page.text(f"Паспорт: {record.sender.sender_passport}", layout.party_value_x,
              y + layout.party_line, size=layout.body_size)
    y += layout.customer_block
    page.rule(y, left, layout.rule_right)

    # 1. Subject and services table
    y += layout.section_gap
    page.text("1. ПРЕДМЕТ АКТА", left, y, size=layout.section_size, bold=True)
    y += layout.section_gap
    page.justified(
        "Исполнитель оказал, а Заказчик принял следующие услуги по осуществлению "
        "международного денежного перевода:",
        left, y, width=width, size=layout.body_size)
    y += layout.intro_block

    font = layout.table_font
    page.rect(left, y, width, layout.header_row, fill=Palette.SHADE)
    header_top = y + layout.header_text_offset
    for label, x in (("№", layout.col_number), ("Наименование услуги", layout.col_name),
                     ("Кол-во", layout.col_qty_header), ("Цена", layout.col_price_header),
                     ("Сумма", layout.col_sum_header)):
        page.text(label, x, header_top, size=font, bold=True)
    y += layout.header_row

    page.rect(left, y, width, layout.transfer_row)
    row_top = y + layout.transfer_text_offset
    transfer_amount = format_amount(transfer.price)
    page.text("1", layout.col_number, row_top, size=font)
    page.text(f"{transfer.name}\nна сумму {transfer_amount} {currency}", layout.col_name,
              y + layout.transfer_desc_offset, size=font, width=layout.transfer_desc_width)
    page.text(str(transfer.quantity), layout.col_qty, row_top, size=font)
    page.text(transfer_amount, layout.col_price, row_top, size=font)
    page.text(format_amount(transfer.price * transfer.quantity), layout.col_sum, row_top, size=font)
    y += layout.transfer_row

    page.rect(left, y, width, layout.commission_row)
    row_top = y + layout.commission_text_offset
    page.text("2", layout.col_number, row_top, size=font)
    page.text(commission.name, layout.col_name, row_top, size=font)
    page.text(str(commission.quantity), layout.col_qty, row_top, size=font)
    # Commission is always zero
    page.text(ZERO_COMMISSION, layout.col_commission_price, row_top, size=font)
    page.text(ZERO_COMMISSION, layout.col_commission_sum, row_top, size=font)
    y += layout.commission_row

    page.rect(left, y, width, layout.total_row, fill=Palette.SHADE)
    row_top = y + layout.total_text_offset
    page.text("ИТОГО:", layout.total_label_x, row_top, size=layout.body_size, bold=True)
    page.text(f"{format_amount(total)} {currency}", layout.total_value_x, row_top,
              size=layout.body_size, bold=True)
    y += layout.total_row + layout.after_table

    # 2. Transfer details
    page.text("2. ДЕТАЛИ ПЕРЕВОДА", left, y, size=layout.section_size, bold=True)
    y += layout.section_gap
    for label, value in _report_details(record):
        page.text(label, left, y, size=font, bold=True, color=Palette.LABEL,
                  width=layout.detail_label_width)
        page.text(value, layout.detail_value_x, y, size=font, width=layout.detail_value_width)
        y += layout.detail_row
    y += layout.after_details

    # 3. Signatures
    page.text("3. ПОДПИСИ СТОРОН", left, y, size=layout.section_size, bold=True)
    y += layout.signatures_gap
    signers = ((left, "Исполнитель:", settings.EXECUTOR_NAME),
               (layout.signer_right_x, "Заказчик:", record.sender.sender_fullname))
    for x, label, name in signers:
        page.text(label, x, y, size=layout.body_size, bold=True)
        page.text(name, x, y + layout.signer_name_offset, size=font)
        page.text("_________________", x, y + layout.signer_line_offset, size=layout.body_size)
        page.text("(подпись)", x + layout.signer_caption_indent, y + layout.signer_caption_offset,
                  size=layout.footer_size + 1, color=Palette.MUTED)

    seal_y = y + layout.seal_offset
    for radius, line_width in ((layout.seal_outer, 2), (layout.seal_inner, 1)):
        page.circle(layout.seal_x, seal_y, radius, color=Palette.REPORT_SEAL, width=line_width)
    page.text("М.П.", layout.seal_x - layout.seal_label_dx, seal_y - layout.seal_label_dy,
              size=layout.seal_label_size, bold=True, color=Palette.REPORT_SEAL)

    page.text("Акт составлен в двух экземплярах, имеющих одинаковую юридическую силу, "
              "по одному для каждой стороны.",
              left, layout.footer_top, size=layout.footer_size, color=Palette.MUTED,
              width=width, align="center")
    canvas.showPage()
    return RenderedDocument("report", record.id, buffer, canvas.save)


# ----------------------------- Serialization -------------------------------- #


async def pdf_to_bytes(document: RenderedDocument) -> bytes:
    """Write a laid-out document into memory and return the complete PDF.

    Raises:
        PdfGenerationError: the document was already drained or writing failed
    """
    try:
        data = await asyncio.to_thread(document.drain)
    except PdfGenerationError:
        LOGGER.error("PDF %s requested twice", document.filename)
        raise
    except Exception as exc:  # noqa: BLE001 - any writer failure becomes a domain error
        LOGGER.error("Failed to write %s: %s", document.filename, exc, exc_info=True)
        raise PdfGenerationError(details={"document": document.filename}) from exc
    LOGGER.info("Generated %s (%d bytes)", document.filename, len(data))
    return data


_GENERATORS: dict[str, Callable[[StatementRecord], RenderedDocument]] = {
    "statement": generate_statement,
    "receipt": generate_receipt,
    "report": generate_detailed_report,
}


async def render_pdf(kind: str, record: StatementRecord) -> tuple[bytes, str]:
    """Lay out and serialize one document kind; returns (bytes, download filename)."""
    try:
        generator = _GENERATORS[kind]
    except KeyError:
        raise ValueError(f"Unknown document kind: {kind}") from None
    document = generator(record)
    return await pdf_to_bytes(document), document.filename


__all__ = [
    "DOCUMENT_KINDS",
    "RenderedDocument",
    "ServiceLine",
    "report_service_lines",
    "report_total",
    "generate_statement",
    "generate_receipt",
    "generate_detailed_report",
    "pdf_to_bytes",
    "render_pdf",
]
