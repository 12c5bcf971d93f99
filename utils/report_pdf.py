"""
utils/report_pdf.py
PDF export of the streamed markdown report using reportlab.

Only the markdown subset the prompts ask for is handled: headings, bullet
lists, blockquotes, GFM tables, horizontal rules and inline bold/italic.
Highlighted (bold) text is printed underlined instead of shaded.
"""

from __future__ import annotations

import io
import logging
import re
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import (
    HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle,
)

from config.settings import (
    PDF_BODY_FONT, PDF_MARGIN_X_PX, PDF_MARGIN_Y_PX, PDF_PAGE_HEIGHT_PX, PDF_PAGE_WIDTH_PX,
)
from models.session import Mode, SessionState

logger = logging.getLogger(__name__)

PX = 0.75   # points per CSS pixel at 96 DPI

PAGE_SIZE = (PDF_PAGE_WIDTH_PX * PX, PDF_PAGE_HEIGHT_PX * PX)
BRAND     = colors.HexColor("#2563eb")

DISCLAIMER = (
    "免责声明：本报告由人工智能生成，仅供参考，不构成任何投资建议。股市有风险，投资需谨慎。"
    " Disclaimer: This report is generated by AI for informational purposes only "
    "and does not constitute investment advice."
)

_HEADING   = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET    = re.compile(r"^(\s*)(?:[-*+]|\d+[.)])\s+(.*)$")
_RULE      = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$")
_TABLE_SEP = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?\s*$")
_BOLD      = re.compile(r"\*\*(.+?)\*\*")
_ITALIC    = re.compile(r"(?<![*\w])\*(?!\s)([^*<>]+?)(?<!\s)\*(?![*\w])")
_LINK      = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_CODE      = re.compile(r"`([^`]+)`")
# Emoji, dingbats and variation selectors have no glyphs in the CID font.
# Italics never span a tag, so emphasis that overlaps bold stays literal.
_NO_GLYPH  = re.compile("[\U00010000-\U0010FFFF\u2600-\u27bf\u2b00-\u2bff\ufe0e\ufe0f\u200d]")


def report_filename(state: SessionState) -> str:
    subject = state.stock.code.strip().upper() if state.mode == Mode.ANALYSIS else "Screener"
    return f"ProStock_{subject or 'Report'}_{state.stock.date}.pdf"


# ── Fonts & styles ────────────────────────────────────────────────────────────

def _register_fonts():
    if PDF_BODY_FONT in pdfmetrics.getRegisteredFontNames():
        return
    pdfmetrics.registerFont(UnicodeCIDFont(PDF_BODY_FONT))
    # The CID font has no bold face; <b> maps back onto it and the underline
    # carries the emphasis.
    pdfmetrics.registerFontFamily(
        PDF_BODY_FONT, normal=PDF_BODY_FONT, bold=PDF_BODY_FONT,
        italic=PDF_BODY_FONT, boldItalic=PDF_BODY_FONT,
    )


def build_styles() -> dict[str, ParagraphStyle]:
    _register_fonts()
    base = getSampleStyleSheet()
    font = PDF_BODY_FONT
    return {
        "h1": ParagraphStyle("ReportH1", parent=base["Heading1"], fontName=font,
                             fontSize=18, leading=24, spaceBefore=14, spaceAfter=10,
                             textColor=colors.HexColor("#111827")),
        "h2": ParagraphStyle("ReportH2", parent=base["Heading2"], fontName=font,
                             fontSize=14, leading=20, spaceBefore=14, spaceAfter=8,
                             textColor=colors.HexColor("#1f2937"), borderPadding=(4, 4, 4, 6),
                             backColor=colors.HexColor("#f3f4f6")),
        "h3": ParagraphStyle("ReportH3", parent=base["Heading3"], fontName=font,
                             fontSize=12, leading=17, spaceBefore=10, spaceAfter=4,
                             textColor=colors.HexColor("#1d4ed8")),
        "body": ParagraphStyle("ReportBody", parent=base["Normal"], fontName=font,
                               fontSize=10, leading=16, spaceAfter=6),
        "bullet": ParagraphStyle("ReportBullet", parent=base["Normal"], fontName=font,
                                 fontSize=10, leading=16, spaceAfter=3, leftIndent=14,
                                 bulletIndent=4),
        "quote": ParagraphStyle("ReportQuote", parent=base["Normal"], fontName=font,
                                fontSize=9.5, leading=15, leftIndent=10, spaceBefore=6,
                                spaceAfter=8, borderPadding=(6, 6, 6, 8),
                                backColor=colors.HexColor("#f8fafc"),
                                textColor=colors.HexColor("#1e3a8a")),
        "cell": ParagraphStyle("ReportCell", parent=base["Normal"], fontName=font,
                               fontSize=8.5, leading=12),
        "brand": ParagraphStyle("ReportBrand", parent=base["Normal"], fontName=font,
                                fontSize=12, leading=16, textColor=BRAND),
        "title": ParagraphStyle("ReportTitle", parent=base["Title"], fontName=font,
                                fontSize=22, leading=28, alignment=0, spaceAfter=0),
        "subject": ParagraphStyle("ReportSubject", parent=base["Normal"], fontName=font,
                                  fontSize=26, leading=30, alignment=TA_RIGHT),
        "date": ParagraphStyle("ReportDate", parent=base["Normal"], fontName=font,
                               fontSize=9, leading=12, alignment=TA_RIGHT,
                               textColor=colors.HexColor("#6b7280")),
        "footer": ParagraphStyle("ReportFooter", parent=base["Normal"], fontName=font,
                                 fontSize=7.5, leading=11, alignment=TA_CENTER,
                                 textColor=colors.HexColor("#9ca3af")),
    }


# ── Markdown conversion ───────────────────────────────────────────────────────

def inline_markup(text: str) -> str:
    """Convert inline markdown to reportlab paragraph markup."""
    text = _NO_GLYPH.sub("", text)
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    text = _LINK.sub(r"\1", text)
    text = _CODE.sub(r"\1", text)
    text = _BOLD.sub(r"<u><b>\1</b></u>", text)
    text = _ITALIC.sub(r"<i>\1</i>", text)
    return text.strip()


def _split_row(line: str) -> list[str]:
    cells = line.strip()
    if cells.startswith("|"):
        cells = cells[1:]
    if cells.endswith("|"):
        cells = cells[:-1]
    return [c.strip() for c in cells.split("|")]


def parse_table(lines: list[str]) -> list[list[str]]:
    """Rows of a GFM table with the alignment row removed and widths padded."""
    rows = [_split_row(line) for line in lines if not _TABLE_SEP.match(line)]
    width = max((len(r) for r in rows), default=0)
    return [r + [""] * (width - len(r)) for r in rows]


def _table_flowable(rows: list[list[str]], styles: dict, avail_width: float) -> Table:
    data = [[Paragraph(inline_markup(cell), styles["cell"]) for cell in row] for row in rows]
    col_width = avail_width / max(len(rows[0]), 1)
    table = Table(data, colWidths=[col_width] * len(rows[0]), repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND",    (0, 0), (-1, 0), colors.HexColor("#f9fafb")),
        ("LINEBELOW",     (0, 0), (-1, 0), 0.8, colors.HexColor("#d1d5db")),
        ("GRID",          (0, 0), (-1, -1), 0.4, colors.HexColor("#e5e7eb")),
        ("VALIGN",        (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING",    (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    return table


def markdown_to_flowables(text: str, styles: dict, avail_width: float) -> list:
    flowables: list = []
    paragraph: list[str] = []
    lines = text.splitlines()

    def flush():
        if paragraph:
            flowables.append(Paragraph(inline_markup(" ".join(paragraph)), styles["body"]))
            paragraph.clear()

    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.strip()

        if not stripped:
            flush()
            i += 1
            continue

        if stripped.startswith("|"):
            flush()
            block = []
            while i < len(lines) and lines[i].strip().startswith("|"):
                block.append(lines[i])
                i += 1
            rows = parse_table(block)
            if rows:
                flowables.append(Spacer(1, 4))
                flowables.append(_table_flowable(rows, styles, avail_width))
                flowables.append(Spacer(1, 8))
            continue

        heading = _HEADING.match(stripped)
        bullet  = _BULLET.match(line)

        if _RULE.match(stripped):
            flush()
            flowables.append(HRFlowable(width="100%", thickness=0.6, dash=(3, 3),
                                        color=colors.HexColor("#d1d5db"),
                                        spaceBefore=8, spaceAfter=8))
        elif heading:
            flush()
            level = min(len(heading.group(1)), 3)
            flowables.append(Paragraph(inline_markup(heading.group(2)), styles[f"h{level}"]))
        elif stripped.startswith(">"):
            flush()
            flowables.append(Paragraph(inline_markup(stripped.lstrip("> ")), styles["quote"]))
        elif bullet:
            flush()
            depth = len(bullet.group(1).expandtabs(4)) // 2
            style = ParagraphStyle(f"ReportBullet{depth}", parent=styles["bullet"],
                                   leftIndent=14 + depth * 12, bulletIndent=4 + depth * 12)
            flowables.append(Paragraph(inline_markup(bullet.group(2)), style, bulletText="•"))
        else:
            paragraph.append(stripped)
        i += 1

    flush()
    return flowables


# ── Export ────────────────────────────────────────────────────────────────────

def _header(state: SessionState, styles: dict, avail_width: float) -> list:
    subject = state.stock.code.strip().upper() if state.mode == Mode.ANALYSIS else "SCREENER"
    left  = [Paragraph("ProStock AI", styles["brand"]),
             Paragraph("Investment Research", styles["title"])]
    right = [Paragraph(inline_markup(subject), styles["subject"]),
             Paragraph(state.stock.date, styles["date"])]
    table = Table([[left, right]], colWidths=[avail_width * 0.6, avail_width * 0.4])
    table.setStyle(TableStyle([
        ("VALIGN",        (0, 0), (-1, -1), "BOTTOM"),
        ("LINEBELOW",     (0, 0), (-1, 0), 1.5, BRAND),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 10),
    ]))
    return [table, Spacer(1, 16)]


def export_report_pdf(state: SessionState, text: Optional[str] = None) -> bytes:
    """
    Render the report (``text`` or the state's streamed result) to PDF bytes.
    """
    text   = state.result_text if text is None else text
    styles = build_styles()
    buffer = io.BytesIO()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=PAGE_SIZE,
        leftMargin=PDF_MARGIN_X_PX * PX, rightMargin=PDF_MARGIN_X_PX * PX,
        topMargin=PDF_MARGIN_Y_PX * PX, bottomMargin=PDF_MARGIN_Y_PX * PX,
        title=report_filename(state)[:-4],
        author="ProStock AI",
    )

    story = _header(state, styles, doc.width)
    story += markdown_to_flowables(text, styles, doc.width)
    story += [
        Spacer(1, 24),
        HRFlowable(width="100%", thickness=0.5, color=colors.HexColor("#e5e7eb")),
        Spacer(1, 6),
        Paragraph("Generated by ProStock AI | Professional Investment Assistant", styles["footer"]),
        Paragraph(DISCLAIMER, styles["footer"]),
    ]

    doc.build(story)
    logger.info("Exported PDF report %s (%d chars)", report_filename(state), len(text))
    return buffer.getvalue()
