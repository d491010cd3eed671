"""Server-side PDF rendering for tenant reports.

Documents are laid out with reportlab platypus; trend charts are drawn with
matplotlib on the Agg backend and embedded as in-memory PNGs.
"""

import logging
from datetime import date, datetime
from io import BytesIO
from typing import Any
from xml.sax.saxutils import escape

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from reportlab.lib import colors  # noqa: E402
from reportlab.lib.enums import TA_CENTER  # noqa: E402
from reportlab.lib.pagesizes import A4  # noqa: E402
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet  # noqa: E402
from reportlab.lib.units import cm  # noqa: E402
from reportlab.platypus import (  # noqa: E402
    HRFlowable,
    Image,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from app.api.services.risk import get_risk_level  # noqa: E402
from app.api.services.scoring import round_half_up  # noqa: E402

logger = logging.getLogger(__name__)

BRAND_COLOR = colors.HexColor("#006666")
MUTED_COLOR = colors.HexColor("#666666")

RISK_LEVEL_COLORS = {
    "Low": colors.HexColor("#00cc00"),
    "Medium": colors.HexColor("#ff9900"),
    "High": colors.HexColor("#ff0000"),
}

SECTION_TITLES = [
    ("identitiesAndPeople", "Identities & People"),
    ("devicesAndInfrastructure", "Devices & Infrastructure"),
    ("data", "Data"),
]


def executive_report_filename(tenant_name: str, today: date) -> str:
    return f"{tenant_name}-Cyber-Risk-Executive_Report-{today.isoformat()}.pdf"


def tender_insurer_pack_filename(tenant_name: str, today: date) -> str:
    return f"{tenant_name}-Cyber-Risk-Tender_Insurer_Pack-{today.isoformat()}.pdf"


def risk_report_filename(tenant_name: str, report: Any) -> str:
    return f"{tenant_name}-Risk-Report-Q{report.quarter}-{report.year}.pdf"


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "date": ParagraphStyle("ReportDate", parent=base["Normal"], fontSize=10, textColor=MUTED_COLOR, alignment=2),
        "title": ParagraphStyle(
            "ReportTitle", parent=base["Title"], fontSize=20, textColor=BRAND_COLOR, alignment=TA_CENTER
        ),
        "tenant": ParagraphStyle("ReportTenant", parent=base["Normal"], fontSize=16, leading=20, alignment=TA_CENTER),
        "heading": ParagraphStyle("SectionHeading", parent=base["Heading2"], fontSize=14, spaceBefore=10),
        "metric_label": ParagraphStyle(
            "MetricLabel", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=16,
            leading=20, textColor=BRAND_COLOR, alignment=TA_CENTER,
        ),
        "metric_value": ParagraphStyle(
            "MetricValue", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=28,
            leading=34, alignment=TA_CENTER,
        ),
        "body": base["Normal"],
    }


def _header(title: str, tenant_name: str, today: date, styles: dict[str, ParagraphStyle]) -> list:
    return [
        Paragraph(today.isoformat(), styles["date"]),
        Paragraph(title, styles["title"]),
        Paragraph(escape(tenant_name), styles["tenant"]),
        Spacer(1, 0.2 * cm),
        HRFlowable(width="100%", thickness=0.5, color=BRAND_COLOR),
        Spacer(1, 0.6 * cm),
    ]


def _build(story: list, title: str) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=title,
        leftMargin=1.5 * cm,
        rightMargin=1.5 * cm,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
    )
    doc.build(story)
    return buffer.getvalue()


def _grid_table(rows: list[list[Any]], col_widths: list[float]) -> Table:
    table = Table(rows, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), BRAND_COLOR),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    return table


def _month_label(value: Any) -> str:
    if isinstance(value, datetime | date):
        return value.strftime("%b %Y")
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%b %Y")
        except ValueError:
            return value
    return ""


def _chart_series(records: list[dict[str, Any]], value_key: str) -> tuple[list[str], list[float]]:
    """Oldest-first labels and values from a newest-first series."""
    ordered = list(reversed(records or []))
    labels = [_month_label(r.get("lastUpdated")) for r in ordered]
    values = [float(r.get(value_key) or 0) for r in ordered]
    return labels, values


def _bar_chart(labels: list[str], values: list[float]) -> BytesIO:
    """Percentage bar chart rendered to an in-memory PNG."""
    fig, ax = plt.subplots(figsize=(7.0, 3.2))
    if values:
        bars = ax.bar(labels, values, color="#006666", width=0.5)
        for bar, value in zip(bars, values):
            ax.text(
                bar.get_x() + bar.get_width() / 2,
                value + 2,
                f"{value:.0f}%",
                ha="center",
                va="bottom",
                fontsize=9,
            )
    else:
        ax.text(0.5, 50, "No data for the last three months", ha="center", va="center", fontsize=10)
        ax.set_xlim(0, 1)
        ax.set_xticks([])

    ax.set_ylim(0, 110)
    ax.set_ylabel("%")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    fig.tight_layout()

    image = BytesIO()
    fig.savefig(image, format="png", dpi=150)
    plt.close(fig)
    image.seek(0)
    return image


def _format_pct(value: Any) -> str:
    try:
        return f"{round_half_up(float(value))}%"
    except (TypeError, ValueError):
        return "0%"


def render_executive_report(
    tenant_name: str,
    current: dict[str, Any],
    maturity_trend: list[dict[str, Any]],
    secure_trend: list[dict[str, Any]],
    today: date | None = None,
) -> bytes:
    """Render the "Cyber Risk - Executive Report".

    Args:
        tenant_name: Display name printed under the title
        current: ``{"maturityPct", "secureScorePct"}`` for the headline figures
        maturity_trend: ``split_score_data(...)["maturity"]``, newest first
        secure_trend: ``split_score_data(...)["secure"]``, newest first
        today: Report date, defaults to today

    Returns:
        PDF document bytes
    """
    today = today or date.today()
    title = "Cyber Risk - Executive Report"
    styles = _styles()
    story = _header(title, tenant_name, today, styles)

    headline = Table(
        [
            [
                Paragraph("Current Maturity Rating", styles["metric_label"]),
                Paragraph("Current Secure Score", styles["metric_label"]),
            ],
            [
                Paragraph(_format_pct(current.get("maturityPct")), styles["metric_value"]),
                Paragraph(_format_pct(current.get("secureScorePct")), styles["metric_value"]),
            ],
        ],
        colWidths=[9 * cm, 9 * cm],
    )
    headline.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 10),
    ]))
    story += [headline, Spacer(1, 0.8 * cm)]

    for heading, records, value_key in (
        ("Maturity Score Trend", maturity_trend, "totalScorePct"),
        ("Secure Score Trend", secure_trend, "microsoftSecureScorePct"),
    ):
        labels, values = _chart_series(records, value_key)
        story.append(Paragraph(heading, styles["heading"]))
        story.append(Image(_bar_chart(labels, values), width=17 * cm, height=7.8 * cm))
        story.append(Spacer(1, 0.4 * cm))

    logger.info(f"Rendered executive report for {tenant_name}")
    return _build(story, title)


def render_tender_insurer_pack(
    tenant_name: str,
    breakdown: dict[str, Any],
    today: date | None = None,
) -> bytes:
    """Render the "Cyber Risk - Tender / Insurer Pack".

    ``breakdown`` is the output of ``compute_maturity_breakdown``.
    """
    today = today or date.today()
    title = "Cyber Risk - Tender / Insurer Pack"
    styles = _styles()
    story = _header(title, tenant_name, today, styles)

    summary_rows = [["Section", "Implemented", "Total", "Percentage"]]
    for key, label in SECTION_TITLES:
        section = breakdown.get(key) or {}
        summary_rows.append([
            label,
            str(section.get("tickCount", 0)),
            str(section.get("total", 0)),
            _format_pct(section.get("percentage")),
        ])

    story.append(Paragraph("Implemented controls", styles["heading"]))
    story.append(_grid_table(summary_rows, [7 * cm, 3.5 * cm, 3 * cm, 3.5 * cm]))

    for key, label in SECTION_TITLES:
        items = (breakdown.get(key) or {}).get("widgetBreakdown") or []
        rows = [["Widget", "Implemented"]]
        rows += [[item["name"], "Yes" if item["tick"] else "No"] for item in items]
        story.append(Paragraph(escape(f"{label} Breakdown"), styles["heading"]))
        story.append(_grid_table(rows, [12 * cm, 5 * cm]))

    logger.info(f"Rendered tender/insurer pack for {tenant_name}")
    return _build(story, title)


def render_risk_report(report: Any, tenant_name: str) -> bytes:
    """Single-page executive risk report for a stored quarterly Report."""
    styles = _styles()
    title = "Executive Cyber Risk Report"
    period = f"{report.month or f'Q{report.quarter}'} {report.year}"

    story = [
        Paragraph(title, styles["title"]),
        Paragraph(escape(f"{tenant_name} | {period}"), styles["tenant"]),
        Spacer(1, 0.2 * cm),
        HRFlowable(width="100%", thickness=0.5, color=BRAND_COLOR),
        Spacer(1, 0.5 * cm),
    ]

    overall_level = get_risk_level(report.overall_risk_score)
    overall_style = ParagraphStyle(
        "OverallRisk", parent=styles["metric_value"], textColor=RISK_LEVEL_COLORS[overall_level]
    )
    story.append(Paragraph("Overall Risk Level", styles["metric_label"]))
    story.append(Paragraph(f"{report.overall_risk_score}% {overall_level}", overall_style))
    story.append(Spacer(1, 0.5 * cm))

    categories = [
        ("Identity Risk", report.identity_risk_score),
        ("Training Risk", report.training_risk_score),
        ("Device Risk", report.device_risk_score),
        ("Cloud Risk", report.cloud_risk_score),
        ("Threat Risk", report.threat_risk_score),
    ]
    rows = [["Category", "Score", "Level"]]
    row_styles = []
    for index, (name, score) in enumerate(categories, start=1):
        level = get_risk_level(score)
        rows.append([name, f"{score}%", level])
        row_styles.append(("TEXTCOLOR", (1, index), (2, index), RISK_LEVEL_COLORS[level]))

    category_table = _grid_table(rows, [8 * cm, 4 * cm, 5 * cm])
    category_table.setStyle(TableStyle(row_styles))
    story.append(Paragraph("Security Risk Categories", styles["heading"]))
    story.append(category_table)

    threats = (report.security_data or {}).get("threatMetrics") or {}
    story.append(Paragraph("Detected Threats", styles["heading"]))
    for label, key in (
        ("Identity Threats", "identityThreats"),
        ("Device Threats", "deviceThreats"),
        ("Other Threats", "otherThreats"),
    ):
        story.append(Paragraph(f"{label}: {threats.get(key) or 0}", styles["body"]))

    story.append(Paragraph("Analyst Comments", styles["heading"]))
    comments = report.analyst_comments or "No analyst comments provided."
    story.append(Paragraph(escape(comments).replace("\n", "<br/>"), styles["body"]))

    logger.info(f"Rendered risk report {report.id} for {tenant_name}")
    return _build(story, title)
