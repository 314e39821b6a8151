"""PDF rendering of a budget for the client.

Produces a short commercial document: cover, system summary, investment
breakdown, monthly production chart and the long-horizon economy table
for solar budgets, or an itemised services table for service budgets.
Input is plain data (the stored budget dict), output is an in-memory PDF.
"""
from io import BytesIO
from datetime import datetime
from typing import Any

import numpy as np
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
    Image,
    PageBreak,
)
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle

from ..constants import MONTH_NAMES
from ..economics.projection import ROIRow, payback_year

# ══════════════════════════════════════════════════════════════════════
# Constants
# ══════════════════════════════════════════════════════════════════════

CHART_DPI = 150
PAGE_W, PAGE_H = A4
MARGIN = 15 * mm

C_PRIMARY = "#ea580c"
C_DARK = "#9a3412"
C_GREEN = "#059669"
C_GRAY = "#6b7280"
C_LIGHT_BG = "#fff7ed"
C_GRID = "#e5e7eb"

BUDGET_TYPE_LABELS = {"solar": "Energia Solar", "service": "Serviços"}


# ══════════════════════════════════════════════════════════════════════
# Formatting
# ══════════════════════════════════════════════════════════════════════

def format_currency(value: float | None, symbol: str = "R$") -> str:
    """Brazilian money format: ``R$ 1.234,56``."""
    if value is None:
        return "N/A"
    text = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"{symbol} {text}"


def format_number(value: float | None, decimals: int = 2) -> str:
    if value is None:
        return "N/A"
    text = f"{value:,.{decimals}f}"
    return text.replace(",", "X").replace(".", ",").replace("X", ".")


# ══════════════════════════════════════════════════════════════════════
# Matplotlib setup
# ══════════════════════════════════════════════════════════════════════

def _init_mpl():
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    plt.rcParams.update({
        "font.size": 8,
        "axes.titlesize": 10,
        "axes.labelsize": 8,
        "xtick.labelsize": 7,
        "ytick.labelsize": 7,
        "legend.fontsize": 7,
        "figure.dpi": CHART_DPI,
    })
    return plt


def _fig_to_buf(fig) -> BytesIO:
    """Save matplotlib figure to BytesIO PNG buffer."""
    buf = BytesIO()
    fig.savefig(buf, format="png", dpi=CHART_DPI, bbox_inches="tight")
    import matplotlib.pyplot as plt
    plt.close(fig)
    buf.seek(0)
    return buf


def _make_production_chart(monthly_kwh: list[float], average_kwh: float) -> BytesIO:
    """Monthly production bars with the average as a reference line."""
    plt = _init_mpl()
    fig, ax = plt.subplots(figsize=(6, 3))
    x = np.arange(len(MONTH_NAMES))

    ax.bar(x, np.array(monthly_kwh[: len(x)]), 0.6, color=C_PRIMARY, alpha=0.85)
    ax.axhline(average_kwh, color=C_DARK, linestyle="--", linewidth=0.8, label="Média")

    ax.set_xticks(x)
    ax.set_xticklabels(MONTH_NAMES, rotation=30)
    ax.set_ylabel("kWh")
    ax.set_title("Geração mensal estimada", fontweight="bold")
    ax.legend(loc="upper right", fontsize=6)
    ax.grid(True, alpha=0.3, axis="y")
    fig.tight_layout()
    return _fig_to_buf(fig)


def _make_accumulated_chart(rows: list[ROIRow], total_value: float) -> BytesIO:
    """Accumulated economy against the investment."""
    plt = _init_mpl()
    fig, ax = plt.subplots(figsize=(6, 3))
    years = np.array([r.year for r in rows])
    accumulated = np.array([r.accumulated_economy for r in rows])

    ax.plot(years, accumulated, color=C_GREEN, linewidth=1.2, label="Economia acumulada")
    ax.fill_between(years, accumulated, alpha=0.15, color=C_GREEN)
    ax.axhline(total_value, color=C_DARK, linestyle="--", linewidth=0.8, label="Investimento")

    ax.set_xlabel("Ano")
    ax.set_ylabel("R$")
    ax.set_title("Retorno do investimento", fontweight="bold")
    ax.legend(fontsize=6, loc="upper left")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return _fig_to_buf(fig)


# ══════════════════════════════════════════════════════════════════════
# Canvas Callbacks (header / footer / page numbers)
# ══════════════════════════════════════════════════════════════════════

def _page_callbacks(company_name: str, budget_number: str):
    def on_first_page(canvas, doc):
        canvas.saveState()
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(colors.HexColor(C_GRAY))
        canvas.drawCentredString(PAGE_W / 2, 10 * mm, company_name)
        canvas.restoreState()

    def on_later_pages(canvas, doc):
        canvas.saveState()
        canvas.setStrokeColor(colors.HexColor(C_PRIMARY))
        canvas.setLineWidth(0.5)
        canvas.line(MARGIN, PAGE_H - 14 * mm, PAGE_W - MARGIN, PAGE_H - 14 * mm)
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(colors.HexColor(C_GRAY))
        canvas.drawString(MARGIN, PAGE_H - 12 * mm, f"{company_name} - Orçamento {budget_number}")
        canvas.drawRightString(PAGE_W - MARGIN, 8 * mm, f"Página {doc.page}")
        canvas.restoreState()

    return on_first_page, on_later_pages


# ══════════════════════════════════════════════════════════════════════
# Styles & Table Helpers
# ══════════════════════════════════════════════════════════════════════

def _get_styles():
    """Return configured paragraph styles."""
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        "ReportTitle", parent=styles["Title"],
        fontSize=24, spaceAfter=6, textColor=colors.HexColor(C_PRIMARY),
    ))
    styles.add(ParagraphStyle(
        "Subtitle", parent=styles["Heading2"],
        fontSize=14, textColor=colors.HexColor(C_DARK), spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        "SectionHeader", parent=styles["Heading2"],
        fontSize=13, spaceBefore=14, spaceAfter=6,
        textColor=colors.HexColor(C_DARK),
    ))
    styles.add(ParagraphStyle(
        "BodyText2", parent=styles["Normal"],
        fontSize=9, leading=13, spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        "SmallGray", parent=styles["Normal"],
        fontSize=7, textColor=colors.HexColor(C_GRAY),
    ))
    styles.add(ParagraphStyle(
        "CoverInfo", parent=styles["Normal"],
        fontSize=11, leading=16, spaceAfter=2,
    ))
    return styles


def _styled_table(
    data: list[list],
    col_widths: list,
    header_color: str = C_DARK,
    row_bg_alt: str = C_LIGHT_BG,
) -> Table:
    """Create a consistently styled table."""
    t = Table(data, colWidths=col_widths)
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(header_color)),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.4, colors.HexColor(C_GRID)),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1),
         [colors.white, colors.HexColor(row_bg_alt)]),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ("LEFTPADDING", (0, 0), (-1, -1), 4),
        ("RIGHTPADDING", (0, 0), (-1, -1), 4),
    ]))
    return t


# ══════════════════════════════════════════════════════════════════════
# Sections
# ══════════════════════════════════════════════════════════════════════

def _build_cover(styles, budget: dict, client: dict, company: dict) -> list:
    elems: list = []
    elems.append(Spacer(1, 45 * mm))
    elems.append(Paragraph(company.get("name", ""), styles["ReportTitle"]))
    label = BUDGET_TYPE_LABELS.get(budget.get("type", ""), "")
    elems.append(Paragraph(f"Proposta Comercial - {label}", styles["Subtitle"]))
    elems.append(Spacer(1, 15 * mm))

    info = [
        f"<b>Orçamento:</b> {budget.get('budget_number', '')}",
        f"<b>Cliente:</b> {client.get('name', '')}",
    ]
    address = client.get("address")
    if address:
        info.append(f"<b>Endereço:</b> {address}")
    valid_until = budget.get("valid_until")
    if isinstance(valid_until, datetime):
        info.append(f"<b>Válido até:</b> {valid_until.strftime('%d/%m/%Y')}")
    generated = budget.get("generated_at") or datetime.now()
    info.append(f"<b>Emitido em:</b> {generated.strftime('%d/%m/%Y %H:%M')}")

    for line in info:
        elems.append(Paragraph(line, styles["CoverInfo"]))

    contact = " | ".join(v for v in (company.get("phone"), company.get("email")) if v)
    if contact:
        elems.append(Spacer(1, 10 * mm))
        elems.append(Paragraph(contact, styles["SmallGray"]))
    elems.append(PageBreak())
    return elems


def _build_system_summary(styles, solar_data: dict) -> list:
    elems: list = []
    elems.append(Paragraph("Sistema Proposto", styles["SectionHeader"]))

    system = solar_data.get("system", {})
    inverter = system.get("inverter", {})
    production = solar_data.get("production", {})

    data = [
        ["Item", "Valor"],
        ["Potência do sistema", f"{format_number(system.get('system_power_kwp'))} kWp"],
        ["Quantidade de módulos", str(system.get("panel_quantity", ""))],
        ["Potência do módulo", f"{format_number(system.get('panel_power_w'), 0)} W"],
        ["Inversor", f"{format_number(inverter.get('nominal_kw'), 1)} kW"],
        ["Geração média mensal", f"{format_number(production.get('monthly_average_kwh'))} kWh"],
        ["Geração anual", f"{format_number(production.get('yearly_total_kwh'))} kWh"],
    ]
    elems.append(_styled_table(data, [90 * mm, 80 * mm]))
    elems.append(Spacer(1, 6 * mm))

    monthly = production.get("monthly_kwh") or []
    if len(monthly) == len(MONTH_NAMES):
        buf = _make_production_chart(monthly, production.get("monthly_average_kwh", 0.0))
        elems.append(Image(buf, width=150 * mm, height=75 * mm))
    return elems


def _build_investment(styles, solar_data: dict, symbol: str) -> list:
    elems: list = []
    elems.append(Paragraph("Investimento", styles["SectionHeader"]))

    calc = solar_data.get("calculations", {})
    data = [
        ["Componente", "Valor"],
        ["Kit fotovoltaico", format_currency(calc.get("kit_value"), symbol)],
        ["Materiais", format_currency(calc.get("material_value"), symbol)],
        ["Mão de obra", format_currency(calc.get("labor_value"), symbol)],
        ["Impostos", format_currency(calc.get("tax_value"), symbol)],
        ["Total", format_currency(calc.get("total_value"), symbol)],
    ]
    t = _styled_table(data, [90 * mm, 80 * mm])
    t.setStyle(TableStyle([
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ]))
    elems.append(t)
    return elems


def _build_payment(styles, financial: dict, symbol: str) -> list:
    conditions = financial.get("payment_conditions") or {}
    total = financial.get("total")
    if not conditions or total is None:
        return []

    elems: list = []
    elems.append(Paragraph("Condições de Pagamento", styles["SectionHeader"]))
    discount_pct = conditions.get("cash_discount_pct", 0)
    max_installments = max(1, conditions.get("max_installments") or 1)
    lines = [
        f"À vista com {format_number(discount_pct, 0)}% de desconto: "
        f"<b>{format_currency(total * (1 - discount_pct / 100), symbol)}</b>",
        f"Parcelado em até {max_installments}x de "
        f"<b>{format_currency(total / max_installments, symbol)}</b>",
    ]
    if conditions.get("financing_available"):
        lines.append("Financiamento bancário disponível.")
    for line in lines:
        elems.append(Paragraph(line, styles["BodyText2"]))
    return elems


def _build_economy(styles, rows: list[ROIRow], total_value: float, symbol: str) -> list:
    if not rows:
        return []

    elems: list = [PageBreak()]
    elems.append(Paragraph("Projeção de Economia", styles["SectionHeader"]))

    payback = payback_year(rows)
    if payback is not None:
        elems.append(Paragraph(
            f"Retorno estimado do investimento no <b>ano {payback}</b>.", styles["BodyText2"],
        ))

    data = [["Ano", "Tarifa", "Economia anual", "Economia acumulada", "ROI"]]
    for r in rows:
        data.append([
            str(r.year),
            format_currency(r.tariff, symbol),
            format_currency(r.yearly_economy, symbol),
            format_currency(r.accumulated_economy, symbol),
            f"{format_number(r.roi_pct, 1)}%",
        ])
    t = _styled_table(data, [18 * mm, 30 * mm, 42 * mm, 48 * mm, 32 * mm])
    t.setStyle(TableStyle([("ALIGN", (1, 0), (-1, -1), "RIGHT")]))
    elems.append(t)
    elems.append(Spacer(1, 6 * mm))

    buf = _make_accumulated_chart(rows, total_value)
    elems.append(Image(buf, width=150 * mm, height=75 * mm))
    return elems


def _build_services(styles, items: list[dict], financial: dict, symbol: str) -> list:
    elems: list = []
    elems.append(Paragraph("Serviços", styles["SectionHeader"]))

    data = [["Descrição", "Qtd", "Valor unitário", "Total"]]
    for item in items:
        quantity = item.get("quantity", 0)
        unit_price = item.get("unit_price", 0)
        data.append([
            Paragraph(str(item.get("description", "")), styles["BodyText2"]),
            format_number(quantity, 2),
            format_currency(unit_price, symbol),
            format_currency(quantity * unit_price, symbol),
        ])
    data.append(["Total", "", "", format_currency(financial.get("total"), symbol)])

    t = _styled_table(data, [80 * mm, 20 * mm, 35 * mm, 35 * mm])
    t.setStyle(TableStyle([
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ]))
    elems.append(t)
    return elems


def _build_notes(styles, materials: list[str], observations: str | None) -> list:
    elems: list = []
    if materials:
        elems.append(Paragraph("Materiais Inclusos", styles["SectionHeader"]))
        for m in materials:
            elems.append(Paragraph(m, styles["BodyText2"], bulletText="•"))
    if observations:
        elems.append(Paragraph("Observações", styles["SectionHeader"]))
        elems.append(Paragraph(observations, styles["BodyText2"]))
    return elems


# ══════════════════════════════════════════════════════════════════════
# Main Entry Point
# ══════════════════════════════════════════════════════════════════════

def generate_budget_pdf(
    budget: dict[str, Any],
    client: dict[str, Any],
    company: dict[str, Any] | None = None,
    projection: list[ROIRow] | None = None,
    currency_symbol: str = "R$",
) -> BytesIO:
    """Render a budget and return the PDF as a BytesIO buffer.

    Parameters
    ----------
    budget : dict
        Stored budget: ``budget_number``, ``type`` ("solar" or "service"),
        ``solar_data`` or ``items``, ``financial``, ``materials``,
        ``observations``, ``valid_until``.
    projection : list of ROIRow or None
        Economy table for solar budgets; skipped when None.
    """
    company = company or {}
    financial = budget.get("financial") or {}

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=18 * mm,
        bottomMargin=15 * mm,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        title=f"Orçamento {budget.get('budget_number', '')}",
    )

    styles = _get_styles()
    elements: list = []
    elements.extend(_build_cover(styles, budget, client, company))

    if budget.get("type") == "solar":
        solar_data = budget.get("solar_data") or {}
        elements.extend(_build_system_summary(styles, solar_data))
        elements.extend(_build_investment(styles, solar_data, currency_symbol))
        elements.extend(_build_payment(styles, financial, currency_symbol))
        total_value = solar_data.get("calculations", {}).get("total_value", 0.0)
        elements.extend(_build_economy(styles, projection or [], total_value, currency_symbol))
    else:
        elements.extend(_build_services(styles, budget.get("items") or [], financial, currency_symbol))
        elements.extend(_build_payment(styles, financial, currency_symbol))

    elements.extend(_build_notes(styles, budget.get("materials") or [], budget.get("observations")))

    on_first, on_later = _page_callbacks(company.get("name", ""), budget.get("budget_number", ""))
    doc.build(elements, onFirstPage=on_first, onLaterPages=on_later)
    buffer.seek(0)
    return buffer
