"""WhatsApp click-to-chat messages for budgets."""

from __future__ import annotations

import re
from urllib.parse import quote

from quote_engine.reporting import format_currency, format_number

from ..config import settings
from ..core.errors import ValidationError
from ..schemas.budget import BudgetRecord, BudgetType, ClientInfo


def _solar_body(budget: BudgetRecord, symbol: str) -> list[str]:
    solar = budget.solar_data or {}
    system = solar.get("system", {})
    production = solar.get("production", {})
    total = budget.financial.total
    max_installments = max(1, budget.financial.payment_conditions.get("max_installments") or 1)
    yearly_economy = production.get("yearly_economy", 0.0)

    return [
        f"📊 *Sistema Solar de {format_number(system.get('system_power_kwp', 0.0))} kWp*",
        f"• {system.get('panel_quantity', 0)} painéis solares",
        f"• Inversor de {format_number(system.get('inverter', {}).get('nominal_kw', 0.0), 1)} kW",
        f"• Produção: ~{round(production.get('monthly_average_kwh', 0.0))} kWh/mês",
        "",
        "💰 *Investimento*",
        f"• Total: {format_currency(total, symbol)}",
        f"• À vista (10% desc.): {format_currency(total * 0.9, symbol)}",
        f"• Parcelado: até {max_installments}x sem juros",
        "",
        "✅ *Economia Estimada*",
        f"• Mensal: {format_currency(production.get('monthly_economy', 0.0), symbol)}",
        f"• Anual: {format_currency(yearly_economy, symbol)}",
        f"• 25 anos: {format_currency(yearly_economy * 25, symbol)}",
    ]


def _service_body(budget: BudgetRecord, symbol: str) -> list[str]:
    lines = ["🔧 *Serviços*"]
    for item in budget.items:
        lines.append(
            f"• {item['description']} ({format_number(item['quantity'], 0)}x): "
            f"{format_currency(item['total_price'], symbol)}"
        )
    max_installments = max(1, budget.financial.payment_conditions.get("max_installments") or 1)
    lines += [
        "",
        f"💰 *Total: {format_currency(budget.financial.total, symbol)}*",
        f"• Parcelado: até {max_installments}x sem juros",
    ]
    return lines


def format_whatsapp_message(budget: BudgetRecord, client: ClientInfo, proposal_link: str) -> str:
    """Plain-text message; encode it with ``whatsapp_link``."""
    symbol = settings.currency_symbol
    if budget.type == BudgetType.SOLAR:
        intro = f"Olá {client.name}, segue o orçamento para seu Sistema Solar:"
        body = _solar_body(budget, symbol)
    else:
        intro = f"Olá {client.name}, segue o orçamento dos serviços solicitados:"
        body = _service_body(budget, symbol)

    lines = [intro, "", f"🌞 *ORÇAMENTO {budget.budget_number}*", "", *body, ""]
    lines += [
        "📱 *Veja sua proposta completa:*",
        proposal_link,
        "",
        f"Válida até: {budget.valid_until:%d/%m/%Y}",
    ]
    if settings.company_phone:
        lines += ["", "Dúvidas? Fale conosco:", f"📞 {settings.company_phone}"]
    return "\n".join(lines)


def whatsapp_link(phone: str, message: str, country_code: str | None = None) -> str:
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        raise ValidationError("Client has no phone number for WhatsApp", field="phone")
    cc = settings.whatsapp_country_code if country_code is None else country_code
    return f"https://wa.me/{cc}{digits}?text={quote(message, safe='')}"
