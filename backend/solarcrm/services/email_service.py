"""Transactional e-mail over SMTP.

Each ``send_*`` method builds an HTML message and returns True when the
SMTP server accepted it.  Delivery problems never raise: with no SMTP host
configured nothing is sent, and SMTP failures are logged.
"""

from __future__ import annotations

import html
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from quote_engine.reporting import format_currency

from ..config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #ea580c; color: white; padding: 24px; text-align: center; border-radius: 8px 8px 0 0; }
    .content { padding: 24px; border: 1px solid #e0e0e0; border-radius: 0 0 8px 8px; }
    .info { background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 15px 0; }
    .button { display: inline-block; padding: 12px 28px; background-color: #ea580c; color: white; text-decoration: none; border-radius: 5px; font-weight: bold; }
    .footer { text-align: center; padding: 16px; color: #666; font-size: 12px; }
"""


class EmailService:
    """Builds and delivers the CRM's e-mails."""

    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings

    def _wrap(self, title: str, body: str) -> str:
        company = html.escape(self.config.company_name)
        contact = " | ".join(
            html.escape(v) for v in (self.config.company_phone, self.config.company_email) if v
        )
        return f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"><style>{_STYLE}</style></head>
<body>
  <div class="container">
    <div class="header"><h2 style="margin: 0;">{title}</h2></div>
    <div class="content">{body}</div>
    <div class="footer"><strong>{company}</strong><br>{contact}</div>
  </div>
</body>
</html>"""

    def _send_email(self, to_email: str | None, subject: str, html_content: str) -> bool:
        if not to_email:
            logger.warning("E-mail '%s' skipped: no recipient", subject, extra={"channel": "email"})
            return False
        if not self.config.smtp_configured:
            logger.info("SMTP not configured, e-mail to %s not sent", to_email, extra={"channel": "email"})
            return False

        msg = MIMEMultipart("alternative")
        msg["From"] = self.config.email_from
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(html_content, "html", "utf-8"))

        try:
            if self.config.smtp_port == 465:
                server = smtplib.SMTP_SSL(self.config.smtp_host, self.config.smtp_port, timeout=30)
            else:
                server = smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30)
            with server:
                if self.config.smtp_use_tls and self.config.smtp_port != 465:
                    server.starttls()
                if self.config.smtp_username:
                    server.login(self.config.smtp_username, self.config.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP error sending '%s' to %s: %s", subject, to_email, e, extra={"channel": "email"})
            return False

        logger.info("E-mail sent to %s: %s", to_email, subject, extra={"channel": "email"})
        return True

    # ==================== CLIENT ====================

    def send_proposal(
        self,
        to: str | None,
        client_name: str,
        budget_number: str,
        proposal_link: str,
        valid_until: datetime | None = None,
        custom_message: str | None = None,
    ) -> bool:
        name = html.escape(client_name)
        validity = f"<p><strong>Válida até:</strong> {valid_until:%d/%m/%Y}</p>" if valid_until else ""
        message = ""
        if custom_message:
            message = (
                '<div class="info"><p style="margin: 0;"><strong>Mensagem do consultor:</strong></p>'
                f"<p>{html.escape(custom_message)}</p></div>"
            )
        body = f"""
      <h3>Olá {name}!</h3>
      <p>Preparamos uma proposta exclusiva de energia solar para você.</p>
      <div class="info">
        <p><strong>Proposta:</strong> {html.escape(budget_number)}</p>
        {validity}
      </div>
      <p style="text-align: center;"><a href="{proposal_link}" class="button">Ver minha proposta</a></p>
      {message}
      <p>Na página da proposta você pode ver os detalhes do sistema, a economia projetada,
      as formas de pagamento e aceitar a proposta online.</p>
      <p><strong>Pagamento à vista com 10% de desconto!</strong></p>"""
        return self._send_email(
            to,
            f"{client_name}, sua proposta de energia solar está pronta!",
            self._wrap("Sua proposta de energia solar chegou!", body),
        )

    def send_acceptance_confirmation(
        self, to: str | None, client_name: str, proposal_number: str, value: float,
    ) -> bool:
        body = f"""
      <h3>Olá {html.escape(client_name)},</h3>
      <p>Recebemos o aceite da proposta <strong>{html.escape(proposal_number)}</strong>
      no valor de <strong>{format_currency(value, self.config.currency_symbol)}</strong>.</p>
      <p>Nossa equipe entrará em contato em até 24 horas para agendar a visita técnica.</p>"""
        return self._send_email(
            to, f"Proposta {proposal_number} aceita", self._wrap("Obrigado pela confiança!", body),
        )

    def send_expiring_reminder(
        self, to: str | None, client_name: str, proposal_link: str, expires_at: datetime,
    ) -> bool:
        body = f"""
      <h3>Olá {html.escape(client_name)},</h3>
      <p>Sua proposta de energia solar está prestes a expirar.</p>
      <p><strong>Válida até:</strong> {expires_at:%d/%m/%Y}</p>
      <p style="text-align: center;"><a href="{proposal_link}" class="button">Ver proposta</a></p>"""
        return self._send_email(
            to,
            "Sua proposta de energia solar está expirando!",
            self._wrap("Sua proposta está expirando", body),
        )

    # ==================== SALESPERSON ====================

    def _notice_details(self, proposal_number: str, client_name: str, client_phone: str | None) -> str:
        return f"""
      <div class="info">
        <p><strong>Proposta:</strong> {html.escape(proposal_number)}</p>
        <p><strong>Cliente:</strong> {html.escape(client_name)}</p>
        <p><strong>Telefone:</strong> {html.escape(client_phone or "-")}</p>
      </div>"""

    def send_proposal_sent(
        self, to: str | None, client_name: str, proposal_number: str, channels: list[str],
    ) -> bool:
        body = f"""
      <p>A proposta <strong>{html.escape(proposal_number)}</strong> foi enviada para
      <strong>{html.escape(client_name)}</strong> via {html.escape(", ".join(channels))}.</p>"""
        return self._send_email(
            to, f"Proposta {proposal_number} enviada", self._wrap("Proposta enviada", body),
        )

    def send_proposal_viewed(
        self, to: str | None, client_name: str, proposal_number: str, client_phone: str | None = None,
    ) -> bool:
        body = (
            f"<p>O cliente <strong>{html.escape(client_name)}</strong> acabou de visualizar a proposta:</p>"
            + self._notice_details(proposal_number, client_name, client_phone)
            + "<p>Este é um bom momento para entrar em contato!</p>"
        )
        return self._send_email(
            to, f"{client_name} visualizou a proposta!", self._wrap("Proposta visualizada", body),
        )

    def send_proposal_accepted(
        self,
        to: str | None,
        client_name: str,
        proposal_number: str,
        value: float,
        system_power_kwp: float | None = None,
        client_phone: str | None = None,
    ) -> bool:
        system = f"<p><strong>Sistema:</strong> {system_power_kwp:.2f} kWp</p>" if system_power_kwp else ""
        body = (
            f"<p>O cliente <strong>{html.escape(client_name)}</strong> aceitou a proposta!</p>"
            + self._notice_details(proposal_number, client_name, client_phone)
            + f"<p><strong>Valor:</strong> {format_currency(value, self.config.currency_symbol)}</p>"
            + system
            + """
      <ol>
        <li>Entrar em contato com o cliente em até 24h</li>
        <li>Agendar visita técnica</li>
        <li>Confirmar forma de pagamento</li>
        <li>Definir cronograma de instalação</li>
      </ol>"""
        )
        return self._send_email(
            to, f"{client_name} ACEITOU a proposta!", self._wrap("Proposta aceita!", body),
        )

    def send_proposal_rejected(
        self, to: str | None, client_name: str, proposal_number: str, reason: str | None = None,
    ) -> bool:
        reason_html = f"<p><strong>Motivo:</strong> {html.escape(reason)}</p>" if reason else ""
        body = (
            f"<p>O cliente <strong>{html.escape(client_name)}</strong> recusou a proposta.</p>"
            + self._notice_details(proposal_number, client_name, None)
            + reason_html
        )
        return self._send_email(
            to, f"{client_name} recusou a proposta", self._wrap("Proposta recusada", body),
        )
