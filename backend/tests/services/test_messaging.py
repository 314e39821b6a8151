"""Tests for the e-mail service and WhatsApp message builder."""

import smtplib
from datetime import datetime
from urllib.parse import unquote

import pytest

from solarcrm.config import Settings
from solarcrm.core.errors import ValidationError
from solarcrm.services.email_service import EmailService
from solarcrm.services.whatsapp import format_whatsapp_message, whatsapp_link


class FakeSMTP:
    instances: list = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, msg):
        self.messages.append(msg)


class BrokenSMTP(FakeSMTP):
    def send_message(self, msg):
        raise smtplib.SMTPRecipientsRefused({msg["To"]: (550, b"no such user")})


@pytest.fixture
def smtp_settings() -> Settings:
    return Settings(
        smtp_host="smtp.test", smtp_port=587, smtp_username="user", smtp_password="secret",
        email_from="vendas@solar.test", company_name="Solar Energy",
    )


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


# ======================================================================
# E-mail
# ======================================================================


class TestEmailDelivery:
    def test_unconfigured_smtp_sends_nothing(self, fake_smtp):
        service = EmailService(Settings(smtp_host=""))
        assert service.send_proposal("maria@example.com", "Maria", "ORC-1", "http://x") is False
        assert fake_smtp.instances == []

    def test_missing_recipient(self, smtp_settings, fake_smtp):
        assert EmailService(smtp_settings).send_proposal(None, "Maria", "ORC-1", "http://x") is False
        assert fake_smtp.instances == []

    def test_starttls_and_login(self, smtp_settings, fake_smtp):
        service = EmailService(smtp_settings)
        assert service.send_proposal("maria@example.com", "Maria", "ORC-1", "http://x") is True

        server = fake_smtp.instances[0]
        assert (server.host, server.port) == ("smtp.test", 587)
        assert server.started_tls is True
        assert server.logged_in == ("user", "secret")
        msg = server.messages[0]
        assert msg["To"] == "maria@example.com"
        assert msg["From"] == "vendas@solar.test"

    def test_implicit_tls_port(self, smtp_settings, fake_smtp):
        service = EmailService(smtp_settings.model_copy(update={"smtp_port": 465}))
        assert service.send_proposal("maria@example.com", "Maria", "ORC-1", "http://x") is True
        assert fake_smtp.instances[0].started_tls is False

    def test_smtp_failure_returns_false(self, smtp_settings, monkeypatch, caplog):
        monkeypatch.setattr(smtplib, "SMTP", BrokenSMTP)
        service = EmailService(smtp_settings)
        assert service.send_proposal("maria@example.com", "Maria", "ORC-1", "http://x") is False
        assert "SMTP error" in caplog.text


class TestEmailContent:
    def test_proposal_email(self, email_service):
        email_service.send_proposal(
            "maria@example.com", "Maria", "ORC-202503-0001", "http://front/proposal/abc",
            valid_until=datetime(2025, 3, 25), custom_message="Condição especial <hoje>",
        )
        sent = email_service.sent[0]
        assert sent["subject"] == "Maria, sua proposta de energia solar está pronta!"
        assert "http://front/proposal/abc" in sent["html"]
        assert "25/03/2025" in sent["html"]
        assert "Condição especial &lt;hoje&gt;" in sent["html"]

    def test_accepted_notice(self, email_service):
        email_service.send_proposal_accepted(
            "vendas@solar.test", "Maria", "PROP-202503-0001", 24256.2, system_power_kwp=9.76,
        )
        sent = email_service.sent[0]
        assert sent["subject"] == "Maria ACEITOU a proposta!"
        assert "R$ 24.256,20" in sent["html"]
        assert "9.76 kWp" in sent["html"]

    def test_rejected_notice_with_reason(self, email_service):
        email_service.send_proposal_rejected("vendas@solar.test", "Maria", "PROP-1", "Preço alto")
        assert email_service.sent[0]["subject"] == "Maria recusou a proposta"
        assert "Preço alto" in email_service.sent[0]["html"]

    def test_expiring_reminder(self, email_service):
        email_service.send_expiring_reminder(
            "maria@example.com", "Maria", "http://x", datetime(2025, 3, 25),
        )
        assert email_service.sent[0]["subject"] == "Sua proposta de energia solar está expirando!"


# ======================================================================
# WhatsApp
# ======================================================================


class TestWhatsapp:
    def test_link_strips_formatting(self):
        link = whatsapp_link("(92) 98888-7777", "Olá mundo", country_code="55")
        assert link == "https://wa.me/5592988887777?text=Ol%C3%A1%20mundo"

    def test_default_country_code(self):
        assert whatsapp_link("92988887777", "x").startswith("https://wa.me/5592988887777")

    def test_no_phone(self):
        with pytest.raises(ValidationError) as exc:
            whatsapp_link("", "x")
        assert exc.value.field == "phone"

    def test_solar_message(self, solar_budget, client):
        message = format_whatsapp_message(solar_budget, client, "http://front/proposal/abc")
        assert message.startswith("Olá Maria Silva, segue o orçamento para seu Sistema Solar:")
        assert "🌞 *ORÇAMENTO ORC-202503-0001*" in message
        assert "📊 *Sistema Solar de 9,76 kWp*" in message
        assert "• 16 painéis solares" in message
        assert "• Total: R$ 24.256,20" in message
        assert "• À vista (10% desc.): R$ 21.830,58" in message
        assert "até 18x sem juros" in message
        assert "http://front/proposal/abc" in message
        assert "Válida até: 25/03/2025" in message

    def test_service_message(self, service_budget, client):
        message = format_whatsapp_message(service_budget, client, "http://x")
        assert "🔧 *Serviços*" in message
        assert "• Limpeza de painéis (16x): R$ 400,00" in message
        assert "💰 *Total: R$ 550,00*" in message
        assert "até 12x sem juros" in message

    def test_link_round_trips_message(self, solar_budget, client):
        message = format_whatsapp_message(solar_budget, client, "http://x")
        link = whatsapp_link(client.contact_phone, message)
        assert unquote(link.split("?text=", 1)[1]) == message
