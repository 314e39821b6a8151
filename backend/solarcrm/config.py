from pydantic_settings import BaseSettings

from quote_engine import constants as engine_constants
from quote_engine.constants import CalculatorConstants


class Settings(BaseSettings):
    model_config = {"env_prefix": "", "case_sensitive": False}

    # App
    environment: str = "development"
    debug: bool = True
    app_name: str = "SolarCRM"
    log_json: bool = False

    # URLs
    frontend_url: str = "http://localhost:3000"
    api_url: str = "http://localhost:5000"

    # Company
    company_name: str = "Solar Energy"
    company_phone: str = ""
    company_email: str = ""
    company_address: str = ""
    company_city: str = "Manaus/AM"
    currency_symbol: str = "R$"
    whatsapp_country_code: str = "55"

    # SMTP
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "noreply@solarcrm.local"

    # Budgets
    default_validity_days: int = 15
    output_dir: str = "uploads/documents"

    # Calculator
    tax_rate: float = engine_constants.TAX_RATE
    inverter_overload_ratio: float = engine_constants.INVERTER_OVERLOAD_RATIO
    base_production_kwh_per_kwp: float = engine_constants.BASE_PRODUCTION_KWH_PER_KWP
    seasonal_factors: list[float] = list(engine_constants.SEASONAL_FACTORS)
    inverter_tiers_kw: list[float] = list(engine_constants.INVERTER_TIERS_KW)
    tariff_inflation_rate: float = engine_constants.TARIFF_INFLATION_RATE
    projection_years: int = engine_constants.PROJECTION_YEARS

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host)

    @property
    def company(self) -> dict[str, str]:
        return {
            "name": self.company_name,
            "phone": self.company_phone,
            "email": self.company_email,
            "address": self.company_address,
            "city": self.company_city,
        }

    def calculator_constants(self) -> CalculatorConstants:
        return CalculatorConstants(
            seasonal_factors=tuple(self.seasonal_factors),
            inverter_tiers_kw=tuple(self.inverter_tiers_kw),
            base_production_kwh_per_kwp=self.base_production_kwh_per_kwp,
            tax_rate=self.tax_rate,
            inverter_overload_ratio=self.inverter_overload_ratio,
            tariff_inflation_rate=self.tariff_inflation_rate,
            projection_years=self.projection_years,
        )


settings = Settings()
