"""Client-facing budget documents."""

from .pdf_report import format_currency, format_number, generate_budget_pdf

__all__ = ["format_currency", "format_number", "generate_budget_pdf"]
