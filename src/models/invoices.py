"""
Invoice profile: business, client, payment and text metadata for a document.
"""

from datetime import date

from pydantic import BaseModel, Field


def default_invoice_date() -> str:
    return date.today().strftime("%m/%d/%Y")


class InvoiceProfile(BaseModel):
    """Everything printed on an invoice that does not come from the timesheet."""

    # Business
    company_name: str = "Creative Studio Name"
    tax_code: str = "TAX-00123456"
    address: str = "123 Studio Blvd, Suite 400\nCreative District, City 10101\nCountry"
    email: str = "billing@creativestudio.com"
    invoice_number: str = ""  # allocated from the database when empty
    invoice_date: str = Field(default_factory=default_invoice_date)

    # Client
    client_name: str = "Acme Corporation LLC"
    client_email: str = "accounts@acmecorp.com"
    client_address: str = "456 Business Way\nMetropolis, State 54321\nUSA"
    client_phone: str = "+1 (555) 123-4567"

    # Billing
    hourly_rate: float = Field(default=85.0, ge=0)
    currency: str = "$"
    tax_rate: float = Field(default=0.0, ge=0)

    # Payment details
    bank_name: str = "Standard International Bank"
    bank_address: str = "Financial Plaza, Wall St, New York, USA"
    swift_code: str = "STNDUS33"
    account_first_name: str = "John"
    account_last_name: str = "Doe"
    account_number: str = "998877665544"
    account_holder_address: str = "123 Studio Blvd, Suite 400, Creative District, City 10101, Country"

    # Text contents
    description: str = "Services rendered for project development and design consultation"
    notes: str = "Please specify the invoice number in your wire transfer description for faster processing."

    @property
    def account_name(self) -> str:
        return f"{self.account_first_name} {self.account_last_name}".strip()
