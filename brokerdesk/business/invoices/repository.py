from __future__ import annotations

from brokerdesk.business.invoices.models import Invoice
from brokerdesk.platform.security.repository import BaseRepository


class InvoiceRepository(BaseRepository[Invoice]):
    resource = "invoice"
    model = Invoice
    affiliate_allowed = False
