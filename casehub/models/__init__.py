"""Central model registry. Import all models so Alembic autodiscover works."""

from casehub.database import Base  # noqa: F401

from casehub.models.user import User  # noqa: F401
from casehub.models.staff import Staff  # noqa: F401
from casehub.models.mentee import Mentee, TherapyNote  # noqa: F401
from casehub.models.document import Document  # noqa: F401
from casehub.models.invoice import Invoice, InvoiceLineItem  # noqa: F401
from casehub.models.receipt import Receipt, ReceiptLineItem  # noqa: F401
from casehub.models.inventory import InventoryItem  # noqa: F401
from casehub.models.audit_log import AuditLog  # noqa: F401
