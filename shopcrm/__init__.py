"""shopcrm: CRM and shop back end (catalog, cart, orders, audit log, settings)."""

__version__ = "1.0.0"
