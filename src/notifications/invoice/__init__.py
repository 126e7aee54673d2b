"""Invoice registry — the process-wide invoice PDF cache."""

_cache = None


def get_invoice_cache():
    """Return the invoice PDF cache (singleton, directory from ``INVOICE_CACHE_DIR``)."""
    global _cache
    if _cache is None:
        from notifications.invoice.pdf_cache import InvoicePdfCache

        _cache = InvoicePdfCache()
    return _cache


def set_invoice_cache(cache):
    global _cache
    _cache = cache


def reset_invoice_cache():
    global _cache
    _cache = None
