"""Template registry — maps notification job types to template classes."""

from notifications.dispatch.job import ORDER_CONFIRMATION
from notifications.templates.order_confirmation import OrderConfirmationTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    ORDER_CONFIRMATION: OrderConfirmationTemplate,
}


def get_template(job_type: str):
    """Look up a template class by job type string."""
    template_cls = TEMPLATE_REGISTRY.get(job_type)
    if template_cls is None:
        raise ValueError(f"No template registered for job type: {job_type}")
    return template_cls
