"""Email transport registry — primary and backup delivery transports.

Uses the fake transport by default. ``EMAIL_ADAPTER=smtp`` switches to SMTP
configured from ``SMTP_HOST``/``SMTP_PORT``/``SMTP_USER``/``SMTP_PASS``; the
backup transport exists only when ``SMTP_HOST_BACKUP`` is set.
"""

import os

_UNSET = object()

_primary = None
_backup = _UNSET


def get_primary_transport():
    """Return the configured primary transport (singleton)."""
    global _primary
    if _primary is None:
        adapter = os.environ.get("EMAIL_ADAPTER", "fake")
        if adapter == "fake":
            from notifications.channel.fake_email import FakeEmailAdapter

            _primary = FakeEmailAdapter(name="primary")
        elif adapter == "smtp":
            from notifications.channel.smtp_email import SmtpEmailAdapter

            _primary = SmtpEmailAdapter.from_env(name="primary")
            if _primary is None:
                raise ValueError("EMAIL_ADAPTER=smtp requires SMTP_HOST")
        else:
            raise ValueError(f"Unknown email adapter: {adapter}")
    return _primary


def get_backup_transport():
    """Return the backup transport, or ``None`` when none is configured."""
    global _backup
    if _backup is _UNSET:
        if os.environ.get("EMAIL_ADAPTER", "fake") == "smtp":
            from notifications.channel.smtp_email import SmtpEmailAdapter

            _backup = SmtpEmailAdapter.from_env(suffix="_BACKUP", name="backup")
        else:
            _backup = None
    return _backup


def set_primary_transport(transport):
    global _primary
    _primary = transport


def set_backup_transport(transport):
    global _backup
    _backup = transport


def reset_transports():
    """Reset transport singletons (useful for testing)."""
    global _primary, _backup
    _primary = None
    _backup = _UNSET
