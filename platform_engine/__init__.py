"""Materials of competitions: attachments with scheduled release."""

__version__ = "0.3.0"
