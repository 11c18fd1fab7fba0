"""QR table ordering: payment confirmation and order materialization."""

__version__ = "0.1.0"
