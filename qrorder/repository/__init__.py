from . import catalog_repository, notification_repository, order_repository, payment_repository

__all__ = [
    "catalog_repository",
    "notification_repository",
    "order_repository",
    "payment_repository",
]
