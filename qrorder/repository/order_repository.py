from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from qrorder.models import Order, OrderStatus


def get_order(db: Session, order_id: int) -> Optional[Order]:
    return db.query(Order).filter(Order.id == order_id).first()


def get_order_by_number(db: Session, order_number: str) -> Optional[Order]:
    return db.query(Order).filter(Order.order_number == order_number).first()


def list_orders_by_store(
    db: Session, store_id: int, status: Optional[OrderStatus] = None
) -> List[Order]:
    query = db.query(Order).filter(Order.store_id == store_id)
    if status is not None:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def create_order(db: Session, order: Order) -> Order:
    db.add(order)
    db.flush()
    return order


__all__ = ["get_order", "get_order_by_number", "list_orders_by_store", "create_order"]
