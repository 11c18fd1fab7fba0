"""Read access to the store catalog.

Queries use ``populate_existing`` so that prices and availability are always
read from the database, even when the session already holds the rows.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from qrorder.models import Menu, Seat, Store


def get_store(db: Session, store_id: int) -> Optional[Store]:
    return db.query(Store).populate_existing().filter(Store.id == store_id).first()


def get_seat(db: Session, seat_id: int) -> Optional[Seat]:
    return db.query(Seat).populate_existing().filter(Seat.id == seat_id).first()


def get_menus_by_ids(db: Session, menu_ids: Iterable[int]) -> Dict[int, Menu]:
    ids = set(menu_ids)
    if not ids:
        return {}
    menus = db.query(Menu).populate_existing().filter(Menu.id.in_(ids)).all()
    return {menu.id: menu for menu in menus}


__all__ = ["get_store", "get_seat", "get_menus_by_ids"]
