"""Column types shared by the models."""

from sqlalchemy import BigInteger, Integer

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
IdentityKey = BigInteger().with_variant(Integer(), "sqlite")


__all__ = ["IdentityKey"]
