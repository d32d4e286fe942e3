# Overview: Service-layer operations for account administration.

"""
Account administration for the admin console.

Admin accounts cannot be deleted through the API; demoting one first
requires the `flask users set-role` command.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Account, Product, Role
from ..validation import clean_text, require_email, require_password
from .auth_service import EmailAlreadyRegisteredError, find_account_by_email, hash_password
from inventory_api.time_utils import to_utc_z, utcnow


class AccountNotFoundError(LookupError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class AdminDeletionError(ValueError):
    def __init__(self, message: str = "Cannot delete admin accounts"):
        super().__init__(message)


def list_accounts() -> list[dict]:
    """Every account with its product count, newest first."""
    product_counts = (
        db.session.query(Product.owner_id, func.count(Product.id).label("product_count"))
        .filter(Product.is_deleted.is_(False))
        .group_by(Product.owner_id)
        .subquery()
    )
    rows = (
        db.session.query(Account, func.coalesce(product_counts.c.product_count, 0))
        .outerjoin(product_counts, product_counts.c.owner_id == Account.id)
        .order_by(Account.created_at.desc(), Account.id.desc())
        .all()
    )
    return [
        {
            "id": account.id,
            "name": account.name,
            "email": account.email,
            "role": account.role_enum.value,
            "created_at": to_utc_z(account.created_at),
            "productCount": int(count),
        }
        for account, count in rows
    ]


def delete_account(account_id: int) -> None:
    """
    Delete a non-admin account together with its products.

    Stock history of those products is kept.

    Raises:
        AccountNotFoundError: no such account
        AdminDeletionError: account has the admin role
    """
    account = db.session.get(Account, account_id)
    if account is None:
        raise AccountNotFoundError()
    if account.is_admin:
        raise AdminDeletionError()

    product_ids = [
        pid for (pid,) in db.session.query(Product.id).filter(Product.owner_id == account.id).all()
    ]
    if product_ids:
        db.session.query(Product).filter(
            Product.id.in_(product_ids)
        ).delete(synchronize_session=False)

    email = account.email
    db.session.delete(account)
    db.session.commit()
    current_app.logger.info("Deleted account %s (%s) with %d products", account_id, email, len(product_ids))


def create_account(*, name: str | None, email: str, password: str, role: Role, rounds: int = 10) -> Account:
    """
    Create a verified account directly, without a one-time code.

    Raises:
        ValidationError: malformed email or password
        EmailAlreadyRegisteredError: email already in use
    """
    email = require_email(email)
    require_password(password)
    if find_account_by_email(email) is not None:
        raise EmailAlreadyRegisteredError()

    account = Account(
        name=clean_text(name) or None,
        email=email,
        password_hash=hash_password(password, rounds),
        role=Role(role).value,
        is_verified=True,
        created_at=utcnow(),
    )
    db.session.add(account)
    db.session.commit()
    return account


def set_role(email: str, role: Role) -> Account:
    """
    Change an account's role. Role changes only happen out of band.

    Raises:
        AccountNotFoundError: no account with that email
    """
    account = find_account_by_email(email)
    if account is None:
        raise AccountNotFoundError()
    account.role = Role(role).value
    db.session.commit()
    return account


def backfill_roles() -> int:
    """Write the default role into rows whose role is NULL or blank."""
    updated = (
        db.session.query(Account)
        .filter(or_(Account.role.is_(None), Account.role == ""))
        .update({"role": Role.USER.value}, synchronize_session=False)
    )
    db.session.commit()
    return updated
