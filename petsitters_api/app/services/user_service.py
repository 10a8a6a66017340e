"""
Business logic for users.

The ``UserService`` manages registration, authentication, profile
updates, soft deactivation and the petsitter rating aggregate.  Users
are never physically deleted: deactivation flips ``is_active``.
"""

import logging
import sqlite3
from typing import List, Optional

from petsitters_api.app.core.db import get_connection, utcnow_iso
from petsitters_api.app.core.errors import ConflictError, NotFoundError, UnauthorizedError
from petsitters_api.app.core.security import hash_password, verify_password
from petsitters_api.app.schemas.user import ProfileUpdate, UserCreate, UserRead, UserRole

logger = logging.getLogger(__name__)

USER_COLUMNS = (
    "id, name, email, phone, role, address, bio, rating, reviews_count, "
    "is_active, created_at, updated_at"
)


def _row_to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        role=row["role"],
        address=row["address"],
        bio=row["bio"],
        rating=row["rating"],
        reviews_count=row["reviews_count"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserService:
    """Service for accounts of clients and petsitters."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserRead:
        """Register a new user.

        Emails are unique (compared case-insensitively); a duplicate
        raises ``ConflictError``.  The password is stored hashed.
        """
        email = data.email.lower()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            existing = cursor.execute(
                "SELECT id FROM users WHERE email = ?", (email,)
            ).fetchone()
            if existing:
                raise ConflictError("A user with this email already exists")
            now = utcnow_iso()
            try:
                cursor.execute(
                    """
                    INSERT INTO users (name, email, password, phone, role, address, bio, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        data.name,
                        email,
                        hash_password(data.password),
                        data.phone,
                        data.role.value,
                        data.address,
                        data.bio,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                # Lost a race against a concurrent registration.
                raise ConflictError("A user with this email already exists") from exc
            user_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            logger.info("Registered %s %s (id=%s)", data.role.value, email, user_id)
            return _row_to_user(row)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def authenticate(cls, email: str, password: str) -> UserRead:
        """Check credentials and return the user.

        Unknown emails and wrong passwords produce the same error so the
        response does not reveal which emails are registered.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS}, password FROM users WHERE email = ?",
                (email.lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            logger.info("Failed login attempt for %s", email)
            raise UnauthorizedError("Invalid email or password")
        if not row["is_active"]:
            raise UnauthorizedError("Account is deactivated")
        return _row_to_user(row)

    @classmethod
    async def get_user_by_id(cls, user_id: int) -> UserRead:
        """Retrieve a user by ID, active or not."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"User {user_id} not found")
        return _row_to_user(row)

    @classmethod
    async def list_users(cls, role: Optional[UserRole] = None) -> List[UserRead]:
        """Return active users, optionally restricted to one role."""
        query = f"SELECT {USER_COLUMNS} FROM users WHERE is_active = 1"
        params: list = []
        if role is not None:
            query += " AND role = ?"
            params.append(role.value)
        query += " ORDER BY id ASC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_user(row) for row in rows]

    @classmethod
    async def list_petsitters(cls, min_rating: Optional[float] = None) -> List[UserRead]:
        """Return active petsitters, best rated first."""
        query = f"SELECT {USER_COLUMNS} FROM users WHERE is_active = 1 AND role = ?"
        params: list = [UserRole.PETSITTER.value]
        if min_rating is not None:
            query += " AND rating >= ?"
            params.append(min_rating)
        query += " ORDER BY rating DESC, reviews_count DESC, id ASC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_user(row) for row in rows]

    @classmethod
    async def update_profile(cls, user_id: int, data: ProfileUpdate) -> UserRead:
        """Update name, phone, address or bio of a user.

        Only fields explicitly present in ``data`` are written.
        """
        updates = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key in ("address", "bio")
        }
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            if updates:
                fields = [f"{key} = ?" for key in updates]
                values = list(updates.values())
                values.extend([utcnow_iso(), user_id])
                cursor.execute(
                    f"UPDATE users SET {', '.join(fields)}, updated_at = ? WHERE id = ?",
                    tuple(values),
                )
                conn.commit()
                logger.info("User %s updated profile fields %s", user_id, sorted(updates))
            updated = cursor.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            return _row_to_user(updated)
        finally:
            conn.close()

    @classmethod
    async def deactivate(cls, user_id: int) -> None:
        """Soft-delete a user account.

        The account can no longer log in or use existing tokens; its
        requests and reviews stay on record.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            cursor.execute(
                "UPDATE users SET is_active = 0, updated_at = ? WHERE id = ?",
                (utcnow_iso(), user_id),
            )
            conn.commit()
            logger.info("User %s deactivated", user_id)
        finally:
            conn.close()

    @classmethod
    def update_rating(
        cls,
        user_id: int,
        average: float,
        count: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Write a recomputed rating aggregate onto a petsitter.

        Synchronous so it can run while the caller holds a thread lock.
        When ``conn`` is given the update joins the caller's open
        transaction and is not committed here.
        """
        own_conn = conn is None
        if own_conn:
            conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE users SET rating = ?, reviews_count = ?, updated_at = ? WHERE id = ?",
                (average, count, utcnow_iso(), user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"User {user_id} not found")
            if own_conn:
                conn.commit()
        finally:
            if own_conn:
                conn.close()
