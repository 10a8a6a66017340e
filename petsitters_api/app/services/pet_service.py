"""
Business logic for pets.

Pets are registered by clients and may only be edited or removed by
their owner.  Removal is a soft delete (``is_active = 0``).  The
request lifecycle uses ``check_ownership`` before accepting a new
request for a pet.
"""

import logging
import sqlite3
from enum import Enum
from typing import List

from petsitters_api.app.core.db import get_connection, utcnow_iso
from petsitters_api.app.core.errors import ForbiddenError, NotFoundError
from petsitters_api.app.schemas.pet import PetCreate, PetRead, PetUpdate

logger = logging.getLogger(__name__)

PET_COLUMNS = (
    "id, owner_id, name, type, breed, age, size, weight, special_needs, "
    "medical_info, photo, is_active, created_at, updated_at"
)

# An explicit null for these is ignored; the optional fields can be cleared.
REQUIRED_PET_FIELDS = {"name", "type", "breed", "age", "size"}


def _row_to_pet(row: sqlite3.Row) -> PetRead:
    data = dict(row)
    data["is_active"] = bool(data["is_active"])
    return PetRead(**data)


class PetService:
    """Service for the pet registry."""

    @classmethod
    async def create_pet(cls, owner_id: int, data: PetCreate) -> PetRead:
        now = utcnow_iso()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO pets (owner_id, name, type, breed, age, size, weight,
                                  special_needs, medical_info, photo, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    owner_id,
                    data.name,
                    data.type.value,
                    data.breed,
                    data.age,
                    data.size.value,
                    data.weight,
                    data.special_needs,
                    data.medical_info,
                    data.photo,
                    now,
                    now,
                ),
            )
            pet_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(f"SELECT {PET_COLUMNS} FROM pets WHERE id = ?", (pet_id,)).fetchone()
            logger.info("User %s registered pet %s (%s)", owner_id, pet_id, data.name)
            return _row_to_pet(row)
        finally:
            conn.close()

    @classmethod
    async def list_pets(cls) -> List[PetRead]:
        """Return every active pet, newest first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {PET_COLUMNS} FROM pets WHERE is_active = 1 ORDER BY created_at DESC, id DESC"
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_pet(row) for row in rows]

    @classmethod
    async def list_by_owner(cls, owner_id: int) -> List[PetRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {PET_COLUMNS} FROM pets WHERE owner_id = ? AND is_active = 1 "
                "ORDER BY created_at DESC, id DESC",
                (owner_id,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_pet(row) for row in rows]

    @classmethod
    async def get_pet(cls, pet_id: int) -> PetRead:
        """Retrieve a pet by ID.  Soft-deleted pets are still returned."""
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {PET_COLUMNS} FROM pets WHERE id = ?", (pet_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Pet {pet_id} not found")
        return _row_to_pet(row)

    @classmethod
    async def update_pet(cls, pet_id: int, user_id: int, data: PetUpdate) -> PetRead:
        """Update a pet's profile.  Only the owner may do this."""
        pet = await cls.get_pet(pet_id)
        if pet.owner_id != user_id:
            raise ForbiddenError("You can only edit your own pets")
        updates = {}
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key in REQUIRED_PET_FIELDS:
                continue
            updates[key] = value.value if isinstance(value, Enum) else value
        if not updates:
            return pet
        fields = [f"{key} = ?" for key in updates]
        values = list(updates.values())
        values.extend([utcnow_iso(), pet_id])
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE pets SET {', '.join(fields)}, updated_at = ? WHERE id = ?",
                tuple(values),
            )
            conn.commit()
            row = cursor.execute(f"SELECT {PET_COLUMNS} FROM pets WHERE id = ?", (pet_id,)).fetchone()
            logger.info("User %s updated pet %s", user_id, pet_id)
            return _row_to_pet(row)
        finally:
            conn.close()

    @classmethod
    async def remove_pet(cls, pet_id: int, user_id: int) -> None:
        """Soft-delete a pet.  Only the owner may do this."""
        pet = await cls.get_pet(pet_id)
        if pet.owner_id != user_id:
            raise ForbiddenError("You can only delete your own pets")
        conn = get_connection()
        try:
            conn.execute(
                "UPDATE pets SET is_active = 0, updated_at = ? WHERE id = ?",
                (utcnow_iso(), pet_id),
            )
            conn.commit()
            logger.info("User %s removed pet %s", user_id, pet_id)
        finally:
            conn.close()

    @classmethod
    async def check_ownership(cls, pet_id: int, user_id: int) -> bool:
        """Return whether ``user_id`` owns ``pet_id``.

        Raises ``NotFoundError`` if the pet does not exist.
        """
        pet = await cls.get_pet(pet_id)
        return pet.owner_id == user_id
