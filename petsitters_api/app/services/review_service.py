"""
Business logic for reviews.

A client may review the petsitter of one of their own completed
requests, once per request.  Writing a review also recomputes the
petsitter's ``rating`` and ``reviews_count``.  The insert and the
recompute run in one ``BEGIN IMMEDIATE`` transaction while holding a
per-petsitter lock, so concurrent reviews for the same petsitter are
serialized and the aggregate always matches the stored reviews.

The reviewed petsitter can hide a review from public listings.  Hidden
reviews still count towards the rating and the statistics.
"""

import logging
import sqlite3
import threading
import weakref
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from petsitters_api.app.core.db import get_connection, utcnow_iso
from petsitters_api.app.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from petsitters_api.app.schemas.request import RequestStatus
from petsitters_api.app.schemas.review import RatingStatistics, ReviewCreate, ReviewRead
from petsitters_api.app.services.user_service import UserService

logger = logging.getLogger(__name__)

REVIEW_COLUMNS = "id, request_id, client_id, petsitter_id, rating, comment, is_visible, created_at"

TWO_PLACES = Decimal("0.01")

# Entries disappear once no thread holds or waits on the lock.
_petsitter_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
_petsitter_locks_guard = threading.Lock()


def _petsitter_lock(petsitter_id: int) -> threading.Lock:
    """Process-wide lock serializing rating updates of one petsitter."""
    with _petsitter_locks_guard:
        lock = _petsitter_locks.get(petsitter_id)
        if lock is None:
            lock = threading.Lock()
            _petsitter_locks[petsitter_id] = lock
        return lock


def round_rating(total: int, count: int) -> float:
    """Arithmetic mean of ``count`` ratings summing to ``total``, half-up to 2 places."""
    if count == 0:
        return 0.0
    mean = Decimal(total) / Decimal(count)
    return float(mean.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def _row_to_review(row: sqlite3.Row) -> ReviewRead:
    data = dict(row)
    data["is_visible"] = bool(data["is_visible"])
    return ReviewRead(**data)


def _rating_totals(cursor: sqlite3.Cursor, petsitter_id: int) -> Tuple[int, int]:
    row = cursor.execute(
        "SELECT COUNT(*) AS count, COALESCE(SUM(rating), 0) AS total FROM reviews WHERE petsitter_id = ?",
        (petsitter_id,),
    ).fetchone()
    return row["count"], row["total"]


class ReviewService:
    """Service for petsitter reviews and rating aggregation."""

    @classmethod
    async def create_review(cls, client_id: int, data: ReviewCreate) -> ReviewRead:
        """Create a review for a completed request and update the petsitter's rating.

        Raises ``NotFoundError`` for an unknown request, ``ForbiddenError``
        when the caller is not the request's client, ``ValidationError``
        when the request is not completed or has no petsitter and
        ``ConflictError`` when the request has already been reviewed.
        """
        conn = get_connection()
        try:
            request = conn.execute(
                "SELECT id, client_id, petsitter_id, status FROM requests WHERE id = ?",
                (data.request_id,),
            ).fetchone()
        finally:
            conn.close()
        if not request:
            raise NotFoundError(f"Request {data.request_id} not found")
        if request["client_id"] != client_id:
            raise ForbiddenError("You can only review your own requests")
        if request["status"] != RequestStatus.COMPLETED.value:
            raise ValidationError("Only completed requests can be reviewed")
        petsitter_id = request["petsitter_id"]
        if petsitter_id is None:
            raise ValidationError("The request has no assigned petsitter")

        with _petsitter_lock(petsitter_id):
            conn = get_connection()
            try:
                cursor = conn.cursor()
                cursor.execute("BEGIN IMMEDIATE")
                existing = cursor.execute(
                    "SELECT id FROM reviews WHERE request_id = ?", (data.request_id,)
                ).fetchone()
                if existing:
                    raise ConflictError("This request has already been reviewed")
                try:
                    cursor.execute(
                        """
                        INSERT INTO reviews (request_id, client_id, petsitter_id, rating, comment, is_visible, created_at)
                        VALUES (?, ?, ?, ?, ?, 1, ?)
                        """,
                        (
                            data.request_id,
                            client_id,
                            petsitter_id,
                            data.rating,
                            data.comment,
                            utcnow_iso(),
                        ),
                    )
                except sqlite3.IntegrityError as exc:
                    raise ConflictError("This request has already been reviewed") from exc
                review_id = cursor.lastrowid

                count, total = _rating_totals(cursor, petsitter_id)
                average = round_rating(total, count)
                UserService.update_rating(petsitter_id, average, count, conn=conn)
                conn.commit()

                row = cursor.execute(
                    f"SELECT {REVIEW_COLUMNS} FROM reviews WHERE id = ?", (review_id,)
                ).fetchone()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()
        logger.info(
            "Client %s reviewed petsitter %s (request %s, rating %s); new rating %.2f over %s reviews",
            client_id,
            petsitter_id,
            data.request_id,
            data.rating,
            average,
            count,
        )
        return _row_to_review(row)

    @classmethod
    async def list_reviews(cls, petsitter_id: Optional[int] = None) -> List[ReviewRead]:
        """List visible reviews, newest first, optionally for one petsitter."""
        query = f"SELECT {REVIEW_COLUMNS} FROM reviews WHERE is_visible = 1"
        params: list = []
        if petsitter_id is not None:
            query += " AND petsitter_id = ?"
            params.append(petsitter_id)
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_review(row) for row in rows]

    @classmethod
    async def list_for_petsitter(cls, petsitter_id: int) -> List[ReviewRead]:
        await UserService.get_user_by_id(petsitter_id)
        return await cls.list_reviews(petsitter_id=petsitter_id)

    @classmethod
    async def get_review(cls, review_id: int) -> ReviewRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {REVIEW_COLUMNS} FROM reviews WHERE id = ?", (review_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Review {review_id} not found")
        return _row_to_review(row)

    @classmethod
    async def toggle_visibility(cls, review_id: int, user_id: int) -> ReviewRead:
        """Flip ``is_visible``.  Only the reviewed petsitter may do this.

        The rating is left untouched.
        """
        review = await cls.get_review(review_id)
        if review.petsitter_id != user_id:
            raise ForbiddenError("You can only change the visibility of reviews about you")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE reviews SET is_visible = 1 - is_visible WHERE id = ?", (review_id,)
            )
            conn.commit()
            row = cursor.execute(
                f"SELECT {REVIEW_COLUMNS} FROM reviews WHERE id = ?", (review_id,)
            ).fetchone()
        finally:
            conn.close()
        logger.info(
            "Petsitter %s set review %s visible=%s", user_id, review_id, bool(row["is_visible"])
        )
        return _row_to_review(row)

    @classmethod
    async def get_statistics(cls, petsitter_id: int) -> RatingStatistics:
        """Rating summary for a petsitter, hidden reviews included."""
        await UserService.get_user_by_id(petsitter_id)
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT rating, COUNT(*) AS count FROM reviews WHERE petsitter_id = ? GROUP BY rating",
                (petsitter_id,),
            ).fetchall()
        finally:
            conn.close()
        distribution = {star: 0 for star in range(1, 6)}
        for row in rows:
            distribution[row["rating"]] = row["count"]
        count = sum(distribution.values())
        total = sum(star * n for star, n in distribution.items())
        return RatingStatistics(
            total_reviews=count,
            average_rating=round_rating(total, count),
            rating_distribution=distribution,
        )
