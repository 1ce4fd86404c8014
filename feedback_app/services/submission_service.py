"""
Service that accepts student feedback for a subject.

A (student, subject) pair moves from not-submitted to submitted exactly
once. The window state, the student's restriction and the pair's status are
all checked before anything is written, and the status row is inserted first
inside the write transaction so the store's primary key rejects a concurrent
duplicate.
"""

import logging
import sqlite3
from typing import List, Optional, Tuple

from config import RATING_MIN, RATING_MAX
from feedback_app.errors import (
    ConflictError, NotFoundError, SubmissionRejected, ValidationError
)
from feedback_app.models.database import get_db
from feedback_app.models.feedback_control import FeedbackWindow, Restriction
from feedback_app.models.question import Question

logger = logging.getLogger(__name__)

WINDOW_CLOSED_MESSAGE = "Feedback window is currently closed by admin."
RESTRICTED_MESSAGE = "Feedback access is restricted by admin."
ALREADY_SUBMITTED_MESSAGE = "Feedback already submitted"


def parse_responses(responses) -> List[Tuple[int, int]]:
    """
    Validate the submitted ratings.

    Accepts a list of {"questionId": .., "rating": ..} mappings or
    (question_id, rating) pairs.

    Returns:
        List of (question_id, rating) tuples in submitted order
    """
    if not isinstance(responses, (list, tuple)) or not responses:
        raise ValidationError("At least one rating is required")

    parsed = []
    seen = set()
    for item in responses:
        if isinstance(item, dict):
            question_id = item.get('questionId', item.get('question_id'))
            rating = item.get('rating')
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            question_id, rating = item
        else:
            raise ValidationError("Each rating needs a question id and a rating")

        if isinstance(question_id, bool) or isinstance(rating, bool):
            raise ValidationError("Ratings must be whole numbers")
        if isinstance(question_id, float) and not question_id.is_integer():
            raise ValidationError("Invalid question id")
        try:
            question_id = int(question_id)
        except (TypeError, ValueError):
            raise ValidationError("Invalid question id")

        if isinstance(rating, float) and not rating.is_integer():
            raise ValidationError(f"Rating must be a whole number between {RATING_MIN} and {RATING_MAX}")
        try:
            rating = int(rating)
        except (TypeError, ValueError):
            raise ValidationError(f"Rating must be a whole number between {RATING_MIN} and {RATING_MAX}")
        if not RATING_MIN <= rating <= RATING_MAX:
            raise ValidationError(f"Rating must be between {RATING_MIN} and {RATING_MAX}")

        if question_id in seen:
            raise ValidationError(f"Question {question_id} was rated more than once")
        seen.add(question_id)
        parsed.append((question_id, rating))

    return parsed


def check_gate(conn, student_id: int, subject_id: int) -> None:
    """Raise if the student may not submit feedback for the subject right now."""
    if not FeedbackWindow.is_open(conn):
        raise SubmissionRejected(WINDOW_CLOSED_MESSAGE)

    restricted, reason = Restriction.get(student_id, conn)
    if restricted:
        raise SubmissionRejected(f"Feedback access is restricted: {reason}" if reason else RESTRICTED_MESSAGE)

    row = conn.execute(
        'SELECT submitted FROM submission_status WHERE student_id = ? AND subject_id = ?',
        (student_id, subject_id)
    ).fetchone()
    if row and row['submitted']:
        raise ConflictError(ALREADY_SUBMITTED_MESSAGE)


def submit_feedback(student_id: int, subject_id: int, responses, comment: Optional[str] = None) -> int:
    """
    Record a student's ratings (and optional comment) for a subject.

    Returns:
        Number of ratings stored
    """
    ratings = parse_responses(responses)
    if comment is not None and not isinstance(comment, str):
        raise ValidationError("Comment must be text")
    comment = (comment or '').strip()

    with get_db() as conn:
        student = conn.execute(
            'SELECT id, division FROM students WHERE id = ?', (student_id,)
        ).fetchone()
        if not student:
            raise NotFoundError("Student not found")
        if not conn.execute('SELECT 1 FROM subjects WHERE id = ?', (subject_id,)).fetchone():
            raise NotFoundError("Subject not found")

        active_ids = {q['id'] for q in Question.active(conn)}
        unknown = [qid for qid, _ in ratings if qid not in active_ids]
        if unknown:
            raise ValidationError(f"Unknown or inactive question: {unknown[0]}")

        check_gate(conn, student_id, subject_id)

        try:
            conn.execute('''
                INSERT INTO submission_status (student_id, subject_id, submitted)
                VALUES (?, ?, 1)
            ''', (student_id, subject_id))
        except sqlite3.IntegrityError as e:
            # Lost a race with another submission for the same pair
            raise ConflictError(ALREADY_SUBMITTED_MESSAGE) from e

        conn.executemany(
            'INSERT INTO feedback_responses (subject_id, question_id, rating) VALUES (?, ?, ?)',
            [(subject_id, question_id, rating) for question_id, rating in ratings]
        )

        if comment:
            conn.execute('''
                INSERT INTO feedback_comments (subject_id, student_id, division, comment)
                VALUES (?, ?, ?, ?)
            ''', (subject_id, student_id, student['division'], comment))

    logger.info(f"Feedback stored: student {student_id}, subject {subject_id}, {len(ratings)} ratings")
    return len(ratings)
