"""
Feedback window and per-student restrictions.

Both live in the store and are read fresh on every call; nothing is cached in
the process.
"""
from .database import get_db
from feedback_app.errors import NotFoundError


class FeedbackWindow:
    @staticmethod
    def is_open(conn=None):
        if conn is not None:
            return FeedbackWindow._read(conn)
        with get_db() as conn:
            return FeedbackWindow._read(conn)

    @staticmethod
    def _read(conn):
        row = conn.execute('SELECT is_open FROM feedback_control WHERE id = 1').fetchone()
        return bool(row and row['is_open'])

    @staticmethod
    def set_open(is_open):
        with get_db() as conn:
            conn.execute('''
                INSERT INTO feedback_control (id, is_open, updated_at)
                VALUES (1, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(id) DO UPDATE SET
                    is_open = excluded.is_open,
                    updated_at = excluded.updated_at
            ''', (1 if is_open else 0,))
        return bool(is_open)


class Restriction:
    @staticmethod
    def get(student_id, conn=None):
        """Return (is_restricted, reason) for a student."""
        if conn is not None:
            return Restriction._read(conn, student_id)
        with get_db() as conn:
            return Restriction._read(conn, student_id)

    @staticmethod
    def _read(conn, student_id):
        row = conn.execute(
            'SELECT is_restricted, reason FROM feedback_restrictions WHERE student_id = ?',
            (student_id,)
        ).fetchone()
        if not row:
            return False, ''
        return bool(row['is_restricted']), (row['reason'] or '').strip()

    @staticmethod
    def set(student_id, is_restricted, reason=None):
        """Restrict or release a student, keyed by student id."""
        reason = (reason or '').strip() or None
        with get_db() as conn:
            if not conn.execute('SELECT 1 FROM students WHERE id = ?', (student_id,)).fetchone():
                raise NotFoundError("Student not found")
            conn.execute('''
                INSERT INTO feedback_restrictions (student_id, is_restricted, reason, updated_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(student_id) DO UPDATE SET
                    is_restricted = excluded.is_restricted,
                    reason = excluded.reason,
                    updated_at = excluded.updated_at
            ''', (student_id, 1 if is_restricted else 0, reason if is_restricted else None))
        return bool(is_restricted), (reason or '') if is_restricted else ''
