import logging

from werkzeug.security import generate_password_hash, check_password_hash

from config import DEFAULT_PASSWORD
from .database import get_db
from feedback_app.errors import AuthenticationError, ConflictError, NotFoundError
from utils import normalize_department

logger = logging.getLogger(__name__)


class Faculty:
    @staticmethod
    def add(name, email, department):
        """Add a faculty member with the default password. Returns the new id."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM faculty WHERE email = ?', (email,))
            if cursor.fetchone():
                raise ConflictError("Email already exists for another faculty")

            cursor.execute('''
                INSERT INTO faculty (name, email, department, password_hash)
                VALUES (?, ?, ?, ?)
            ''', (name, email, normalize_department(department),
                  generate_password_hash(DEFAULT_PASSWORD)))
            return cursor.lastrowid

    @staticmethod
    def authenticate(email, password):
        with get_db() as conn:
            row = conn.execute(
                'SELECT id, name, password_hash FROM faculty WHERE email = ?', (email,)
            ).fetchone()

        if not row or not row['password_hash'] or not check_password_hash(row['password_hash'], password):
            raise AuthenticationError()
        return {'id': row['id'], 'name': row['name']}

    @staticmethod
    def get_all():
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT id, name, email, department FROM faculty ORDER BY name')
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def update(faculty_id, name, email, department):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'SELECT 1 FROM faculty WHERE email = ? AND id != ?', (email, faculty_id)
            )
            if cursor.fetchone():
                raise ConflictError("Email already exists for another faculty")

            cursor.execute('''
                UPDATE faculty SET name = ?, email = ?, department = ?
                WHERE id = ?
            ''', (name, email, normalize_department(department), faculty_id))
            if cursor.rowcount == 0:
                raise NotFoundError("Faculty not found")

    @staticmethod
    def delete(faculty_id):
        """Unassign the faculty member from all subjects, then delete them, atomically."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM faculty WHERE id = ?', (faculty_id,))
            if not cursor.fetchone():
                raise NotFoundError("Faculty not found")

            cursor.execute('UPDATE subjects SET faculty_id = NULL WHERE faculty_id = ?', (faculty_id,))
            unassigned = cursor.rowcount
            cursor.execute('DELETE FROM faculty WHERE id = ?', (faculty_id,))

        logger.info(f"Deleted faculty {faculty_id}, unassigned from {unassigned} subjects")

    @staticmethod
    def set_password(faculty_id, password):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'UPDATE faculty SET password_hash = ? WHERE id = ?',
                (generate_password_hash(password), faculty_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Faculty not found")

    @staticmethod
    def change_password(faculty_id, old_password, new_password):
        with get_db() as conn:
            row = conn.execute(
                'SELECT password_hash FROM faculty WHERE id = ?', (faculty_id,)
            ).fetchone()
        if not row:
            raise NotFoundError("Faculty not found")
        if not row['password_hash'] or not check_password_hash(row['password_hash'], old_password):
            raise AuthenticationError("Old password is wrong")

        Faculty.set_password(faculty_id, new_password)
