import logging

from werkzeug.security import generate_password_hash, check_password_hash

from config import DEFAULT_PASSWORD
from .database import get_db
from feedback_app.errors import AuthenticationError, ConflictError, NotFoundError
from utils import normalize_department

logger = logging.getLogger(__name__)

STUDENT_COLUMNS = 'id, name, roll_no, email, department, semester, division'


def _to_dict(row):
    return {
        'id': row['id'],
        'name': row['name'],
        'roll_no': row['roll_no'],
        'email': row['email'],
        'department': row['department'],
        'semester': row['semester'],
        'division': row['division'],
    }


class Student:
    @staticmethod
    def register(name, roll_no, email, department, semester, division, password):
        """Create a student and enroll them in every subject of their cohort.

        Returns the new student id.
        """
        department = normalize_department(department)

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM students WHERE email = ?', (email,))
            if cursor.fetchone():
                raise ConflictError("Email already registered")

            cursor.execute('''
                INSERT INTO students
                (name, roll_no, email, department, semester, division, password_hash)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', (name, roll_no, email, department, semester, division,
                  generate_password_hash(password)))
            student_id = cursor.lastrowid

            cursor.execute('''
                SELECT id FROM subjects
                WHERE LOWER(department) = LOWER(?) AND semester = ? AND division = ?
            ''', (department, semester, division))
            subject_ids = [row['id'] for row in cursor.fetchall()]

            cursor.executemany(
                'INSERT INTO enrollment (student_id, subject_id) VALUES (?, ?)',
                [(student_id, subject_id) for subject_id in subject_ids]
            )

        logger.info(f"Registered student {roll_no} ({department} sem {semester}), "
                    f"enrolled in {len(subject_ids)} subjects")
        return student_id

    @staticmethod
    def bulk_add(students):
        """Add multiple students at once.
        students: list of dicts with name, roll_no, email, department, semester, division
        Returns: (added_count, duplicate_count, duplicates_list)
        """
        added = []
        duplicates = []
        password_hash = None

        with get_db() as conn:
            cursor = conn.cursor()

            for student in students:
                cursor.execute('SELECT 1 FROM students WHERE email = ?', (student['email'],))
                if cursor.fetchone():
                    duplicates.append(student['email'])
                    continue

                if password_hash is None:
                    password_hash = generate_password_hash(DEFAULT_PASSWORD)

                department = normalize_department(student['department'])
                cursor.execute('''
                    INSERT INTO students
                    (name, roll_no, email, department, semester, division, password_hash)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (student['name'], student['roll_no'], student['email'],
                      department, student['semester'], student['division'], password_hash))
                student_id = cursor.lastrowid

                cursor.execute('''
                    INSERT INTO enrollment (student_id, subject_id)
                    SELECT ?, id FROM subjects
                    WHERE LOWER(department) = LOWER(?) AND semester = ? AND division = ?
                ''', (student_id, department, student['semester'], student['division']))
                added.append(student['email'])

        logger.info(f"Bulk add: {len(added)} students added, {len(duplicates)} duplicates skipped")

        return len(added), len(duplicates), duplicates

    @staticmethod
    def authenticate(email, password):
        """Return the student matching the credentials, or raise AuthenticationError."""
        with get_db() as conn:
            row = conn.execute(
                f'SELECT {STUDENT_COLUMNS}, password_hash FROM students WHERE email = ?',
                (email,)
            ).fetchone()

        if not row or not row['password_hash'] or not check_password_hash(row['password_hash'], password):
            raise AuthenticationError()
        return _to_dict(row)

    @staticmethod
    def get(student_id):
        """Get a student by id, or None."""
        with get_db() as conn:
            row = conn.execute(
                f'SELECT {STUDENT_COLUMNS} FROM students WHERE id = ?', (student_id,)
            ).fetchone()
        return _to_dict(row) if row else None

    @staticmethod
    def get_all():
        """Get all students with their feedback restriction state."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT s.id, s.name, s.roll_no, s.email, s.department, s.semester, s.division,
                       COALESCE(r.is_restricted, 0) AS is_restricted,
                       COALESCE(r.reason, '') AS restriction_reason
                FROM students s
                LEFT JOIN feedback_restrictions r ON r.student_id = s.id
                ORDER BY s.department, s.semester, s.roll_no
            ''')

            students = []
            for row in cursor.fetchall():
                student = _to_dict(row)
                student['is_restricted'] = bool(row['is_restricted'])
                student['restriction_reason'] = row['restriction_reason']
                students.append(student)
            return students

    @staticmethod
    def update(student_id, name, email, department, semester, division):
        department = normalize_department(department)

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'SELECT 1 FROM students WHERE email = ? AND id != ?', (email, student_id)
            )
            if cursor.fetchone():
                raise ConflictError("Email already exists for another student")

            cursor.execute('''
                UPDATE students
                SET name = ?, email = ?, department = ?, semester = ?, division = ?
                WHERE id = ?
            ''', (name, email, department, semester, division, student_id))
            if cursor.rowcount == 0:
                raise NotFoundError("Student not found")

    @staticmethod
    def delete(student_id):
        """Delete a student and every record that depends on them.

        Runs as one transaction: a failure part way leaves nothing deleted.
        """
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM students WHERE id = ?', (student_id,))
            if not cursor.fetchone():
                raise NotFoundError("Student not found")

            cursor.execute('DELETE FROM feedback_comments WHERE student_id = ?', (student_id,))
            cursor.execute('DELETE FROM submission_status WHERE student_id = ?', (student_id,))
            cursor.execute('DELETE FROM enrollment WHERE student_id = ?', (student_id,))
            cursor.execute('DELETE FROM feedback_restrictions WHERE student_id = ?', (student_id,))
            cursor.execute('DELETE FROM students WHERE id = ?', (student_id,))

        logger.info(f"Deleted student {student_id}")

    @staticmethod
    def set_password(student_id, password):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'UPDATE students SET password_hash = ? WHERE id = ?',
                (generate_password_hash(password), student_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Student not found")

    @staticmethod
    def change_password(student_id, old_password, new_password):
        with get_db() as conn:
            row = conn.execute(
                'SELECT password_hash FROM students WHERE id = ?', (student_id,)
            ).fetchone()
        if not row:
            raise NotFoundError("Student not found")
        if not row['password_hash'] or not check_password_hash(row['password_hash'], old_password):
            raise AuthenticationError("Old password is wrong")

        Student.set_password(student_id, new_password)

