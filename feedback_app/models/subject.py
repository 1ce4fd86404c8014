import logging

from .database import get_db
from feedback_app.errors import AuthorizationError, ConflictError, NotFoundError
from utils import normalize_department, all_departments

logger = logging.getLogger(__name__)


class Subject:
    @staticmethod
    def add(code, title, department, semester, divisions):
        """Add a subject, one row per division. Returns the new subject ids."""
        department = normalize_department(department)
        if isinstance(divisions, str):
            divisions = [divisions]

        with get_db() as conn:
            cursor = conn.cursor()
            subject_ids = []
            for division in divisions:
                cursor.execute('''
                    INSERT INTO subjects (code, title, department, semester, division)
                    VALUES (?, ?, ?, ?, ?)
                ''', (code, title, department, semester, division))
                subject_ids.append(cursor.lastrowid)

        logger.info(f"Added subject {code} for {department} sem {semester}, divisions {list(divisions)}")
        return subject_ids

    @staticmethod
    def get(subject_id):
        """Get a subject with its faculty name, or None."""
        with get_db() as conn:
            row = conn.execute('''
                SELECT s.id, s.code, s.title, s.department, s.semester, s.division,
                       s.faculty_id, f.name AS faculty_name
                FROM subjects s
                LEFT JOIN faculty f ON s.faculty_id = f.id
                WHERE s.id = ?
            ''', (subject_id,)).fetchone()
        return dict(row) if row else None

    @staticmethod
    def get_owned(subject_id, faculty_id):
        """Get a subject, checking it is assigned to the given faculty member."""
        subject = Subject.get(subject_id)
        if not subject:
            raise NotFoundError("Subject not found")
        if subject['faculty_id'] != faculty_id:
            raise AuthorizationError()
        return subject

    @staticmethod
    def get_all():
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT s.id, s.code, s.title, s.department, s.semester, s.division,
                       s.faculty_id, f.name AS faculty_name
                FROM subjects s
                LEFT JOIN faculty f ON s.faculty_id = f.id
                ORDER BY s.department, s.semester, s.division, s.title
            ''')
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def for_faculty(faculty_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, code, title, department, semester, division
                FROM subjects
                WHERE faculty_id = ?
                ORDER BY semester, division, title
            ''', (faculty_id,))
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def for_student(student):
        """Subjects of the student's cohort with their submission state."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT s.id, s.code, s.title,
                       COALESCE(f.name, 'Not Assigned') AS faculty_name,
                       COALESCE(st.submitted, 0) AS submitted
                FROM subjects s
                LEFT JOIN faculty f ON s.faculty_id = f.id
                LEFT JOIN submission_status st
                    ON st.student_id = ? AND st.subject_id = s.id
                WHERE LOWER(s.department) = LOWER(?)
                  AND s.semester = ?
                  AND s.division = ?
                ORDER BY s.title
            ''', (student['id'], normalize_department(student['department']),
                  student['semester'], student['division']))

            subjects = []
            for row in cursor.fetchall():
                subject = dict(row)
                subject['submitted'] = bool(subject['submitted'])
                subjects.append(subject)
            return subjects

    @staticmethod
    def assign_faculty(subject_id, faculty_id, division=None):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM faculty WHERE id = ?', (faculty_id,))
            if not cursor.fetchone():
                raise NotFoundError("Faculty not found")

            if division:
                cursor.execute(
                    'UPDATE subjects SET faculty_id = ? WHERE id = ? AND division = ?',
                    (faculty_id, subject_id, division)
                )
            else:
                cursor.execute(
                    'UPDATE subjects SET faculty_id = ? WHERE id = ?', (faculty_id, subject_id)
                )
            if cursor.rowcount == 0:
                raise NotFoundError("Subject not found")

    @staticmethod
    def unassign_faculty(subject_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('UPDATE subjects SET faculty_id = NULL WHERE id = ?', (subject_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Subject not found")

    @staticmethod
    def departments():
        """Canonical departments plus any other department a subject uses."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT DISTINCT department FROM subjects ORDER BY department')
            used = [row[0] for row in cursor.fetchall()]

        departments = all_departments()
        departments.extend(d for d in used if d not in departments)
        return departments


class Division:
    @staticmethod
    def add(department, semester, name):
        department = normalize_department(department)

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT 1 FROM divisions
                WHERE LOWER(department) = LOWER(?) AND semester = ? AND name = ?
            ''', (department, semester, name))
            if cursor.fetchone():
                raise ConflictError("Division already exists!")

            cursor.execute(
                'INSERT INTO divisions (department, semester, name) VALUES (?, ?, ?)',
                (department, semester, name)
            )

    @staticmethod
    def list_for(department, semester):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT name FROM divisions
                WHERE LOWER(department) = LOWER(?) AND semester = ?
                ORDER BY name
            ''', (normalize_department(department), semester))
            return [row[0] for row in cursor.fetchall()]
