"""
Service that aggregates feedback ratings and comments for reports.

Averages are derived here on every request and rounded to two decimals once,
so the PDF and CSV renderers receive identical numbers.
"""

import logging
from datetime import datetime
from typing import List, Optional

from config import COMMENT_SUMMARY_LIMIT
from feedback_app.errors import NotFoundError
from feedback_app.models.database import get_db
from feedback_app.models.subject import Subject
from utils import grade_from_score, normalize_department

logger = logging.getLogger(__name__)


def _rounded(value) -> float:
    return round(float(value or 0), 2)


def subject_summary(subject_id: int) -> List[dict]:
    """
    Per-question response count and average rating for one subject.

    Questions without responses report 0 responses and a 0.0 average.
    """
    with get_db() as conn:
        if not conn.execute('SELECT 1 FROM subjects WHERE id = ?', (subject_id,)).fetchone():
            raise NotFoundError("Subject not found")

        cursor = conn.execute('''
            SELECT q.id AS question_id, q.text AS question,
                   COUNT(fr.rating) AS responses,
                   COALESCE(AVG(fr.rating), 0) AS average
            FROM questions q
            LEFT JOIN feedback_responses fr
                ON fr.question_id = q.id
               AND fr.subject_id = ?
            WHERE q.active = 1
            GROUP BY q.id, q.text, q.sequence
            ORDER BY q.sequence
        ''', (subject_id,))

        return [
            {
                'question_id': row['question_id'],
                'question': row['question'],
                'responses': int(row['responses']),
                'average': _rounded(row['average']),
            }
            for row in cursor.fetchall()
        ]


def subject_comments(subject_id: int, limit: Optional[int] = None) -> List[dict]:
    """Comments for a subject, most recent first."""
    query = '''
        SELECT comment, division, submitted_at
        FROM feedback_comments
        WHERE subject_id = ?
        ORDER BY submitted_at DESC, id DESC
    '''
    params = [subject_id]
    if limit is not None:
        query += ' LIMIT ?'
        params.append(int(limit))

    with get_db() as conn:
        cursor = conn.execute(query, params)
        return [
            {
                'comment': row['comment'] or '',
                'division': row['division'] or '',
                'submitted_at': str(row['submitted_at'] or ''),
            }
            for row in cursor.fetchall()
        ]


def overall_average(question_rows: List[dict]) -> float:
    """Mean of the per-question averages; 0.0 when there are no questions."""
    if not question_rows:
        return 0.0
    return _rounded(sum(row['average'] for row in question_rows) / len(question_rows))


def build_subject_report(subject_id: int, comment_limit: Optional[int] = COMMENT_SUMMARY_LIMIT) -> dict:
    """Everything the subject summary PDF and CSV need, computed once."""
    subject = Subject.get(subject_id)
    if not subject:
        raise NotFoundError("Subject not found")

    questions = subject_summary(subject_id)
    overall = overall_average(questions)
    return {
        'subject': subject,
        'questions': questions,
        'overall': overall,
        'grade': grade_from_score(overall),
        'comments': subject_comments(subject_id, comment_limit),
        'generated_at': datetime.now(),
    }


def division_rollup(department: Optional[str] = None, semester: Optional[int] = None,
                    division: Optional[str] = None) -> dict:
    """
    Per-subject points for a department/semester/division, plus the division figure.

    Empty filters match everything. Subjects without responses count as 0
    towards the division average.
    """
    department = normalize_department(department) or ''
    division = (division or '').strip()

    with get_db() as conn:
        cursor = conn.execute('''
            SELECT s.id AS subject_id, s.code, s.title, s.department, s.semester, s.division,
                   COALESCE(f.name, 'Not Assigned') AS faculty_name,
                   COALESCE(AVG(fr.rating), 0) AS points,
                   COUNT(fr.rating) AS responses
            FROM subjects s
            LEFT JOIN faculty f ON s.faculty_id = f.id
            LEFT JOIN feedback_responses fr ON fr.subject_id = s.id
            WHERE (? = '' OR LOWER(s.department) = LOWER(?))
              AND (? IS NULL OR s.semester = ?)
              AND (? = '' OR s.division = ?)
            GROUP BY s.id, s.code, s.title, s.department, s.semester, s.division, f.name
            ORDER BY s.department, s.semester, s.division, s.title
        ''', (department, department, semester, semester, division, division))

        rows = []
        for row in cursor.fetchall():
            points = _rounded(row['points'])
            rows.append({
                'subject_id': row['subject_id'],
                'code': row['code'],
                'title': row['title'],
                'department': row['department'],
                'semester': row['semester'],
                'division': row['division'],
                'faculty_name': row['faculty_name'],
                'points': points,
                'responses': int(row['responses']),
                'grade': grade_from_score(points),
            })

    overall = _rounded(sum(r['points'] for r in rows) / len(rows)) if rows else 0.0
    logger.info(f"Division rollup ({department or 'All'}/{semester or 'All'}/{division or 'All'}): "
                f"{len(rows)} subjects, overall {overall:.2f}")
    return {
        'department': department,
        'semester': semester,
        'division': division,
        'rows': rows,
        'overall': overall,
        'grade': grade_from_score(overall),
        'generated_at': datetime.now(),
    }


def pending_submissions(subject_id: int) -> dict:
    """Students of the subject's cohort who have not submitted feedback for it."""
    subject = Subject.get(subject_id)
    if not subject:
        raise NotFoundError("Subject not found")

    with get_db() as conn:
        cursor = conn.execute('''
            SELECT st.id, st.name, st.roll_no, st.email,
                   COALESCE(ss.submitted, 0) AS submitted
            FROM students st
            LEFT JOIN submission_status ss
                ON ss.student_id = st.id AND ss.subject_id = ?
            WHERE LOWER(st.department) = LOWER(?)
              AND st.semester = ?
              AND st.division = ?
            ORDER BY st.roll_no
        ''', (subject_id, subject['department'], subject['semester'], subject['division']))
        cohort = cursor.fetchall()

    pending = [
        {'id': row['id'], 'name': row['name'], 'roll_no': row['roll_no'], 'email': row['email']}
        for row in cohort if not row['submitted']
    ]
    logger.info(f"Subject {subject_id}: {len(cohort)} students, {len(pending)} pending")
    return {
        'subject': subject,
        'total': len(cohort),
        'submitted': len(cohort) - len(pending),
        'pending': pending,
        'generated_at': datetime.now(),
    }
