"""
Bulk student import from Excel workbooks.

Only the first sheet is read. Column headers are matched case-insensitively
and spaces count as underscores, so "Roll No" is accepted for roll_no.
"""

import logging
import zipfile

import pandas as pd

from feedback_app.errors import ValidationError
from feedback_app.models.student import Student

logger = logging.getLogger(__name__)

STUDENT_COLUMNS = ['name', 'roll_no', 'email', 'department', 'semester', 'division']
DUPLICATE_PREVIEW = 20

SAMPLE_ROWS = [
    ('Asha Patil', 'CSE2401', 'asha@example.com', 'Computer Science & Engineering', 3, 'A'),
    ('Rohan Jadhav', 'CSE2402', 'rohan@example.com', 'Computer Science & Engineering', 3, 'A'),
    ('Sneha More', 'CSE2403', 'sneha@example.com', 'Computer Science & Engineering', 3, 'B'),
]


def _header_key(label):
    return str(label).strip().lower().replace(' ', '_')


def read_student_sheet(path) -> pd.DataFrame:
    """
    Load and clean the student rows of a workbook.

    Raises ValidationError naming the first problem found.
    """
    try:
        frame = pd.read_excel(path)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        logger.error(f"Unreadable workbook {path}: {e}")
        raise ValidationError(f"Error reading Excel file: {e}")

    frame = frame.rename(columns=_header_key)
    absent = [column for column in STUDENT_COLUMNS if column not in frame.columns]
    if absent:
        raise ValidationError(
            f"Missing required columns: {', '.join(absent)}. Required: {', '.join(STUDENT_COLUMNS)}"
        )

    frame = frame[STUDENT_COLUMNS].dropna(how='all').copy()
    if frame.empty:
        raise ValidationError("Excel file is empty")
    if frame.isnull().values.any():
        raise ValidationError("Excel file contains empty values in required columns")

    text_columns = [column for column in STUDENT_COLUMNS if column != 'semester']
    frame[text_columns] = frame[text_columns].apply(lambda column: column.astype(str).str.strip())
    frame['email'] = frame['email'].str.lower()

    semesters = pd.to_numeric(frame['semester'], errors='coerce')
    if semesters.isnull().any() or (semesters % 1 != 0).any():
        raise ValidationError("Semester must be a whole number in every row")
    frame['semester'] = semesters.astype(int)
    return frame


def import_students(path) -> dict:
    """Register every student in the workbook, skipping emails already in use."""
    records = read_student_sheet(path).to_dict('records')
    for record in records:
        record['semester'] = int(record['semester'])

    added, duplicate_count, duplicates = Student.bulk_add(records)
    logger.info(f"Imported {path}: {added} of {len(records)} students added")
    return {
        'total': len(records),
        'added': added,
        'duplicates': duplicate_count,
        'duplicate_list': duplicates[:DUPLICATE_PREVIEW],
    }


def import_summary(stats) -> str:
    if not stats['added']:
        return f"No new students added. All {stats['duplicates']} records were duplicates."
    summary = f"Successfully added {stats['added']} students."
    if stats['duplicates']:
        summary += f" {stats['duplicates']} duplicates were skipped."
    return summary


def write_sample_workbook(path):
    """Workbook with the expected columns and a few example rows."""
    pd.DataFrame(SAMPLE_ROWS, columns=STUDENT_COLUMNS).to_excel(path, index=False)
    return path
