"""
Utils module - department name normalization and grading helpers
"""
import math

from config import GRADE_BANDS, LOWEST_GRADE
from feedback_app.errors import ValidationError

# Known spellings of each department, mapped to the canonical name
DEPARTMENT_ALIASES = {
    'Computer Science & Engineering': 'Computer Science & Engineering',
    'Computer Science and Engineering': 'Computer Science & Engineering',
    'CSE': 'Computer Science & Engineering',
    'Computer Science': 'Computer Science & Engineering',

    'Mechanical Engineering': 'Mechanical Engineering',
    'Mechanical': 'Mechanical Engineering',
    'ME': 'Mechanical Engineering',

    'Civil Engineering': 'Civil Engineering',
    'Civil': 'Civil Engineering',
    'CE': 'Civil Engineering',

    'Electrical Engineering': 'Electrical Engineering',
    'Electrical': 'Electrical Engineering',
    'EE': 'Electrical Engineering',

    'Electronics & Computer Engineering': 'Electronics & Computer Engineering',
    'Electronics and Computer Engineering': 'Electronics & Computer Engineering',
    'Electronics & Computer': 'Electronics & Computer Engineering',
    'Electronics and Computer': 'Electronics & Computer Engineering',
    'ECE': 'Electronics & Computer Engineering',
    'ENC': 'Electronics & Computer Engineering',

    'Artificial Intelligence & Machine Learning': 'Artificial Intelligence & Machine Learning',
    'Artificial Intelligence and Machine Learning': 'Artificial Intelligence & Machine Learning',
    'AIML': 'Artificial Intelligence & Machine Learning',
    'AI & ML': 'Artificial Intelligence & Machine Learning',
    'AI ML': 'Artificial Intelligence & Machine Learning',
}

_ALIASES_BY_LOWER = {alias.lower(): canonical for alias, canonical in DEPARTMENT_ALIASES.items()}


def normalize_department(department):
    """
    Map a free-text department name to its canonical form.

    Exact alias matches win, then case-insensitive ones. Unknown names are
    returned trimmed, so new departments pass through unchanged.
    """
    if department is None:
        return None
    trimmed = str(department).strip()
    if not trimmed:
        return None

    if trimmed in DEPARTMENT_ALIASES:
        return DEPARTMENT_ALIASES[trimmed]

    return _ALIASES_BY_LOWER.get(trimmed.lower(), trimmed)


def all_departments():
    """Canonical department names in display order."""
    seen = []
    for canonical in DEPARTMENT_ALIASES.values():
        if canonical not in seen:
            seen.append(canonical)
    return seen


def grade_from_score(score):
    """Map an average rating to its grade label. Non-numeric input counts as 0."""
    try:
        value = float(score)
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value):
        value = 0.0

    for threshold, label in GRADE_BANDS:
        if value >= threshold:
            return label
    return LOWEST_GRADE


def parse_flag(value):
    """Interpret a JSON/form boolean toggle (True, 1, "1", "true")."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return False


def parse_int(value, field):
    """Convert a request value to int, raising ValidationError naming the field."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
