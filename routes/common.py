"""
Helpers shared by the blueprints: request payloads, session guards and
report attachments.
"""
import io
from functools import wraps

from flask import request, session, send_file

from feedback_app.errors import AuthenticationError, AuthorizationError, ValidationError


def request_data():
    """JSON body if one was sent, otherwise the submitted form."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def require_fields(data, *fields):
    """Return the named values, raising ValidationError if any is blank."""
    values = []
    for field in fields:
        value = data.get(field)
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == '':
            raise ValidationError("Please fill all required fields")
        values.append(value)
    return values


def require_text(data, *fields):
    """Like require_fields, but every value must be a string."""
    for field in fields:
        if data.get(field) is not None and not isinstance(data.get(field), str):
            raise ValidationError(f"{field} must be text")
    return require_fields(data, *fields)


def optional_text(data, field):
    """Trimmed string value of an optional field, '' when absent."""
    value = data.get(field)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be text")
    return value.strip()


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not session.get('is_admin'):
            raise AuthenticationError("Admin login required")
        return fn(*args, **kwargs)

    return wrapper


def ensure_student(student_id):
    """The logged-in student may only act as themselves."""
    current = session.get('student_id')
    if current is None:
        raise AuthenticationError("Student login required")
    if current != student_id:
        raise AuthorizationError()


def ensure_faculty(faculty_id):
    current = session.get('faculty_id')
    if current is None:
        raise AuthenticationError("Faculty login required")
    if current != faculty_id:
        raise AuthorizationError()


def send_pdf(content, filename):
    return send_file(io.BytesIO(content), mimetype='application/pdf',
                     as_attachment=True, download_name=filename)


def send_csv(text, filename):
    return send_file(io.BytesIO(text.encode('utf-8')), mimetype='text/csv',
                     as_attachment=True, download_name=filename)
