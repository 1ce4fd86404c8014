import logging

from flask import Blueprint, jsonify

from feedback_app.errors import NotFoundError
from feedback_app.models.feedback_control import FeedbackWindow, Restriction
from feedback_app.models.question import Question
from feedback_app.models.student import Student
from feedback_app.models.subject import Subject
from feedback_app.services.submission_service import submit_feedback as store_feedback
from routes.common import ensure_student, request_data, require_fields, require_text
from utils import parse_int

logger = logging.getLogger(__name__)

student_bp = Blueprint('student', __name__, url_prefix='/student')


@student_bp.route('/subjects/<int:student_id>', methods=['GET'])
def student_subjects(student_id):
    """Subjects of the student's cohort, with the feedback window and restriction state."""
    ensure_student(student_id)
    student = Student.get(student_id)
    if not student:
        raise NotFoundError("Student not found")

    restricted, reason = Restriction.get(student_id)
    return jsonify({
        'success': True,
        'subjects': Subject.for_student(student),
        'feedbackOpen': FeedbackWindow.is_open(),
        'restricted': restricted,
        'restrictionReason': reason
    })


@student_bp.route('/questions', methods=['GET'])
def questions():
    return jsonify({'success': True, 'questions': Question.active()})


@student_bp.route('/submit-feedback', methods=['POST'])
def submit_feedback():
    data = request_data()
    student_id, subject_id = require_fields(data, 'studentId', 'subjectId')
    student_id = parse_int(student_id, 'studentId')
    ensure_student(student_id)

    count = store_feedback(
        student_id,
        parse_int(subject_id, 'subjectId'),
        data.get('responses'),
        data.get('comment')
    )
    return jsonify({
        'success': True,
        'message': 'Feedback submitted successfully. Thank you!',
        'ratings': count
    }), 201


@student_bp.route('/change-password', methods=['POST'])
def change_password():
    data = request_data()
    student_id, = require_fields(data, 'studentId')
    old_password, new_password = require_text(data, 'oldPassword', 'newPassword')
    student_id = parse_int(student_id, 'studentId')
    ensure_student(student_id)

    Student.change_password(student_id, old_password, new_password)
    return jsonify({'success': True, 'message': 'Password updated successfully'})
