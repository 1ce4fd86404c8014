import logging

from flask import Blueprint, jsonify

from config import COMMENT_SUMMARY_LIMIT
from feedback_app.models.faculty import Faculty
from feedback_app.models.subject import Subject
from feedback_app.services.csv_export import subject_report_csv
from feedback_app.services.report_service import (
    build_subject_report, overall_average, subject_comments, subject_summary
)
from report_generator import generate_subject_report
from routes.common import ensure_faculty, request_data, require_fields, require_text, send_csv, send_pdf
from utils import grade_from_score, parse_int

logger = logging.getLogger(__name__)

faculty_bp = Blueprint('faculty', __name__, url_prefix='/faculty')


def _owned_subject(faculty_id, subject_id):
    ensure_faculty(faculty_id)
    return Subject.get_owned(subject_id, faculty_id)


@faculty_bp.route('/subjects/<int:faculty_id>', methods=['GET'])
def faculty_subjects(faculty_id):
    ensure_faculty(faculty_id)
    return jsonify({'success': True, 'subjects': Subject.for_faculty(faculty_id)})


@faculty_bp.route('/summary/<int:faculty_id>/<int:subject_id>', methods=['GET'])
def summary(faculty_id, subject_id):
    subject = _owned_subject(faculty_id, subject_id)
    questions = subject_summary(subject_id)
    overall = overall_average(questions)
    return jsonify({
        'success': True,
        'subject': subject,
        'questions': questions,
        'overall': overall,
        'grade': grade_from_score(overall)
    })


@faculty_bp.route('/comments/<int:faculty_id>/<int:subject_id>', methods=['GET'])
def comments(faculty_id, subject_id):
    _owned_subject(faculty_id, subject_id)
    return jsonify({
        'success': True,
        'comments': subject_comments(subject_id, COMMENT_SUMMARY_LIMIT)
    })


@faculty_bp.route('/summary/pdf/<int:faculty_id>/<int:subject_id>', methods=['GET'])
def summary_pdf(faculty_id, subject_id):
    _owned_subject(faculty_id, subject_id)
    report = build_subject_report(subject_id)
    return send_pdf(generate_subject_report(report), f'summary_{subject_id}.pdf')


@faculty_bp.route('/summary/csv/<int:faculty_id>/<int:subject_id>', methods=['GET'])
def summary_csv(faculty_id, subject_id):
    _owned_subject(faculty_id, subject_id)
    report = build_subject_report(subject_id)
    return send_csv(subject_report_csv(report), f'summary_{subject_id}.csv')


@faculty_bp.route('/change-password', methods=['POST'])
def change_password():
    data = request_data()
    faculty_id, = require_fields(data, 'facultyId')
    old_password, new_password = require_text(data, 'oldPassword', 'newPassword')
    faculty_id = parse_int(faculty_id, 'facultyId')
    ensure_faculty(faculty_id)

    Faculty.change_password(faculty_id, old_password, new_password)
    return jsonify({'success': True, 'message': 'Password updated successfully'})
