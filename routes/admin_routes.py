from flask import Blueprint, current_app, request, jsonify, send_file
from werkzeug.utils import secure_filename
import os
import logging

from feedback_app.errors import ValidationError
from feedback_app.models.faculty import Faculty
from feedback_app.models.feedback_control import FeedbackWindow, Restriction
from feedback_app.models.student import Student
from feedback_app.models.subject import Subject, Division
from feedback_app.services.csv_export import division_report_csv, subject_report_csv
from feedback_app.services.excel_service import import_students, import_summary, write_sample_workbook
from feedback_app.services.report_service import (
    build_subject_report, division_rollup, pending_submissions
)
from report_generator import (
    generate_division_report, generate_pending_report, generate_subject_report
)
from routes.common import (
    admin_required, optional_text, request_data, require_fields, require_text, send_csv, send_pdf
)
from utils import parse_flag, parse_int

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def allowed_file(filename):
    """Check if file has an allowed extension."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']


# faculty

@admin_bp.route('/add-faculty', methods=['POST'])
@admin_required
def add_faculty():
    name, email, department = require_text(request_data(), 'name', 'email', 'department')
    faculty_id = Faculty.add(name, email.lower(), department)
    logger.info(f"Faculty {name} added")
    return jsonify({
        'success': True,
        'message': 'Faculty added successfully',
        'facultyId': faculty_id
    }), 201


@admin_bp.route('/update-faculty', methods=['POST'])
@admin_required
def update_faculty():
    data = request_data()
    faculty_id, = require_fields(data, 'facultyId')
    name, email, department = require_text(data, 'name', 'email', 'department')
    Faculty.update(parse_int(faculty_id, 'facultyId'), name, email.lower(), department)
    return jsonify({'success': True, 'message': 'Faculty updated successfully'})


@admin_bp.route('/delete-faculty', methods=['POST'])
@admin_required
def delete_faculty():
    faculty_id, = require_fields(request_data(), 'facultyId')
    Faculty.delete(parse_int(faculty_id, 'facultyId'))
    return jsonify({'success': True, 'message': 'Faculty deleted successfully'})


@admin_bp.route('/faculty-list', methods=['GET'])
@admin_required
def faculty_list():
    return jsonify({'success': True, 'faculty': Faculty.get_all()})


@admin_bp.route('/set-faculty-password', methods=['POST'])
@admin_required
def set_faculty_password():
    data = request_data()
    faculty_id, = require_fields(data, 'facultyId')
    password, = require_text(data, 'password')
    Faculty.set_password(parse_int(faculty_id, 'facultyId'), password)
    return jsonify({'success': True, 'message': 'Faculty password updated'})


# students

@admin_bp.route('/student-list', methods=['GET'])
@admin_required
def student_list():
    students = Student.get_all()
    return jsonify({'success': True, 'students': students, 'count': len(students)})


@admin_bp.route('/update-student', methods=['POST'])
@admin_required
def update_student():
    data = request_data()
    student_id, semester = require_fields(data, 'studentId', 'semester')
    name, email, department = require_text(data, 'name', 'email', 'department')
    Student.update(
        parse_int(student_id, 'studentId'), name, email.lower(), department,
        parse_int(semester, 'semester'), optional_text(data, 'division')
    )
    return jsonify({'success': True, 'message': 'Student updated successfully'})


@admin_bp.route('/delete-student', methods=['POST'])
@admin_required
def delete_student():
    student_id, = require_fields(request_data(), 'studentId')
    Student.delete(parse_int(student_id, 'studentId'))
    return jsonify({'success': True, 'message': 'Student deleted successfully'})


@admin_bp.route('/set-student-password', methods=['POST'])
@admin_required
def set_student_password():
    data = request_data()
    student_id, = require_fields(data, 'studentId')
    password, = require_text(data, 'password')
    Student.set_password(parse_int(student_id, 'studentId'), password)
    return jsonify({'success': True, 'message': 'Student password updated'})


@admin_bp.route('/students/upload', methods=['POST'])
@admin_required
def upload_students_excel():
    """Upload students via Excel file."""
    if 'file' not in request.files:
        raise ValidationError('No file uploaded')

    file = request.files['file']
    if file.filename == '':
        raise ValidationError('No file selected')

    if not allowed_file(file.filename):
        raise ValidationError('Invalid file type. Please upload an Excel file (.xlsx or .xls)')

    # Check file size
    file.seek(0, os.SEEK_END)
    file_size = file.tell()
    file.seek(0)

    max_size = current_app.config['MAX_FILE_SIZE']
    if file_size > max_size:
        raise ValidationError(f'File too large. Maximum size is {max_size / (1024*1024):.0f}MB')

    upload_folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(upload_folder, exist_ok=True)
    filepath = os.path.join(upload_folder, secure_filename(file.filename))
    file.save(filepath)

    try:
        stats = import_students(filepath)
    finally:
        try:
            os.remove(filepath)
        except OSError as e:
            logger.warning(f"Could not remove uploaded file {filepath}: {e}")

    return jsonify({
        'success': stats['added'] > 0,
        'message': import_summary(stats),
        'stats': stats
    })


@admin_bp.route('/students/download-sample', methods=['GET'])
@admin_required
def download_sample():
    """Download a sample Excel file."""
    upload_folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(upload_folder, exist_ok=True)
    sample_path = os.path.abspath(os.path.join(upload_folder, 'sample_students.xlsx'))
    write_sample_workbook(sample_path)
    return send_file(sample_path, as_attachment=True, download_name='sample_students.xlsx')


# divisions, subjects

@admin_bp.route('/divisions/<department>/<int:semester>', methods=['GET'])
@admin_required
def divisions(department, semester):
    return jsonify({'success': True, 'divisions': Division.list_for(department, semester)})


@admin_bp.route('/add-division', methods=['POST'])
@admin_required
def add_division():
    data = request_data()
    department, division = require_text(data, 'department', 'division')
    semester, = require_fields(data, 'semester')
    Division.add(department, parse_int(semester, 'semester'), division)
    return jsonify({'success': True, 'message': 'Division added successfully'}), 201


@admin_bp.route('/departments', methods=['GET'])
@admin_required
def departments():
    return jsonify({'success': True, 'departments': Subject.departments()})


@admin_bp.route('/add-subject', methods=['POST'])
@admin_required
def add_subject():
    data = request_data()
    if 'semesterId' not in data and 'semester' in data:
        data['semesterId'] = data['semester']
    code, title, department = require_text(data, 'code', 'title', 'department')
    semester, division = require_fields(data, 'semesterId', 'division')

    if isinstance(division, list):
        division_list = [str(d).strip() for d in division if str(d).strip()]
    else:
        division_list = [d.strip() for d in str(division).split(',') if d.strip()]
    if not division_list:
        raise ValidationError("At least one division is required")

    subject_ids = Subject.add(code, title, department, parse_int(semester, 'semester'), division_list)
    return jsonify({
        'success': True,
        'message': f'Subject added for {len(subject_ids)} division(s)',
        'subjectIds': subject_ids
    }), 201


@admin_bp.route('/subject-list', methods=['GET'])
@admin_required
def subject_list():
    return jsonify({'success': True, 'subjects': Subject.get_all()})


@admin_bp.route('/assign-faculty', methods=['POST'])
@admin_required
def assign_faculty():
    data = request_data()
    subject_id, faculty_id = require_fields(data, 'subjectId', 'facultyId')
    Subject.assign_faculty(
        parse_int(subject_id, 'subjectId'), parse_int(faculty_id, 'facultyId'),
        optional_text(data, 'division') or None
    )
    return jsonify({'success': True, 'message': 'Faculty assigned successfully'})


@admin_bp.route('/unassign-faculty', methods=['POST'])
@admin_required
def unassign_faculty():
    subject_id, = require_fields(request_data(), 'subjectId')
    Subject.unassign_faculty(parse_int(subject_id, 'subjectId'))
    return jsonify({'success': True, 'message': 'Faculty unassigned successfully'})


# feedback control

@admin_bp.route('/feedback-control', methods=['GET'])
@admin_required
def get_feedback_control():
    return jsonify({'success': True, 'isOpen': FeedbackWindow.is_open()})


@admin_bp.route('/feedback-control', methods=['POST'])
@admin_required
def set_feedback_control():
    is_open = FeedbackWindow.set_open(parse_flag(request_data().get('isOpen')))
    logger.info(f"Feedback window {'opened' if is_open else 'closed'}")
    return jsonify({
        'success': True,
        'isOpen': is_open,
        'message': 'Feedback is now open' if is_open else 'Feedback is now closed'
    })


@admin_bp.route('/student-feedback-restriction', methods=['POST'])
@admin_required
def student_feedback_restriction():
    data = request_data()
    student_id, = require_fields(data, 'studentId')
    restricted, reason = Restriction.set(
        parse_int(student_id, 'studentId'),
        parse_flag(data.get('isRestricted')),
        optional_text(data, 'reason')
    )
    return jsonify({
        'success': True,
        'isRestricted': restricted,
        'reason': reason,
        'message': 'Student restricted from feedback' if restricted else 'Student restriction removed'
    })


# reports

@admin_bp.route('/feedback-summary/<int:subject_id>', methods=['GET'])
@admin_required
def feedback_summary(subject_id):
    report = build_subject_report(subject_id)
    return jsonify({
        'success': True,
        'subject': report['subject'],
        'questions': report['questions'],
        'overall': report['overall'],
        'grade': report['grade'],
        'comments': report['comments']
    })


@admin_bp.route('/summary/pdf/<int:subject_id>', methods=['GET'])
@admin_required
def summary_pdf(subject_id):
    report = build_subject_report(subject_id)
    return send_pdf(generate_subject_report(report), f'summary_{subject_id}.pdf')


@admin_bp.route('/summary/csv/<int:subject_id>', methods=['GET'])
@admin_required
def summary_csv(subject_id):
    report = build_subject_report(subject_id)
    return send_csv(subject_report_csv(report), f'summary_{subject_id}.csv')


def _division_filters():
    semester = (request.args.get('sem') or '').strip()
    return (
        request.args.get('dept', ''),
        parse_int(semester, 'sem') if semester else None,
        request.args.get('div', ''),
    )


@admin_bp.route('/summary/division/pdf', methods=['GET'])
@admin_required
def division_pdf():
    rollup = division_rollup(*_division_filters())
    return send_pdf(generate_division_report(rollup), 'division_consolidation_report.pdf')


@admin_bp.route('/summary/division/csv', methods=['GET'])
@admin_required
def division_csv():
    rollup = division_rollup(*_division_filters())
    return send_csv(division_report_csv(rollup), 'division_consolidation_report.csv')


@admin_bp.route('/pending/<int:subject_id>', methods=['GET'])
@admin_required
def pending(subject_id):
    result = pending_submissions(subject_id)
    return jsonify({
        'success': True,
        'subject': result['subject'],
        'total': result['total'],
        'submitted': result['submitted'],
        'pending': result['pending']
    })


@admin_bp.route('/pending/pdf/<int:subject_id>', methods=['GET'])
@admin_required
def pending_pdf(subject_id):
    result = pending_submissions(subject_id)
    return send_pdf(generate_pending_report(result), f'not_submitted_{subject_id}.pdf')
