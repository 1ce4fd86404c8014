import hmac
import logging

from flask import Blueprint, current_app, jsonify, session

from feedback_app.errors import AuthenticationError
from feedback_app.models.faculty import Faculty
from feedback_app.models.student import Student
from routes.common import optional_text, request_data, require_fields, require_text
from utils import parse_int

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request_data()
    if 'rollno' not in data and 'roll_no' in data:
        data['rollno'] = data['roll_no']
    name, email, password, department = require_text(
        data, 'name', 'email', 'password', 'department'
    )
    roll_no, semester = require_fields(data, 'rollno', 'semester')
    division = optional_text(data, 'division')

    student_id = Student.register(
        name, str(roll_no), email.lower(), department, parse_int(semester, 'semester'),
        division, password
    )
    return jsonify({
        'success': True,
        'message': 'Registration successful',
        'studentId': student_id
    }), 201


@auth_bp.route('/student-login', methods=['POST'])
def student_login():
    email, password = require_text(request_data(), 'email', 'password')
    student = Student.authenticate(email.lower(), password)

    session.clear()
    session['student_id'] = student['id']
    logger.info(f"Student {student['roll_no']} logged in")
    return jsonify({
        'success': True,
        'studentId': student['id'],
        'name': student['name']
    })


@auth_bp.route('/faculty-login', methods=['POST'])
def faculty_login():
    email, password = require_text(request_data(), 'email', 'password')
    faculty = Faculty.authenticate(email.lower(), password)

    session.clear()
    session['faculty_id'] = faculty['id']
    logger.info(f"Faculty {faculty['id']} logged in")
    return jsonify({
        'success': True,
        'facultyId': faculty['id'],
        'name': faculty['name']
    })


@auth_bp.route('/admin-login', methods=['POST'])
def admin_login():
    username, password = require_text(request_data(), 'username', 'password')
    valid_user = hmac.compare_digest(username.encode(), current_app.config['ADMIN_USERNAME'].encode())
    valid_password = hmac.compare_digest(password.encode(), current_app.config['ADMIN_PASSWORD'].encode())
    if not (valid_user and valid_password):
        logger.warning("Failed admin login attempt")
        raise AuthenticationError("Incorrect credentials.")

    session.clear()
    session['is_admin'] = True
    return jsonify({'success': True, 'message': 'Admin logged in'})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True, 'message': 'Logged out'})
