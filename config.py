import os

# Database configuration
DATABASE_PATH = os.environ.get(
    'FEEDBACK_DB_PATH',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'feedback.db'),
)

# Server configuration
SECRET_KEY = os.environ.get('SECRET_KEY', 'your_secret_key_change_in_production')
HOST = os.environ.get('HOST', '0.0.0.0')
PORT = int(os.environ.get('PORT', '3000'))

# Admin credentials (single administrator account)
ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'admin')
ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'admin')

# Password handed out when an admin creates faculty or imports students
DEFAULT_PASSWORD = os.environ.get('DEFAULT_PASSWORD', '12345')

# Upload configuration
UPLOAD_FOLDER = 'uploads'
ALLOWED_EXTENSIONS = {'xlsx', 'xls'}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

# Rating scale
RATING_MIN = 1
RATING_MAX = 5

# Number of comments shown on summary reports
COMMENT_SUMMARY_LIMIT = 100

# Grade bands, checked top to bottom; anything below the last band is POOR
GRADE_BANDS = [
    (4.5, 'EXCELLENT'),
    (3.5, 'VERY GOOD'),
    (2.5, 'GOOD'),
    (1.5, 'AVERAGE'),
]
LOWEST_GRADE = 'POOR'

# Report branding
INSTITUTE_NAME = "SANJEEVAN GROUP OF INSTITUTIONS, PANHALA"
INSTITUTE_SUBTITLES = [
    "Approved by AICTE, New Delhi | Recognized by Govt. of Maharashtra | Affiliated to Shivaji University, Kolhapur",
    "Affiliated to MSBTE | Permanent Affiliation by Dr. Babasaheb Ambedkar Technological University, Raigad",
]
SIGNATURE_ROLES = ["Faculty", "Principal", "HOD"]

# Feedback questions seeded by the initial migration
FEEDBACK_QUESTIONS = [
    "How is the faculty's approach?",
    "How has the faculty prepared for the classes?",
    "Does the faculty inform you about your expected competencies, course outcomes?",
    "How often does the faculty illustrate the concepts through examples and practical applications?",
    "Whether faculty covers syllabus in time?",
    "Do you agree that the faculty teaches content beyond syllabus?",
    "How does the faculty communicate?",
    "Whether faculty returns answer scripts in time and produces helpful comments?",
    "How does the faculty identify your strengths and encourage you with high level of challenges?",
    "How does the faculty counsel & encourage the students?"
]
