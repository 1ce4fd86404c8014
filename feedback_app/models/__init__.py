from .database import init_db, get_db, get_db_path
from .student import Student
from .faculty import Faculty
from .subject import Subject, Division
from .question import Question
from .feedback_control import FeedbackWindow, Restriction

__all__ = ['init_db', 'get_db', 'get_db_path', 'Student', 'Faculty', 'Subject',
           'Division', 'Question', 'FeedbackWindow', 'Restriction']
