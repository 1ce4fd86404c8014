import pytest

from app import create_app
from feedback_app.models import database
from feedback_app.models.faculty import Faculty
from feedback_app.models.question import Question
from feedback_app.models.student import Student
from feedback_app.models.subject import Subject


@pytest.fixture
def flask_app(tmp_path, monkeypatch):
    """App bound to a fresh SQLite file; model calls outside a request use it too."""
    db_path = str(tmp_path / "feedback.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)

    application = create_app({
        "TESTING": True,
        "DATABASE_PATH": db_path,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "SECRET_KEY": "test-secret",
        "ADMIN_USERNAME": "admin",
        "ADMIN_PASSWORD": "admin",
    })
    return application


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture
def admin_client(flask_app):
    c = flask_app.test_client()
    response = c.post("/auth/admin-login", json={"username": "admin", "password": "admin"})
    assert response.status_code == 200
    return c


@pytest.fixture
def cohort(flask_app):
    """One faculty member teaching one subject to one registered student (CSE, sem 3, div A)."""
    faculty_id = Faculty.add("Dr. Meera Kulkarni", "meera@example.com", "CSE")
    subject_id = Subject.add("CS301", "Data Structures", "Computer Science", 3, ["A"])[0]
    Subject.assign_faculty(subject_id, faculty_id)
    student_id = Student.register(
        "Asha Patil", "CSE2401", "asha@example.com", "cse", 3, "A", "secret"
    )
    return {"faculty_id": faculty_id, "subject_id": subject_id, "student_id": student_id}


def add_student(roll_no, division="A", department="CSE", semester=3):
    return Student.register(
        f"Student {roll_no}", roll_no, f"{roll_no.lower()}@example.com",
        department, semester, division, "secret"
    )


def ratings_for_all(rating):
    return [{"questionId": q["id"], "rating": rating} for q in Question.active()]


def table_count(table):
    with database.get_db() as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
