import pytest

from config import FEEDBACK_QUESTIONS
from feedback_app.errors import ConflictError
from feedback_app.models.database import MIGRATIONS, get_db, get_schema_version, init_db
from feedback_app.models.feedback_control import FeedbackWindow

from conftest import table_count


def test_migrations_reach_current_version(flask_app):
    with get_db() as conn:
        assert get_schema_version(conn) == len(MIGRATIONS)


def test_init_db_is_idempotent(flask_app):
    init_db()
    init_db()

    with get_db() as conn:
        assert get_schema_version(conn) == len(MIGRATIONS)
        control_rows = conn.execute("SELECT COUNT(*) FROM feedback_control").fetchone()[0]
    assert table_count("questions") == len(FEEDBACK_QUESTIONS)
    assert control_rows == 1


def test_window_starts_open(flask_app):
    assert FeedbackWindow.is_open() is True


def test_window_toggle_keeps_single_row(flask_app):
    assert FeedbackWindow.set_open(False) is False
    assert FeedbackWindow.is_open() is False
    FeedbackWindow.set_open(True)
    assert FeedbackWindow.is_open() is True
    assert table_count("feedback_control") == 1


def test_get_db_rolls_back_on_error(flask_app):
    with pytest.raises(RuntimeError):
        with get_db() as conn:
            conn.execute(
                "INSERT INTO divisions (department, semester, name) VALUES ('CSE', 3, 'A')"
            )
            raise RuntimeError("boom")

    assert table_count("divisions") == 0


def test_integrity_error_becomes_conflict(flask_app):
    with get_db() as conn:
        conn.execute("INSERT INTO divisions (department, semester, name) VALUES ('CSE', 3, 'A')")

    with pytest.raises(ConflictError):
        with get_db() as conn:
            conn.execute("INSERT INTO divisions (department, semester, name) VALUES ('CSE', 3, 'B')")
            conn.execute("INSERT INTO divisions (department, semester, name) VALUES ('CSE', 3, 'A')")

    # the first statement of the failed block is rolled back too
    assert table_count("divisions") == 1


def test_rating_check_constraint(flask_app):
    with pytest.raises(ConflictError):
        with get_db() as conn:
            conn.execute("INSERT INTO subjects (code, title, department, semester, division) "
                         "VALUES ('X1', 'X', 'CSE', 1, 'A')")
            conn.execute("INSERT INTO feedback_responses (subject_id, question_id, rating) "
                         "VALUES (1, 1, 9)")
