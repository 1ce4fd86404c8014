import sqlite3
import os
from contextlib import contextmanager
import logging

from flask import current_app, has_app_context

from config import DATABASE_PATH, FEEDBACK_QUESTIONS
from feedback_app.errors import ConflictError, StoreError

logger = logging.getLogger(__name__)


def get_db_path():
    """Get the database path and ensure the directory exists."""
    db_path = DATABASE_PATH
    if has_app_context():
        db_path = current_app.config.get('DATABASE_PATH', DATABASE_PATH)
    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)
    return db_path


@contextmanager
def get_db():
    """Context manager for database connections.

    Everything executed inside the block is one transaction: it commits when
    the block exits normally and rolls back on any exception.
    """
    conn = None
    try:
        conn = sqlite3.connect(get_db_path())
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        yield conn
        conn.commit()
    except sqlite3.IntegrityError as e:
        if conn:
            conn.rollback()
        logger.warning(f"Integrity error: {e}")
        raise ConflictError() from e
    except sqlite3.Error as e:
        if conn:
            conn.rollback()
        logger.error(f"Database error: {e}")
        raise StoreError() from e
    except Exception:
        if conn:
            conn.rollback()
        raise
    finally:
        if conn:
            conn.close()


def _create_core_tables(cursor):
    cursor.execute('''
        CREATE TABLE students (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            roll_no TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            department TEXT NOT NULL,
            semester INTEGER NOT NULL,
            division TEXT,
            password_hash TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('''
        CREATE INDEX idx_students_cohort
        ON students(department, semester, division)
    ''')

    cursor.execute('''
        CREATE TABLE faculty (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            department TEXT,
            password_hash TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE divisions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            department TEXT NOT NULL,
            semester INTEGER NOT NULL,
            name TEXT NOT NULL,
            UNIQUE(department, semester, name)
        )
    ''')

    cursor.execute('''
        CREATE TABLE subjects (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT NOT NULL,
            title TEXT NOT NULL,
            department TEXT NOT NULL,
            semester INTEGER NOT NULL,
            division TEXT NOT NULL,
            faculty_id INTEGER REFERENCES faculty(id),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('''
        CREATE INDEX idx_subjects_cohort
        ON subjects(department, semester, division)
    ''')

    cursor.execute('''
        CREATE TABLE enrollment (
            student_id INTEGER NOT NULL REFERENCES students(id),
            subject_id INTEGER NOT NULL REFERENCES subjects(id),
            PRIMARY KEY (student_id, subject_id)
        )
    ''')


def _create_feedback_tables(cursor):
    cursor.execute('''
        CREATE TABLE questions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            text TEXT NOT NULL,
            active INTEGER NOT NULL DEFAULT 1,
            sequence INTEGER NOT NULL
        )
    ''')
    cursor.executemany(
        'INSERT INTO questions (text, active, sequence) VALUES (?, 1, ?)',
        [(text, seq) for seq, text in enumerate(FEEDBACK_QUESTIONS, 1)]
    )

    cursor.execute('''
        CREATE TABLE feedback_responses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            subject_id INTEGER NOT NULL REFERENCES subjects(id),
            question_id INTEGER NOT NULL REFERENCES questions(id),
            rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('''
        CREATE INDEX idx_responses_subject_question
        ON feedback_responses(subject_id, question_id)
    ''')

    cursor.execute('''
        CREATE TABLE feedback_comments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            subject_id INTEGER NOT NULL REFERENCES subjects(id),
            student_id INTEGER REFERENCES students(id),
            division TEXT,
            comment TEXT NOT NULL,
            submitted_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE submission_status (
            student_id INTEGER NOT NULL REFERENCES students(id),
            subject_id INTEGER NOT NULL REFERENCES subjects(id),
            submitted INTEGER NOT NULL DEFAULT 1,
            submitted_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (student_id, subject_id)
        )
    ''')


def _create_control_tables(cursor):
    cursor.execute('''
        CREATE TABLE feedback_control (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            is_open INTEGER NOT NULL DEFAULT 1,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('INSERT INTO feedback_control (id, is_open) VALUES (1, 1)')

    cursor.execute('''
        CREATE TABLE feedback_restrictions (
            student_id INTEGER PRIMARY KEY REFERENCES students(id),
            is_restricted INTEGER NOT NULL DEFAULT 1,
            reason TEXT,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


# Applied in order; the schema version is the number of migrations applied.
MIGRATIONS = [
    _create_core_tables,
    _create_feedback_tables,
    _create_control_tables,
]


def get_schema_version(conn):
    return conn.execute('PRAGMA user_version').fetchone()[0]


def init_db():
    """Bring the database schema up to date by applying pending migrations."""
    with get_db() as conn:
        cursor = conn.cursor()
        version = get_schema_version(conn)

        for number, migration in enumerate(MIGRATIONS[version:], version + 1):
            logger.info(f"Applying migration {number}: {migration.__name__}")
            migration(cursor)
            # PRAGMA does not take bound parameters
            cursor.execute(f'PRAGMA user_version = {number:d}')

        if version == len(MIGRATIONS):
            logger.info("Database schema is up to date")
        else:
            logger.info(f"Database migrated from version {version} to {len(MIGRATIONS)}")
