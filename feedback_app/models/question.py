from .database import get_db


class Question:
    @staticmethod
    def active(conn=None):
        """Active questions in display order."""
        if conn is not None:
            return Question._fetch_active(conn)
        with get_db() as conn:
            return Question._fetch_active(conn)

    @staticmethod
    def _fetch_active(conn):
        cursor = conn.execute(
            'SELECT id, text FROM questions WHERE active = 1 ORDER BY sequence'
        )
        return [{'id': row['id'], 'text': row['text']} for row in cursor.fetchall()]
