import threading

import pytest

from feedback_app.errors import ConflictError, NotFoundError, SubmissionRejected, ValidationError
from feedback_app.models.database import get_db
from feedback_app.models.feedback_control import FeedbackWindow, Restriction
from feedback_app.services.submission_service import parse_responses, submit_feedback

from conftest import ratings_for_all, table_count

FEEDBACK_TABLES = ("feedback_responses", "feedback_comments", "submission_status")


def _snapshot():
    return {table: table_count(table) for table in FEEDBACK_TABLES}


def test_submission_stores_ratings_comment_and_status(cohort):
    ratings = ratings_for_all(4)
    stored = submit_feedback(cohort["student_id"], cohort["subject_id"], ratings, "  Clear examples  ")

    assert stored == len(ratings)
    assert table_count("feedback_responses") == len(ratings)
    with get_db() as conn:
        comment = conn.execute("SELECT comment, division FROM feedback_comments").fetchone()
        status = conn.execute(
            "SELECT submitted FROM submission_status WHERE student_id = ? AND subject_id = ?",
            (cohort["student_id"], cohort["subject_id"])
        ).fetchone()
    assert (comment["comment"], comment["division"]) == ("Clear examples", "A")
    assert status["submitted"] == 1


def test_blank_comment_is_not_stored(cohort):
    submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(3), "   ")
    assert table_count("feedback_comments") == 0


def test_second_submission_is_rejected_without_writes(cohort):
    submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(5), "first")
    before = _snapshot()

    with pytest.raises(ConflictError, match="Feedback already submitted"):
        submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(1), "second")

    assert _snapshot() == before


def test_closed_window_rejects_before_writing(cohort):
    FeedbackWindow.set_open(False)

    with pytest.raises(SubmissionRejected, match="Feedback window is currently closed by admin."):
        submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(4))

    assert all(count == 0 for count in _snapshot().values())


def test_reopened_window_accepts(cohort):
    FeedbackWindow.set_open(False)
    FeedbackWindow.set_open(True)
    assert submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(4)) > 0


def test_restricted_student_rejected_with_reason(cohort):
    Restriction.set(cohort["student_id"], True, "graduated")

    with pytest.raises(SubmissionRejected) as excinfo:
        submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(4), "hello")

    assert "graduated" in excinfo.value.message
    assert excinfo.value.status_code == 403
    assert all(count == 0 for count in _snapshot().values())


def test_restricted_student_without_reason(cohort):
    Restriction.set(cohort["student_id"], True)
    with pytest.raises(SubmissionRejected, match="Feedback access is restricted by admin."):
        submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(4))


def test_released_student_can_submit(cohort):
    Restriction.set(cohort["student_id"], True, "graduated")
    Restriction.set(cohort["student_id"], False)
    assert submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(2)) > 0


def test_closed_window_checked_before_restriction(cohort):
    FeedbackWindow.set_open(False)
    Restriction.set(cohort["student_id"], True, "graduated")
    with pytest.raises(SubmissionRejected, match="closed"):
        submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(4))


@pytest.mark.parametrize("rating", [0, 6, -1, 3.5, "abc", None, True])
def test_out_of_range_or_non_integer_ratings(cohort, rating):
    responses = ratings_for_all(4)
    responses[0]["rating"] = rating

    with pytest.raises(ValidationError):
        submit_feedback(cohort["student_id"], cohort["subject_id"], responses)
    assert all(count == 0 for count in _snapshot().values())


def test_duplicate_question_rejected(cohort):
    responses = ratings_for_all(4)
    responses.append(dict(responses[0]))
    with pytest.raises(ValidationError, match="more than once"):
        submit_feedback(cohort["student_id"], cohort["subject_id"], responses)


def test_unknown_question_rejected(cohort):
    with pytest.raises(ValidationError, match="question"):
        submit_feedback(cohort["student_id"], cohort["subject_id"], [{"questionId": 999, "rating": 4}])


def test_inactive_question_rejected(cohort):
    with get_db() as conn:
        conn.execute("UPDATE questions SET active = 0 WHERE sequence = 1")
        inactive_id = conn.execute("SELECT id FROM questions WHERE sequence = 1").fetchone()[0]

    with pytest.raises(ValidationError):
        submit_feedback(cohort["student_id"], cohort["subject_id"], [(inactive_id, 4)])


@pytest.mark.parametrize("responses", [[], None, "4,4,4"])
def test_missing_ratings(cohort, responses):
    with pytest.raises(ValidationError):
        submit_feedback(cohort["student_id"], cohort["subject_id"], responses)


def test_non_text_comment_rejected(cohort):
    with pytest.raises(ValidationError):
        submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(4), ["x"])


def test_unknown_student_or_subject(cohort):
    with pytest.raises(NotFoundError, match="Student"):
        submit_feedback(999, cohort["subject_id"], ratings_for_all(4))
    with pytest.raises(NotFoundError, match="Subject"):
        submit_feedback(cohort["student_id"], 999, ratings_for_all(4))


def test_parse_responses_accepts_pairs_and_mappings():
    assert parse_responses([(1, 5), {"question_id": "2", "rating": "3"}, {"questionId": 3, "rating": 4.0}]) == [
        (1, 5), (2, 3), (3, 4)
    ]


def test_concurrent_duplicate_submissions_store_once(cohort):
    ratings = ratings_for_all(4)
    workers = 4
    barrier = threading.Barrier(workers)
    results = []
    lock = threading.Lock()

    def submit():
        barrier.wait()
        try:
            submit_feedback(cohort["student_id"], cohort["subject_id"], ratings, "same time")
            outcome = "ok"
        except ConflictError:
            outcome = "conflict"
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=submit) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(results) == ["conflict"] * (workers - 1) + ["ok"]
    assert table_count("feedback_responses") == len(ratings)
    assert table_count("feedback_comments") == 1
    assert table_count("submission_status") == 1


@pytest.mark.parametrize("question_id", [1.9, "1.5", True])
def test_non_integral_question_id_rejected(question_id):
    with pytest.raises(ValidationError):
        parse_responses([{"questionId": question_id, "rating": 4}])


def test_integral_float_question_id_accepted():
    assert parse_responses([{"questionId": 2.0, "rating": 3}]) == [(2, 3)]
