import io

from report_generator import (
    MIN_ROW_HEIGHT, HEADER_ROW_HEIGHT, TABLE_BOTTOM_GAP, Column, ReportDocument,
    generate_division_report, generate_pending_report, generate_subject_report
)
from feedback_app.models.subject import Subject
from feedback_app.services.report_service import (
    build_subject_report, division_rollup, pending_submissions
)
from feedback_app.services.submission_service import submit_feedback

from conftest import add_student, ratings_for_all

LONG_TEXT = ("The faculty explains each concept with worked examples and relates it to "
             "laboratory practice, which makes the subject much easier to follow. ") * 3


def _columns(doc):
    return [
        Column("No", 36, "center"),
        Column("Question", doc.content_width - 36 - 88, "left", True),
        Column("Avg", 88, "center"),
    ]


def _document():
    return ReportDocument(io.BytesIO())


def test_short_row_uses_minimum_height():
    doc = _document()
    assert doc.row_height(_columns(doc), ["1", "Short question", "4.00"]) == MIN_ROW_HEIGHT


def test_wrapped_row_grows():
    doc = _document()
    height = doc.row_height(_columns(doc), ["1", LONG_TEXT, "4.00"])
    assert height > MIN_ROW_HEIGHT
    assert (height - 8) % 11 == 0


def test_table_spans_pages_with_header_on_each():
    doc = _document()
    rows = [[i, f"Question {i}", "3.00"] for i in range(120)]

    layout = doc.draw_table(_columns(doc), rows)

    assert layout.page_count > 1
    assert layout.header_pages == sorted(layout.pages)
    drawn = [index for page in sorted(layout.pages) for index in layout.pages[page]]
    assert drawn == list(range(120))


def test_rows_are_never_split():
    doc = _document()
    columns = _columns(doc)
    rows = [[i, LONG_TEXT if i % 3 == 0 else "Brief", "4.00"] for i in range(60)]

    layout = doc.draw_table(columns, rows)

    usable = doc.page_height - 2 * doc.margin - TABLE_BOTTOM_GAP - HEADER_ROW_HEIGHT
    for page, indices in layout.pages.items():
        cells = [[str(v) for v in rows[i]] for i in indices]
        assert sum(doc.row_height(columns, c) for c in cells) <= usable


def test_table_after_content_moves_to_new_page_when_no_room():
    doc = _document()
    doc.y = doc.margin + TABLE_BOTTOM_GAP + 10
    layout = doc.draw_table(_columns(doc), [[1, "Only row", "5.00"]])
    assert layout.header_pages == [2]
    assert layout.pages == {2: [0]}


def test_signature_footer_needs_room():
    doc = _document()
    assert doc.draw_signature_footer() == 1

    crowded = _document()
    crowded.y = crowded.margin + 60
    assert crowded.draw_signature_footer() == 2


def test_subject_pdf_renders(cohort):
    submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(4), 'He said "hi"')
    pdf = generate_subject_report(build_subject_report(cohort["subject_id"]))
    assert pdf.startswith(b"%PDF")


def test_subject_pdf_with_many_comments(cohort):
    report = build_subject_report(cohort["subject_id"])
    report["comments"] = [
        {"comment": LONG_TEXT, "division": "A", "submitted_at": "2026-01-01 10:00:00"}
        for _ in range(100)
    ]
    assert generate_subject_report(report).startswith(b"%PDF")


def test_division_pdf_renders_with_chart(cohort):
    Subject.add("CS302", "Operating Systems", "CSE", 3, ["A"])
    submit_feedback(cohort["student_id"], cohort["subject_id"], ratings_for_all(5))
    assert generate_division_report(division_rollup("CSE", 3, "A")).startswith(b"%PDF")


def test_empty_division_pdf(flask_app):
    assert generate_division_report(division_rollup("Nowhere")).startswith(b"%PDF")


def test_pending_pdf(cohort):
    add_student("CSE2402")
    assert generate_pending_report(pending_submissions(cohort["subject_id"])).startswith(b"%PDF")
