import pandas as pd
import pytest

from feedback_app.errors import ValidationError
from feedback_app.models.student import Student
from feedback_app.services.excel_service import (
    import_students, import_summary, read_student_sheet, write_sample_workbook
)

from conftest import table_count


def _write_sheet(path, rows):
    pd.DataFrame(rows).to_excel(path, index=False)
    return str(path)


def test_sample_workbook_imports_cleanly(flask_app, tmp_path):
    path = write_sample_workbook(str(tmp_path / "sample.xlsx"))

    stats = import_students(path)

    assert (stats["total"], stats["added"], stats["duplicates"]) == (3, 3, 0)
    assert import_summary(stats) == "Successfully added 3 students."


def test_import_normalizes_and_skips_duplicates(flask_app, tmp_path):
    path = _write_sheet(tmp_path / "students.xlsx", {
        "Name": ["Kiran Pawar", "Kiran Again"],
        "Roll No": ["ME2301", "ME2301"],
        "Email": [" Kiran@Example.com ", "kiran@example.com"],
        "Department": ["mechanical", "ME"],
        "Semester": [5, 5],
        "Division": ["A", "A"],
    })

    stats = import_students(path)

    assert (stats["added"], stats["duplicates"]) == (1, 1)
    assert stats["duplicate_list"] == ["kiran@example.com"]
    assert import_summary(stats) == "Successfully added 1 students. 1 duplicates were skipped."

    student = Student.authenticate("kiran@example.com", "12345")
    assert student["department"] == "Mechanical Engineering"
    assert student["semester"] == 5


def test_all_duplicates_summary():
    assert import_summary({"added": 0, "duplicates": 4}) == \
        "No new students added. All 4 records were duplicates."


def test_missing_columns_reported(flask_app, tmp_path):
    path = _write_sheet(tmp_path / "bad.xlsx", {"name": ["X"], "email": ["x@example.com"]})

    with pytest.raises(ValidationError, match="Missing required columns: roll_no"):
        import_students(path)
    assert table_count("students") == 0


def test_blank_cells_rejected(tmp_path):
    path = _write_sheet(tmp_path / "blank.xlsx", {
        "name": ["X", "Y"], "roll_no": ["1", "2"], "email": ["x@example.com", None],
        "department": ["CSE", "CSE"], "semester": [3, 3], "division": ["A", "A"],
    })
    with pytest.raises(ValidationError, match="empty values"):
        read_student_sheet(path)


def test_non_numeric_semester_rejected(tmp_path):
    path = _write_sheet(tmp_path / "sem.xlsx", {
        "name": ["X"], "roll_no": ["1"], "email": ["x@example.com"],
        "department": ["CSE"], "semester": ["third"], "division": ["A"],
    })

    with pytest.raises(ValidationError, match="Semester"):
        read_student_sheet(path)


def test_unreadable_file(tmp_path):
    path = tmp_path / "notes.xlsx"
    path.write_text("not a spreadsheet")

    with pytest.raises(ValidationError, match="Error reading Excel file"):
        read_student_sheet(str(path))


def test_upload_route(admin_client, tmp_path):
    path = write_sample_workbook(str(tmp_path / "upload.xlsx"))

    with open(path, "rb") as fh:
        response = admin_client.post(
            "/admin/students/upload",
            data={"file": (fh, "students.xlsx")},
            content_type="multipart/form-data",
        )

    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["stats"]["added"] == 3


def test_upload_rejects_other_extensions(admin_client, tmp_path):
    path = tmp_path / "students.csv"
    path.write_text("name,email\n")

    with open(path, "rb") as fh:
        response = admin_client.post(
            "/admin/students/upload",
            data={"file": (fh, "students.csv")},
            content_type="multipart/form-data",
        )

    assert response.status_code == 400
    assert "Invalid file type" in response.get_json()["message"]


def test_upload_without_file(admin_client):
    response = admin_client.post("/admin/students/upload", data={}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert response.get_json()["message"] == "No file uploaded"


def test_sample_download(admin_client):
    response = admin_client.get("/admin/students/download-sample")
    assert response.status_code == 200
    assert "sample_students.xlsx" in response.headers["Content-Disposition"]
    response.close()
