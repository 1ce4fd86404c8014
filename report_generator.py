import io
import math
import logging
from collections import namedtuple
from datetime import datetime

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from config import INSTITUTE_NAME, INSTITUTE_SUBTITLES, SIGNATURE_ROLES, RATING_MAX

logger = logging.getLogger(__name__)

MARGIN = 40
HEADER_ROW_HEIGHT = 20
MIN_ROW_HEIGHT = 20
CELL_PADDING = 4
BODY_FONT_SIZE = 9
BODY_LEADING = 11
# Rows stop this far above the bottom margin
TABLE_BOTTOM_GAP = 40
# Space the signature block needs above the bottom margin
SIGNATURE_SPACE = 80
SIGNATURE_OFFSET = 55
CHART_HEIGHT = 180

HEADER_FILL = colors.HexColor("#ffe95a")
HEADER_STROKE = colors.HexColor("#333333")
ROW_STROKE = colors.HexColor("#d0d0d0")
TITLE_COLOR = colors.HexColor("#0b3b75")

Column = namedtuple('Column', ['label', 'width', 'align', 'wrap'])
Column.__new__.__defaults__ = ('left', False)


class TableLayout:
    """Where each row of a drawn table ended up."""

    def __init__(self):
        self.pages = {}          # page number -> row indices drawn on it
        self.header_pages = []   # pages on which the header row was drawn

    def record_row(self, page, index):
        self.pages.setdefault(page, []).append(index)

    @property
    def page_count(self):
        return len(self.pages)


class ReportDocument:
    """
    A PDF report drawn top to bottom on a reportlab canvas.

    `self.y` is the top of the free space on the current page, in reportlab
    coordinates (origin at the bottom left).
    """

    def __init__(self, buffer, generated_at=None, pagesize=letter, margin=MARGIN):
        self.canvas = canvas.Canvas(buffer, pagesize=pagesize)
        self.page_width, self.page_height = pagesize
        self.margin = margin
        self.generated_at = generated_at or datetime.now()
        self.page_number = 1
        self.y = self.page_height - margin

    @property
    def content_width(self):
        return self.page_width - 2 * self.margin

    @property
    def left(self):
        return self.margin

    @property
    def right(self):
        return self.page_width - self.margin

    def new_page(self):
        self._draw_page_footer()
        self.canvas.showPage()
        self.page_number += 1
        self.y = self.page_height - self.margin

    def ensure_space(self, height):
        """Start a new page unless `height` points fit above the bottom margin."""
        if self.y - height < self.margin:
            self.new_page()
            return True
        return False

    def move_down(self, points):
        self.y -= points

    def text(self, line, font="Helvetica", size=10, color=colors.black, align="left"):
        """Draw wrapped text at the cursor, continuing on a new page if needed."""
        leading = size * 1.25
        self.canvas.setFillColor(color)
        self.canvas.setFont(font, size)
        for part in simpleSplit(str(line), font, size, self.content_width) or ['']:
            self.ensure_space(leading)
            self.canvas.setFillColor(color)
            self.canvas.setFont(font, size)
            baseline = self.y - size
            if align == "center":
                self.canvas.drawCentredString(self.page_width / 2, baseline, part)
            else:
                self.canvas.drawString(self.left, baseline, part)
            self.y -= leading

    def draw_institute_header(self, report_title):
        self.text(INSTITUTE_NAME, font="Helvetica-Bold", size=13, color=TITLE_COLOR, align="center")
        for subtitle in INSTITUTE_SUBTITLES:
            self.text(subtitle, size=8, color=colors.HexColor("#222222"), align="center")

        self.move_down(5)
        self.canvas.setStrokeColor(TITLE_COLOR)
        self.canvas.setLineWidth(1)
        self.canvas.line(self.left, self.y, self.right, self.y)
        self.move_down(8)
        self.text(report_title, font="Helvetica-Bold", size=12, align="center")
        self.move_down(6)

    def _cell_lines(self, column, value):
        if column.wrap:
            return simpleSplit(value, "Helvetica", BODY_FONT_SIZE, column.width - 2 * CELL_PADDING) or ['']
        return [value]

    def row_height(self, columns, cells):
        tallest = max(
            len(self._cell_lines(column, value)) * BODY_LEADING
            for column, value in zip(columns, cells)
        )
        return max(MIN_ROW_HEIGHT, math.ceil(tallest) + 2 * CELL_PADDING)

    def _draw_aligned(self, text, x, width, baseline, align):
        if align == "center":
            self.canvas.drawCentredString(x + width / 2, baseline, text)
        elif align == "right":
            self.canvas.drawRightString(x + width - CELL_PADDING, baseline, text)
        else:
            self.canvas.drawString(x + CELL_PADDING, baseline, text)

    def _draw_table_header(self, columns):
        top = self.y
        table_width = sum(column.width for column in columns)
        self.canvas.setFillColor(HEADER_FILL)
        self.canvas.setStrokeColor(HEADER_STROKE)
        self.canvas.rect(self.left, top - HEADER_ROW_HEIGHT, table_width, HEADER_ROW_HEIGHT,
                         stroke=1, fill=1)

        self.canvas.setFillColor(colors.black)
        self.canvas.setFont("Helvetica-Bold", 10)
        x = self.left
        for column in columns:
            self._draw_aligned(column.label, x, column.width, top - 14, column.align)
            x += column.width
        self.y = top - HEADER_ROW_HEIGHT

    def _draw_row(self, columns, cells, height):
        top = self.y
        table_width = sum(column.width for column in columns)
        self.canvas.setStrokeColor(ROW_STROKE)
        self.canvas.rect(self.left, top - height, table_width, height, stroke=1, fill=0)

        self.canvas.setFillColor(colors.HexColor("#111111"))
        self.canvas.setFont("Helvetica", BODY_FONT_SIZE)
        x = self.left
        for column, value in zip(columns, cells):
            baseline = top - CELL_PADDING - BODY_FONT_SIZE
            for line in self._cell_lines(column, value):
                self._draw_aligned(line, x, column.width, baseline, column.align)
                baseline -= BODY_LEADING
            x += column.width
        self.y = top - height

    def draw_table(self, columns, rows):
        """
        Draw a table, repeating the header row on every page it spans.

        Rows are never split: a row that would cross the bottom limit moves
        to a new page. Returns the TableLayout.
        """
        layout = TableLayout()
        limit = self.margin + TABLE_BOTTOM_GAP

        if self.y - HEADER_ROW_HEIGHT - MIN_ROW_HEIGHT < limit:
            self.new_page()
        self._draw_table_header(columns)
        layout.header_pages.append(self.page_number)

        for index, row in enumerate(rows):
            cells = ['' if value is None else str(value) for value in row]
            height = self.row_height(columns, cells)
            if self.y - height < limit:
                self.new_page()
                self._draw_table_header(columns)
                layout.header_pages.append(self.page_number)
            self._draw_row(columns, cells, height)
            layout.record_row(self.page_number, index)

        return layout

    def draw_image(self, image_buffer, height):
        self.ensure_space(height + 10)
        self.canvas.drawImage(ImageReader(image_buffer), self.left, self.y - height,
                              width=self.content_width, height=height)
        self.y -= height + 10

    def draw_signature_footer(self, roles=SIGNATURE_ROLES):
        """Signature lines near the bottom of the last page, on a fresh page if crowded."""
        if self.y < self.margin + SIGNATURE_SPACE:
            self.new_page()

        y = self.margin + SIGNATURE_OFFSET
        segment = self.content_width / len(roles)
        self.canvas.setStrokeColor(colors.HexColor("#444444"))
        self.canvas.setLineWidth(1)
        self.canvas.setFillColor(colors.HexColor("#111111"))
        self.canvas.setFont("Helvetica", 9)
        for i, role in enumerate(roles):
            start = self.left + i * segment
            self.canvas.line(start + 10, y, start + segment - 10, y)
            self.canvas.drawCentredString(start + segment / 2, y - 4 - BODY_FONT_SIZE, role)
        self.y = min(self.y, y - 4 - BODY_LEADING)
        return self.page_number

    def _draw_page_footer(self):
        self.canvas.saveState()
        self.canvas.setFont("Helvetica", 7)
        self.canvas.setFillColor(colors.gray)
        self.canvas.drawString(25, 20, f"Generated On: {format_timestamp(self.generated_at)}")
        self.canvas.drawRightString(self.page_width - 25, 20, f"Page {self.page_number}")
        self.canvas.restoreState()

    def save(self):
        self._draw_page_footer()
        self.canvas.save()


def format_timestamp(moment):
    return moment.strftime("%d/%m/%Y, %I:%M:%S %p")


def create_points_chart(rows):
    """
    Create a bar graph image of subject points.
    """
    labels = [row['code'] for row in rows]
    points = [row['points'] for row in rows]

    fig, ax = plt.subplots(figsize=(10, 3.5), dpi=150)
    bars = ax.bar(labels, points, color='#0b3b75')
    ax.set_ylim(0, RATING_MAX)
    ax.set_xlabel('')
    ax.set_ylabel('')
    plt.xticks(fontsize=8, rotation=30 if len(labels) > 8 else 0)
    plt.yticks(fontsize=8)

    for bar, value in zip(bars, points):
        ax.text(bar.get_x() + bar.get_width() / 2.0, bar.get_height(),
                f'{value:.2f}', ha='center', va='bottom', fontsize=8)

    ax.grid(True, axis='y', linestyle='--', alpha=0.7)
    fig.tight_layout()

    buf = io.BytesIO()
    fig.savefig(buf, format='png')
    plt.close(fig)
    buf.seek(0)
    return buf


def _subject_columns(content_width):
    return [
        Column("No", 36, "center"),
        Column("Question", content_width - 36 - 88 - 88, "left", True),
        Column("Avg Rating", 88, "center"),
        Column("Responses", 88, "center"),
    ]


def generate_subject_report(report):
    """Render a subject summary (question table, grade, comments) to PDF bytes."""
    subject = report['subject']
    buffer = io.BytesIO()
    doc = ReportDocument(buffer, generated_at=report['generated_at'])

    doc.draw_institute_header("STUDENT FEEDBACK REPORT - SUBJECT SUMMARY")
    doc.text(f"Course/Department: {subject['department']}")
    doc.text(f"Subject: {subject['title']} ({subject['code']})")
    doc.text(f"Semester: {subject['semester']}   Division: {subject['division']}   "
             f"Faculty: {subject.get('faculty_name') or 'Not Assigned'}")
    doc.text(f"Generated On: {format_timestamp(report['generated_at'])}")
    doc.move_down(6)

    rows = [
        [i, row['question'], f"{row['average']:.2f}", row['responses']]
        for i, row in enumerate(report['questions'], 1)
    ]
    doc.draw_table(_subject_columns(doc.content_width), rows)

    doc.move_down(10)
    doc.text(f"Overall Grade Point: {report['overall']:.2f} ({report['grade']})",
             font="Helvetica-Bold", size=11)

    doc.move_down(10)
    doc.text("Remarks / Comments", font="Helvetica-Bold", size=11)
    if not report['comments']:
        doc.text("No comments submitted for this subject.")
    for i, comment in enumerate(report['comments'], 1):
        if doc.y < doc.margin + 45:
            doc.new_page()
            doc.draw_institute_header("STUDENT FEEDBACK REPORT - COMMENTS")
        text = comment['comment'].strip() or "No remarks"
        doc.text(f"{i}. [Div {comment['division']}] {text}", size=9)

    doc.draw_signature_footer()
    doc.save()
    logger.info(f"Subject report rendered for subject {subject['id']} ({doc.page_number} pages)")
    return buffer.getvalue()


def generate_division_report(rollup):
    """Render the division consolidation (one row per subject) to PDF bytes."""
    buffer = io.BytesIO()
    doc = ReportDocument(buffer, generated_at=rollup['generated_at'])

    doc.draw_institute_header("STUDENT FEEDBACK REPORT - DIVISION CONSOLIDATION")
    doc.text(f"Department: {rollup['department'] or 'All'}")
    doc.text(f"Semester: {rollup['semester'] or 'All'}   Division: {rollup['division'] or 'All'}")
    doc.text(f"Generated On: {format_timestamp(rollup['generated_at'])}")
    doc.move_down(6)

    columns = [
        Column("Faculty Name", 130, "left", True),
        Column("Subject Name", doc.content_width - 130 - 72 - 82 - 110, "left", True),
        Column("Points", 72, "center"),
        Column("Grade", 82, "center"),
        Column("Remarks", 110, "left", True),
    ]
    rows = [
        [
            row['faculty_name'],
            f"{row['title']} ({row['code']})",
            f"{row['points']:.2f}",
            row['grade'],
            f"Responses: {row['responses']}" if row['responses'] > 0 else "No responses",
        ]
        for row in rollup['rows']
    ]
    doc.draw_table(columns, rows)

    doc.move_down(10)
    doc.text(f"Division Overall Grade Point: {rollup['overall']:.2f} ({rollup['grade']})",
             font="Helvetica-Bold", size=11)

    if rollup['rows']:
        doc.move_down(10)
        doc.draw_image(create_points_chart(rollup['rows']), CHART_HEIGHT)

    doc.draw_signature_footer()
    doc.save()
    logger.info(f"Division report rendered: {len(rows)} subjects, {doc.page_number} pages")
    return buffer.getvalue()


def generate_pending_report(pending):
    """Render the list of students who have not submitted feedback for a subject."""
    subject = pending['subject']
    buffer = io.BytesIO()
    doc = ReportDocument(buffer, generated_at=pending['generated_at'])

    doc.draw_institute_header("STUDENTS WHO HAVE NOT SUBMITTED FEEDBACK")
    doc.text(f"Subject: {subject['title']} ({subject['code']})")
    doc.text(f"Department: {subject['department']}   Semester: {subject['semester']}   "
             f"Division: {subject['division']}")
    doc.text(f"Total Students: {pending['total']} | Submitted: {pending['submitted']} | "
             f"Not Submitted: {len(pending['pending'])}")
    doc.move_down(6)

    if pending['pending']:
        columns = [
            Column("#", 36, "center"),
            Column("Roll No", 100, "center"),
            Column("Name", (doc.content_width - 136) / 2, "left", True),
            Column("Email", (doc.content_width - 136) / 2, "left", True),
        ]
        rows = [
            [i, student['roll_no'], student['name'], student['email']]
            for i, student in enumerate(pending['pending'], 1)
        ]
        doc.draw_table(columns, rows)
    else:
        doc.text("All students have submitted their feedback!", font="Helvetica-Bold", size=11)

    doc.save()
    return buffer.getvalue()
