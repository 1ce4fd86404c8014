"""
CSV serialization of subject and division reports.

Header lines are written as plain text. Text fields are always quoted with
embedded quotes doubled; averages carry two decimals and counts are integers.
"""

import csv
import io
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal('0.01')


def _points(value) -> Decimal:
    # Decimal counts as numeric for QUOTE_NONNUMERIC and keeps trailing zeros
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _writer(buffer):
    return csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator='\n')


def subject_report_csv(report: dict) -> str:
    """Question table, the comments table, then the overall grade point line."""
    buffer = io.StringIO()
    writer = _writer(buffer)

    buffer.write('Question,Average Rating,Total Responses\n')
    for row in report['questions']:
        writer.writerow([row['question'], _points(row['average']), row['responses']])

    buffer.write('\n')
    buffer.write('Comments,Division,SubmittedAt\n')
    for comment in report['comments']:
        writer.writerow([comment['comment'], comment['division'], comment['submitted_at']])

    buffer.write('\n')
    writer.writerow(['Overall', _points(report['overall']), report['grade']])
    return buffer.getvalue()


def division_report_csv(rollup: dict) -> str:
    buffer = io.StringIO()
    writer = _writer(buffer)

    buffer.write('Faculty Name,Subject,Points,Grade,Responses\n')
    for row in rollup['rows']:
        writer.writerow([
            row['faculty_name'],
            f"{row['title']} ({row['code']})",
            _points(row['points']),
            row['grade'],
            row['responses'],
        ])

    buffer.write('\n')
    writer.writerow(['Division Overall', _points(rollup['overall']), rollup['grade']])
    return buffer.getvalue()
