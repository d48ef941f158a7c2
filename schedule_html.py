"""
HTML fragments returned by the schedule lookup routes.

Every piece of text that comes from the spreadsheet or from the request is
passed through `escape_html` before it is embedded.
"""
import html
from typing import Dict, List, Sequence, Tuple

from schedule_process import ScheduleRow

DAY_ORDER = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
UNKNOWN_DAY = "Unknown"

PDF_VIEWER_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Reference PDF</title>
  <style>
    html, body { margin:0; padding:0; height:100%; width:100%; overflow:hidden; background:#333; }
    embed { width:100%; height:100%; border:none; }
  </style>
</head>
<body>
  <embed src="/reference.pdf#view=FitH&toolbar=1&navpanes=0&scrollbar=1" type="application/pdf">
</body>
</html>
"""

INDEX_MISSING_HTML = "<h2>index.html not found</h2><p>Place index.html in the static directory.</p>"


def escape_html(value) -> str:
    """Escape &, <, >, " and ' so the value can sit inside markup or an attribute."""
    return html.escape("" if value is None else str(value), quote=True)


def group_by_day(rows: Sequence[ScheduleRow]) -> List[Tuple[str, List[ScheduleRow]]]:
    """
    Group rows by their day label, Monday first.

    Rows without a day go under "Unknown". Labels that are not weekday names
    follow the weekdays in the order they first appear.
    """
    groups: Dict[str, List[ScheduleRow]] = {}
    for row in rows:
        groups.setdefault(row.day or UNKNOWN_DAY, []).append(row)

    rank = {day.lower(): index for index, day in enumerate(DAY_ORDER)}
    ordered = sorted(groups, key=lambda day: rank.get(day.strip().lower(), len(DAY_ORDER)))
    return [(day, groups[day]) for day in ordered]


def _render_day_table(day: str, rows: Sequence[ScheduleRow]) -> str:
    parts = [
        f'<h3 style="color: #0066ff; margin: 32px 0 8px;">{escape_html(day)}</h3>',
        '<table border="1" cellpadding="10" cellspacing="0" style="border-collapse: collapse; width: 100%; background: #fff;">',
        "<tr><th>Time</th><th>Activity</th><th>Description</th><th>Location</th></tr>",
    ]
    for row in rows:
        parts.append(
            "<tr>"
            f"<td><strong>{escape_html(row.time)}</strong></td>"
            f"<td>{escape_html(row.activity)}</td>"
            f"<td>{escape_html(row.description)}</td>"
            f"<td>{escape_html(row.location)}</td>"
            "</tr>"
        )
    parts.append("</table>")
    return "\n".join(parts)


def render_schedule(rows: Sequence[ScheduleRow], name: str = "") -> str:
    """
    Render matched rows as day tables followed by the reference document frame.

    Args:
        rows: Rows to show, in table order
        name: Query text; a blank name renders the "Full Schedule" heading

    Returns:
        str: HTML fragment
    """
    parts = ['<div style="font-family: system-ui, sans-serif;">']
    if name and name.strip():
        plural = "s" if len(rows) != 1 else ""
        parts.append(
            f"<h2>Schedule for <strong>{escape_html(name)}</strong> ({len(rows)} shift{plural})</h2>"
        )
    else:
        parts.append("<h2>Full Schedule</h2>")

    for day, day_rows in group_by_day(rows):
        parts.append(_render_day_table(day, day_rows))

    parts.append('<hr style="margin: 32px 0;" />')
    parts.append("<h3>Event Details</h3>")
    parts.append(
        '<iframe src="/pdfviewer" style="width: 100%; height: 800px; '
        'border: 1px solid #ddd; border-radius: 8px;" loading="lazy"></iframe>'
    )
    parts.append("</div>")
    return "\n".join(parts)


def render_error(message: str) -> str:
    """Wrap an error message in the fragment the lookup page shows in place of a schedule."""
    return f'<span class="error">{escape_html(message)}</span>'


def render_not_found(name: str) -> str:
    """Error fragment for a lookup that matched nothing, with the query emphasised."""
    return f'<span class="error">No schedule found for <strong>{escape_html(name)}</strong>.</span>'
