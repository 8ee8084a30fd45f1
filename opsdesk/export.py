"""CSV export of list-screen records.

Headers are the human-readable column titles shown in the UI. Each header is
resolved once per export into a column descriptor:

- composite columns join several fields into one quoted cell,
- alias columns read a record field whose name differs from the header,
- direct columns read the field named by the normalized header itself.

Known limitation: quoted cells are not escaped, so a value containing a double
quote produces a malformed row.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Sequence, Union

LOGGER = logging.getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv;charset=utf-8"

Record = Mapping[str, object]

_WHITESPACE_RE = re.compile(r"\s+")

FIELD_ALIASES: Dict[str, str] = {
    "clientid": "clientId",
    "clientname": "clientName",
    "clientphone": "clientPhone",
    "clientemail": "clientEmail",
    "estvalue": "estValue",
    "confirmationby": "confirmationBy",
    "projectlead": "projectLead",
    "senttoaccounting": "sentToAccounting",
    "billingstatus": "billingStatus",
    "gstfilingstatus": "gstFilingStatus",
    "projectid": "projectId",
    "projectvalue": "projectValue",
    "createdon": "createdOn",
    "awsdetails": "awsDetails",
    "figmafile": "figmaFile",
    "holdreassign": "holdReassign",
    "employeeid": "employeeId",
}

PROJECT_EXPORT_HEADERS = [
    "Client ID",
    "Client Name",
    "Client Phone",
    "Client Email",
    "Date",
    "Est Value",
    "Confirmation By",
    "Project Lead",
    "Sent to Accounting",
    "Billing Status",
    "GST Filing Status",
]

JOB_EXPORT_HEADERS = [
    "Project",
    "Project ID",
    "Description",
    "Project Value",
    "Designers",
    "Frontend",
    "Backend",
    "Created On",
    "Deadline",
    "Overdue",
    "Status",
    "AWS Details",
    "Figma File",
    "Hold Reassign",
]


def normalize_header(header: str) -> str:
    return _WHITESPACE_RE.sub("", header.lower())


def _text(record: Record, field: str) -> str:
    value = record.get(field)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return format_number(value) if isinstance(value, (int, float)) else str(value)


def format_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _grouped_amount(record: Record, field: str) -> str:
    value = record.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return _text(record, field)
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,}"
    return f"{int(value):,}"


def _client_info(r: Record) -> str:
    return f"{_text(r, 'clientName')} ({_text(r, 'clientId')})"


def _contact(r: Record) -> str:
    return f"{_text(r, 'clientPhone')} | {_text(r, 'clientEmail')}"


def _project_details(r: Record) -> str:
    return f"₹{_grouped_amount(r, 'estValue')} | {_text(r, 'date')} | Lead: {_text(r, 'projectLead')}"


def _billing(r: Record) -> str:
    sent = "Sent" if r.get("sentToAccounting") else "Pending"
    return f"{_text(r, 'billingStatus')} | A/c: {sent}"


def _filing_status(r: Record) -> str:
    return f"GST: {_text(r, 'gstFilingStatus')} | Confirmed: {_text(r, 'confirmationBy')}"


def _project(r: Record) -> str:
    return f"{_text(r, 'project')} ({_text(r, 'projectId')})"


def _team(r: Record) -> str:
    return f"Design: {_text(r, 'designers')} | Frontend: {_text(r, 'frontend')} | Backend: {_text(r, 'backend')}"


def _timeline(r: Record) -> str:
    overdue = " | OVERDUE" if r.get("overdue") else ""
    return f"Created: {_text(r, 'createdOn')} | Deadline: {_text(r, 'deadline')}{overdue}"


def _technical(r: Record) -> str:
    return f"AWS: {_text(r, 'awsDetails')} | Figma: Available"


def _job_status(r: Record) -> str:
    hold = " | Hold/Reassign" if r.get("holdReassign") else ""
    return f"{_text(r, 'status')}{hold}"


COMPOSITE_TEMPLATES: Dict[str, Callable[[Record], str]] = {
    "clientinfo": _client_info,
    "contact": _contact,
    "projectdetails": _project_details,
    "billing": _billing,
    "status": _filing_status,
    "project": _project,
    "team": _team,
    "timeline": _timeline,
    "technical": _technical,
    "jobstatus": _job_status,
}


def format_scalar(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return format_number(value)
    return f'"{value}"'


@dataclass(frozen=True)
class CompositeColumn:
    header: str
    key: str

    def render(self, record: Record) -> str:
        return f'"{COMPOSITE_TEMPLATES[self.key](record)}"'


@dataclass(frozen=True)
class AliasColumn:
    header: str
    field: str

    def render(self, record: Record) -> str:
        return format_scalar(record.get(self.field))


@dataclass(frozen=True)
class DirectColumn:
    header: str
    field: str

    def render(self, record: Record) -> str:
        return format_scalar(record.get(self.field))


ExportColumn = Union[CompositeColumn, AliasColumn, DirectColumn]


def resolve_column(header: str) -> ExportColumn:
    key = normalize_header(header)
    if key in COMPOSITE_TEMPLATES:
        return CompositeColumn(header=header, key=key)
    if key in FIELD_ALIASES:
        return AliasColumn(header=header, field=FIELD_ALIASES[key])
    return DirectColumn(header=header, field=key)


def build_columns(headers: Sequence[str]) -> List[ExportColumn]:
    return [resolve_column(header) for header in headers]


def serialize(records: Sequence[Record], headers: Sequence[str]) -> str:
    """Render ``records`` as a CSV document with ``headers`` as the first row."""
    columns = build_columns(headers)
    lines = [",".join(headers)]
    for record in records:
        lines.append(",".join(column.render(record) for column in columns))
    LOGGER.debug("Serialized %d records into %d columns", len(records), len(columns))
    return "".join(f"{line}\n" for line in lines)


def csv_filename(name: str) -> str:
    return name if name.endswith(".csv") else f"{name}.csv"
