"""List screen definitions.

Every list page (clients, projects, staff and the department queues) shares the
same search/paginate/render flow, so a screen is just configuration: which
columns to show, which fields the search box looks at, who may open it and how
its edit form coerces values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .export import JOB_EXPORT_HEADERS, PROJECT_EXPORT_HEADERS
from .seed import BACKEND_STATUSES, FRONTEND_STATUSES

PAGE_SIZE = max(1, int(os.environ.get("OPSDESK_PAGE_SIZE", "10")))

ROLE_OPTIONS = ["admin", "project_lead", "designer", "frontend", "backend", "accounts"]

ROLE_LABELS: Dict[str, str] = {
    "admin": "Admin",
    "project_lead": "Project Lead",
    "designer": "Designer",
    "frontend": "Frontend",
    "backend": "Backend",
    "accounts": "Accounts",
}

LANDING_PATHS: Dict[str, str] = {
    "admin": "/dashboard",
    "project_lead": "/project-lead",
    "designer": "/figma-repository",
    "frontend": "/frontend",
    "backend": "/backend",
    "accounts": "/accounts",
}


@dataclass(frozen=True)
class ExportPreset:
    filename: str
    headers: List[str]


@dataclass(frozen=True)
class ListScreen:
    key: str
    path: str
    title: str
    columns: List[Tuple[str, str]]
    searchable_fields: List[str]
    roles: List[str]
    noun: str
    page_size: int = PAGE_SIZE
    kinds: Dict[str, str] = field(default_factory=dict)
    choices: Dict[str, List[str]] = field(default_factory=dict)
    export: Optional[ExportPreset] = None
    id_field: str = "id"

    def field_kind(self, name: str) -> str:
        if name in self.choices:
            return "choice"
        return self.kinds.get(name, "text")


WORK_QUEUE_COLUMNS: List[Tuple[str, str]] = [
    ("projectId", "Project ID"),
    ("project", "Project"),
    ("description", "Description"),
    ("projectLead", "Project Lead"),
    ("createdOn", "Created On"),
    ("deadline", "Deadline"),
    ("status", "Status"),
    ("figmaFile", "Figma File"),
    ("pushToP5Repository", "Push to P5 Repository"),
    ("apiRepository", "API Repository"),
    ("awsDetails", "AWS Details"),
]

WORK_QUEUE_SEARCH = [
    "projectId",
    "project",
    "description",
    "projectLead",
    "createdOn",
    "deadline",
    "status",
    "figmaFile",
    "apiRepository",
    "awsDetails",
]

SCREENS: List[ListScreen] = [
    ListScreen(
        key="clients",
        path="/clients",
        title="Clients",
        noun="clients",
        columns=[
            ("clientId", "Client ID"),
            ("name", "Client Name"),
            ("phone", "C Phone"),
            ("email", "C Email"),
            ("gstPercent", "GST"),
            ("billingType", "Billing Type"),
            ("billingStatus", "Billing Status"),
        ],
        searchable_fields=["name", "clientId", "phone", "email"],
        roles=["admin"],
        choices={
            "billingType": ["Monthly", "Annually", "One time"],
            "billingStatus": ["Active", "Inactive"],
        },
    ),
    ListScreen(
        key="projects",
        path="/projects",
        title="Projects",
        noun="projects",
        columns=[
            ("clientId", "Client ID"),
            ("clientName", "Client Name"),
            ("clientPhone", "Client Phone"),
            ("clientEmail", "Client Email"),
            ("date", "Date"),
            ("estValue", "Est Value"),
            ("confirmationBy", "Confirmation By"),
            ("projectLead", "Project Lead"),
            ("sentToAccounting", "Sent to Accounting"),
            ("billingStatus", "Billing Status"),
            ("gstFilingStatus", "GST Filing Status"),
        ],
        searchable_fields=["clientName", "clientId"],
        roles=["admin", "project_lead"],
        kinds={"estValue": "number", "sentToAccounting": "bool"},
        choices={
            "confirmationBy": ["Email", "Phone", "WhatsApp", "In Person"],
            "billingStatus": ["Pending", "Completed"],
            "gstFilingStatus": ["Pending", "Filed"],
        },
        export=ExportPreset("projects_export", PROJECT_EXPORT_HEADERS),
    ),
    ListScreen(
        key="staff",
        path="/staff",
        title="Staff",
        noun="staff members",
        columns=[
            ("name", "Name"),
            ("email", "Email"),
            ("employeeId", "Employee ID"),
            ("role", "Role"),
            ("status", "Status"),
        ],
        searchable_fields=["name", "email", "employeeId"],
        roles=["admin"],
        choices={
            "role": ["Designer", "Developer", "Project Coordinator"],
            "status": ["Active", "Inactive"],
        },
    ),
    ListScreen(
        key="project_lead",
        path="/project-lead",
        title="Project Lead",
        noun="projects",
        columns=[
            ("projectId", "Project ID"),
            ("project", "Project"),
            ("sow", "SOW"),
            ("createdOn", "Created On"),
            ("deadline", "Deadline"),
            ("status", "Status"),
            ("figmaFile", "Figma File"),
            ("pushToP5Repository", "Push to P5 Repository"),
            ("apiRepository", "API Repository"),
            ("awsDetails", "AWS Details"),
        ],
        searchable_fields=[
            "projectId",
            "project",
            "sow",
            "createdOn",
            "deadline",
            "status",
            "figmaFile",
            "apiRepository",
            "awsDetails",
        ],
        roles=["project_lead"],
        kinds={"pushToP5Repository": "bool"},
        choices={"status": FRONTEND_STATUSES},
    ),
    ListScreen(
        key="working",
        path="/working",
        title="Working",
        noun="jobs",
        columns=[
            ("project", "Project"),
            ("projectId", "Project ID"),
            ("description", "Description"),
            ("projectValue", "Project Value"),
            ("designers", "Designers"),
            ("frontend", "Frontend"),
            ("backend", "Backend"),
            ("createdOn", "Created On"),
            ("deadline", "Deadline"),
            ("overdue", "Overdue"),
            ("status", "Status"),
            ("awsDetails", "AWS Details"),
            ("figmaFile", "Figma File"),
            ("holdReassign", "Hold Reassign"),
        ],
        searchable_fields=["project", "projectId", "description", "designers", "frontend", "backend", "status"],
        roles=["designer"],
        kinds={"projectValue": "number", "overdue": "bool", "holdReassign": "bool"},
        choices={"status": FRONTEND_STATUSES},
        export=ExportPreset("jobs_export", JOB_EXPORT_HEADERS),
    ),
    ListScreen(
        key="figma_repository",
        path="/figma-repository",
        title="Figma Repository",
        noun="designs",
        columns=[
            ("projectId", "Project ID"),
            ("projectName", "Project Name"),
            ("description", "Description"),
            ("projectLead", "Project Lead"),
            ("figmaDesign", "Figma Design"),
        ],
        searchable_fields=["projectId", "projectName", "description", "projectLead", "figmaDesign"],
        roles=["designer"],
    ),
    ListScreen(
        key="frontend",
        path="/frontend",
        title="Frontend",
        noun="modules",
        columns=WORK_QUEUE_COLUMNS,
        searchable_fields=WORK_QUEUE_SEARCH,
        roles=["frontend"],
        kinds={"pushToP5Repository": "bool"},
        choices={"status": FRONTEND_STATUSES},
    ),
    ListScreen(
        key="backend",
        path="/backend",
        title="Backend",
        noun="modules",
        columns=WORK_QUEUE_COLUMNS,
        searchable_fields=WORK_QUEUE_SEARCH,
        roles=["backend"],
        kinds={"pushToP5Repository": "bool"},
        choices={"status": BACKEND_STATUSES},
    ),
    ListScreen(
        key="accounts",
        path="/accounts",
        title="Accounts",
        noun="invoices",
        columns=[
            ("clientId", "Client ID"),
            ("clientName", "Client Name"),
            ("cPhone", "C Phone"),
            ("cEmail", "C Email"),
            ("gstNo", "GST No"),
            ("valueInclGst", "Value (incl. GST)"),
            ("invoiceNo", "Invoice No"),
            ("invoiceDate", "Invoice Date"),
            ("generateBill", "Generate Bill"),
            ("billingType", "Billing Type"),
            ("advPayment", "Adv Payment"),
            ("awsBill", "AWS Bill"),
            ("paymentDate", "Payment Date"),
            ("filingDate", "Filing Date"),
            ("accountNo", "Account No"),
        ],
        searchable_fields=[
            "clientId",
            "clientName",
            "cPhone",
            "cEmail",
            "gstNo",
            "valueInclGst",
            "invoiceNo",
            "invoiceDate",
            "generateBill",
            "billingType",
            "advPayment",
            "awsBill",
            "paymentDate",
            "filingDate",
            "accountNo",
        ],
        roles=["accounts"],
        kinds={"invoiceNo": "number"},
        choices={"generateBill": ["One Time", "Monthly"], "billingType": ["Monthly", "One Time"]},
    ),
]

DASHBOARD_NAV_ITEM: Dict[str, object] = {"key": "dashboard", "path": "/dashboard", "label": "Dashboard", "roles": ["admin"]}

# Sidebar order; visibility is a convenience only, route access is checked per request.
NAV_ORDER = [
    "dashboard",
    "clients",
    "projects",
    "project_lead",
    "working",
    "figma_repository",
    "frontend",
    "backend",
    "staff",
    "accounts",
]

_SCREENS_BY_KEY: Dict[str, ListScreen] = {screen.key: screen for screen in SCREENS}
_SCREENS_BY_PATH: Dict[str, ListScreen] = {screen.path: screen for screen in SCREENS}


def screen_by_key(key: str) -> Optional[ListScreen]:
    return _SCREENS_BY_KEY.get(key)


def screen_by_path(path: str) -> Optional[ListScreen]:
    return _SCREENS_BY_PATH.get(path.rstrip("/") or "/")


def normalize_role(raw_role: Optional[str]) -> Optional[str]:
    """Map a role claim onto a known role, accepting ``project lead`` style spellings."""
    role = str(raw_role or "").strip().lower().replace(" ", "_").replace("-", "_")
    return role if role in ROLE_OPTIONS else None


def nav_items_for_role(role: Optional[str]) -> List[Dict[str, str]]:
    items: List[Dict[str, str]] = []
    for key in NAV_ORDER:
        if key == "dashboard":
            if role in DASHBOARD_NAV_ITEM["roles"]:
                items.append({"key": "dashboard", "path": "/dashboard", "label": "Dashboard"})
            continue
        screen = _SCREENS_BY_KEY[key]
        if role in screen.roles:
            items.append({"key": screen.key, "path": screen.path, "label": screen.title})
    return items


def landing_path(role: Optional[str]) -> str:
    return LANDING_PATHS.get(role or "", "/login")
