"""Deterministic demo records loaded into every new session."""

from __future__ import annotations

import copy
import hashlib
from typing import Dict, List

Record = Dict[str, object]

QUEUE_SIZE = 48

FRONTEND_STATUSES = ["Completed", "API Pending", "Pending", "Not Started", "On Hold", "In Progress"]
BACKEND_STATUSES = ["In Process", "Completed"]


def padded_id(index: int) -> str:
    return str(index).zfill(5)


def aws_token(kind: str, index: int, id_len: int = 10, pass_len: int = 6) -> str:
    digest = hashlib.sha256(f"{kind}:{index}".encode("utf-8")).hexdigest().upper()
    return f"ID: {digest[:id_len]}, PASS: {digest[id_len:id_len + pass_len]}"


CLIENTS: List[Record] = [
    {
        "id": 1,
        "clientId": "00001",
        "name": "Raju Babu",
        "phone": "9867456734",
        "email": "raju@example.com",
        "gstPercent": "10 %",
        "billingType": "Monthly",
        "billingStatus": "Active",
    },
    {
        "id": 2,
        "clientId": "00002",
        "name": "Mahes",
        "phone": "9867456735",
        "email": "mahes@example.com",
        "gstPercent": "10 %",
        "billingType": "Annually",
        "billingStatus": "Active",
    },
]

PROJECTS: List[Record] = [
    {
        "id": 1,
        "clientId": "CL001",
        "clientName": "Tech Solutions Ltd",
        "clientPhone": "+91 9876543210",
        "clientEmail": "contact@techsolutions.com",
        "date": "2025-01-15",
        "estValue": 150000,
        "confirmationBy": "Email",
        "projectLead": "Digital Solutions",
        "sentToAccounting": True,
        "billingStatus": "Completed",
        "gstFilingStatus": "Filed",
    },
    {
        "id": 2,
        "clientId": "CL002",
        "clientName": "Creative Agency",
        "clientPhone": "+91 9876543211",
        "clientEmail": "hello@creativeagency.com",
        "date": "2025-01-10",
        "estValue": 200000,
        "confirmationBy": "Phone",
        "projectLead": "Ravi Coordinator",
        "sentToAccounting": False,
        "billingStatus": "Pending",
        "gstFilingStatus": "Pending",
    },
]

STAFF: List[Record] = [
    {"id": 1, "name": "Digital Solutions", "email": "digital@example.com", "employeeId": "EMP001", "role": "Designer", "status": "Active"},
    {"id": 2, "name": "Ravi Coordinator", "email": "ravi@example.com", "employeeId": "EMP002", "role": "Project Coordinator", "status": "Active"},
    {"id": 3, "name": "Deep Test 1.2", "email": "deep12@example.com", "employeeId": "EMP003", "role": "Designer", "status": "Active"},
    {"id": 4, "name": "Naveen KR", "email": "naveen@example.com", "employeeId": "INT001", "role": "Developer", "status": "Active"},
    {"id": 5, "name": "Sagar Kumar", "email": "sagar@example.com", "employeeId": "EMP005", "role": "Designer", "status": "Active"},
]

JOBS: List[Record] = [
    {
        "id": 1,
        "project": "Logo Project",
        "projectId": "JB001",
        "description": "Brand refresh and logo variants",
        "projectValue": 45000,
        "designers": "Digital Solutions",
        "frontend": "Naveen KR",
        "backend": "Naveen KR",
        "createdOn": "2025-01-02",
        "deadline": "2025-01-20",
        "overdue": True,
        "status": "In Progress",
        "awsDetails": aws_token("job", 1),
        "figmaFile": "figma-logo-project",
        "holdReassign": False,
    },
    {
        "id": 2,
        "project": "Project U",
        "projectId": "JB002",
        "description": "Marketing site with CMS",
        "projectValue": 120000,
        "designers": "Sagar Kumar",
        "frontend": "Naveen KR",
        "backend": "Ravi Coordinator",
        "createdOn": "2024-12-11",
        "deadline": "2025-02-28",
        "overdue": False,
        "status": "Completed",
        "awsDetails": aws_token("job", 2),
        "figmaFile": "figma-project-u",
        "holdReassign": False,
    },
    {
        "id": 3,
        "project": "RealState",
        "projectId": "JB003",
        "description": "Listings portal redesign",
        "projectValue": 98000,
        "designers": "Deep Test 1.2",
        "frontend": "Naveen KR",
        "backend": "Naveen KR",
        "createdOn": "2025-01-08",
        "deadline": "2025-03-15",
        "overdue": False,
        "status": "On Hold",
        "awsDetails": aws_token("job", 3),
        "figmaFile": "figma-realstate",
        "holdReassign": True,
    },
]


def project_lead_rows(count: int = QUEUE_SIZE) -> List[Record]:
    rows: List[Record] = []
    for i in range(count):
        if i % 3 == 0:
            status = "Completed"
        elif i % 2 == 0:
            status = "API Pending"
        else:
            status = "Pending"
        rows.append(
            {
                "id": i + 1,
                "projectId": padded_id(i + 1),
                "project": "RealState",
                "sow": "Project description details",
                "createdOn": "29/12/2023",
                "deadline": "29/12/2023",
                "status": status,
                "figmaFile": "figma-link",
                "pushToP5Repository": True,
                "apiRepository": "api-repo-link",
                "awsDetails": "aws-details-link",
            }
        )
    return rows


def figma_repository_rows(count: int = QUEUE_SIZE) -> List[Record]:
    return [
        {
            "id": i + 1,
            "projectId": padded_id(i + 1),
            "projectName": "RealState",
            "description": "Project description details",
            "projectLead": "Arjun Rana",
            "figmaDesign": "figma-design-link",
        }
        for i in range(count)
    ]


def frontend_rows(count: int = QUEUE_SIZE) -> List[Record]:
    return [
        {
            "id": i + 1,
            "projectId": padded_id(i + 1),
            "project": f"RealState {i + 1}",
            "description": f"Frontend module for RealState project {i + 1}",
            "projectLead": f"Lead {i + 1}",
            "createdOn": "29/12/2023",
            "deadline": "29/12/2023",
            "status": FRONTEND_STATUSES[i % len(FRONTEND_STATUSES)],
            "figmaFile": f"figma-file-link-{i + 1}",
            "pushToP5Repository": i % 2 == 0,
            "apiRepository": f"api-repo-link-{i + 1}",
            "awsDetails": aws_token("frontend", i + 1, id_len=8),
        }
        for i in range(count)
    ]


def backend_rows(count: int = QUEUE_SIZE) -> List[Record]:
    return [
        {
            "id": i + 1,
            "projectId": padded_id(i + 1),
            "project": "RealState",
            "description": "Project description details",
            "projectLead": "Anju Rani",
            "createdOn": "29/12/2023, 20:04:11",
            "deadline": "29/12/2023, 20:04:11",
            "status": BACKEND_STATUSES[i % len(BACKEND_STATUSES)],
            "figmaFile": "figma-file-link",
            "pushToP5Repository": True,
            "apiRepository": "api-repo-link",
            "awsDetails": aws_token("backend", i + 1, id_len=12, pass_len=8),
        }
        for i in range(count)
    ]


def accounts_rows(count: int = QUEUE_SIZE) -> List[Record]:
    return [
        {
            "id": i + 1,
            "clientId": padded_id(i + 1),
            "clientName": "Mahes" if i % 2 else "Raju Babu",
            "cPhone": "9867456734",
            "cEmail": "accounts@example.com",
            "gstNo": "DSER234S3",
            "valueInclGst": "₹ 100000",
            "invoiceNo": 1232,
            "invoiceDate": "29/12/2023",
            "generateBill": "One Time" if i % 3 == 0 else "Monthly",
            "billingType": "Monthly",
            "advPayment": "₹ 100000",
            "awsBill": "₹ 100000",
            "paymentDate": "29/12/2023",
            "filingDate": "29/12/2023",
            "accountNo": "83242423424234",
        }
        for i in range(count)
    ]


def seed_records() -> Dict[str, List[Record]]:
    """Return a fresh, independent copy of every screen's demo records."""
    return {
        "clients": copy.deepcopy(CLIENTS),
        "projects": copy.deepcopy(PROJECTS),
        "staff": copy.deepcopy(STAFF),
        "working": copy.deepcopy(JOBS),
        "project_lead": project_lead_rows(),
        "figma_repository": figma_repository_rows(),
        "frontend": frontend_rows(),
        "backend": backend_rows(),
        "accounts": accounts_rows(),
    }
