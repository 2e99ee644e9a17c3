"""
Profile Reference Checks
Work orders must reference users by user_profiles.id, never by the auth
identity id stored in user_profiles.user_id.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field
from supabase import Client

from .catalog import PROFILE_REFERENCE_COLUMNS, PROFILE_TABLE, WORK_ORDER_TABLE
from .errors import ErrorKind, classify_error, error_message
from .probe import SchemaProbe
from .rows import fetch_all_rows

logger = logging.getLogger(__name__)


class ReferenceViolation(BaseModel):
    work_order_id: str
    column: str
    value: str
    # "auth_user_id" when the value is a profile's auth id, else "unknown"
    kind: str
    profile_id: Optional[str] = None


class ReferenceReport(BaseModel):
    checked: int = 0
    violations: List[ReferenceViolation] = Field(default_factory=list)
    missing_columns: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.violations and not self.missing_columns and self.error is None


def check_profile_references(client: Client, limit: int = 1000) -> ReferenceReport:
    """
    Find work orders whose user references are not profile ids

    Args:
        client: Supabase client
        limit: Maximum number of work orders to inspect

    Returns:
        ReferenceReport; request failures are reported in .error
    """
    report = ReferenceReport()
    select = ", ".join(["id", *PROFILE_REFERENCE_COLUMNS])
    try:
        work_orders = client.table(WORK_ORDER_TABLE).select(select).limit(limit).execute().data or []
    except Exception as e:
        if classify_error(e) == ErrorKind.MISSING_COLUMN:
            probe = SchemaProbe(client)
            report.missing_columns = probe.missing_columns(WORK_ORDER_TABLE, PROFILE_REFERENCE_COLUMNS)
            if not report.missing_columns:
                report.error = error_message(e)
        else:
            report.error = error_message(e)
        return report

    try:
        profiles = fetch_all_rows(client, PROFILE_TABLE, "id, user_id")
    except Exception as e:
        report.error = f"{PROFILE_TABLE}: {error_message(e)}"
        return report

    profile_ids = {str(p["id"]) for p in profiles if p.get("id") is not None}
    profile_by_auth_id = {
        str(p["user_id"]): str(p["id"]) for p in profiles if p.get("user_id") is not None
    }

    for wo in work_orders:
        report.checked += 1
        for column in PROFILE_REFERENCE_COLUMNS:
            value = wo.get(column)
            if value is None or str(value) in profile_ids:
                continue
            value = str(value)
            if value in profile_by_auth_id:
                violation = ReferenceViolation(
                    work_order_id=str(wo["id"]),
                    column=column,
                    value=value,
                    kind="auth_user_id",
                    profile_id=profile_by_auth_id[value],
                )
            else:
                violation = ReferenceViolation(
                    work_order_id=str(wo["id"]), column=column, value=value, kind="unknown"
                )
            report.violations.append(violation)

    logger.info(f"Checked {report.checked} work orders, {len(report.violations)} bad references")
    return report


def resolve_profile_id(client: Client, user_id: str) -> Optional[str]:
    """Map an auth identity id (or a profile id) to the profile primary key"""
    rows = client.table(PROFILE_TABLE).select("id").eq("id", user_id).limit(1).execute().data
    if rows:
        return str(rows[0]["id"])
    rows = client.table(PROFILE_TABLE).select("id").eq("user_id", user_id).limit(1).execute().data
    if rows:
        return str(rows[0]["id"])
    return None
