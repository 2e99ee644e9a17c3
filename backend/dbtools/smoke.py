"""
Work Order Smoke Test
Creates a preventive work order from a PM template against the live project,
modifies it, reads every change back, then removes everything it created.
"""

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple

from pydantic import BaseModel, Field
from supabase import Client

from .catalog import PROFILE_TABLE
from .errors import DBToolsError, error_message

logger = logging.getLogger(__name__)


class SmokeStepError(DBToolsError):
    """A step ran but its result was not what the step expects"""


class StepResult(BaseModel):
    name: str
    ok: bool
    detail: Optional[str] = None


class SmokeReport(BaseModel):
    work_order_id: Optional[str] = None
    steps: List[StepResult] = Field(default_factory=list)
    cleanup: List[StepResult] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.steps) and all(s.ok for s in self.cleanup)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkOrderSmokeTest:
    """Read-modify-verify-cleanup run over the work order tables"""

    def __init__(self, client: Client, user_name: str = "Smoke Test", out: Optional[TextIO] = None):
        self.client = client
        self.user_name = user_name
        self._out = out
        self.report = SmokeReport()
        # (table, column, value) per insert, deleted in reverse order
        self._created: List[Tuple[str, str, Any]] = []

        self.template: Dict[str, Any] = {}
        self.details: List[Dict[str, Any]] = []
        self.asset: Dict[str, Any] = {}
        self.profile: Optional[Dict[str, Any]] = None
        self.work_order: Dict[str, Any] = {}
        self.tasks: List[Dict[str, Any]] = []

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    def run(self) -> SmokeReport:
        """
        Run every step in order; the first failing step stops the sequence

        Cleanup runs in all cases and is reported separately.
        """
        steps: List[Tuple[str, Callable[[], str]]] = [
            ("Load PM template", self._load_template),
            ("Load PM template details", self._load_details),
            ("Load asset", self._load_asset),
            ("Load user profile", self._load_profile),
            ("Create work order", self._create_work_order),
            ("Create work order tasks", self._create_tasks),
            ("Update first task", self._update_task),
            ("Complete work order", self._complete_work_order),
            ("Record history entry", self._record_history),
            ("Add comment", self._add_comment),
        ]
        try:
            for i, (name, step) in enumerate(steps, 1):
                print(f"\n📋 Test {i}: {name}...", file=self.out)
                if not self._run_step(name, step):
                    break
        finally:
            self._cleanup()
        return self.report

    def _run_step(self, name: str, step: Callable[[], str]) -> bool:
        try:
            detail = step()
        except Exception as e:
            message = error_message(e)
            print(f"❌ {name}: {message}", file=self.out)
            self.report.steps.append(StepResult(name=name, ok=False, detail=message))
            return False
        print(f"✅ {detail}", file=self.out)
        self.report.steps.append(StepResult(name=name, ok=True, detail=detail))
        return True

    def _insert(self, table: str, rows: Any, key: str = "id", key_value: Any = None) -> List[Dict[str, Any]]:
        inserted = self.client.table(table).insert(rows).execute().data or []
        if not inserted:
            raise SmokeStepError(f"insert into {table} returned no rows")
        if key_value is not None:
            self._created.append((table, key, key_value))
        else:
            for row in inserted:
                self._created.append((table, key, row[key]))
        return inserted

    def _load_template(self) -> str:
        rows = self.client.table("pm_templates").select("*").limit(1).execute().data
        if not rows:
            raise SmokeStepError("no PM templates found")
        self.template = rows[0]
        return f"Using PM template: {self.template.get('name', self.template['id'])}"

    def _load_details(self) -> str:
        self.details = (
            self.client.table("pm_template_details")
            .select("*")
            .eq("pm_template_id", self.template["id"])
            .order("step_number")
            .execute()
            .data
            or []
        )
        return f"Found {len(self.details)} template details"

    def _load_asset(self) -> str:
        rows = self.client.table("assets").select("*").limit(1).execute().data
        if not rows:
            raise SmokeStepError("no assets found")
        self.asset = rows[0]
        return f"Using asset: {self.asset.get('serial_number', self.asset['id'])}"

    def _load_profile(self) -> str:
        rows = self.client.table(PROFILE_TABLE).select("id, user_id").limit(1).execute().data
        self.profile = rows[0] if rows else None
        if self.profile is None:
            return "No user profile found, requester/assignee left empty"
        return f"Using profile id {self.profile['id']} (auth id {self.profile.get('user_id')})"

    def _create_work_order(self) -> str:
        stamp = int(time.time() * 1000)
        profile_id = self.profile["id"] if self.profile else None
        row = {
            "id": f"TEST-WO-{stamp}",
            "work_type": "preventive",
            "title": f"Smoke test - {self.template.get('name', 'PM')}",
            "description": "Created by the work order smoke test",
            "status": "in_progress",
            "priority": 3,
            "asset_id": self.asset["id"],
            "system_id": self.template.get("system_id"),
            "pm_template_id": self.template["id"],
            "wo_number": f"TEST-{stamp}",
            # Foreign keys point at user_profiles.id, not the auth user id
            "requested_by_user_id": profile_id,
            "assigned_to_user_id": profile_id,
            "created_at": _now(),
        }
        self.work_order = self._insert("work_orders", row)[0]
        self.report.work_order_id = str(self.work_order["id"])
        return f"Test work order created: {self.work_order.get('wo_number', self.work_order['id'])}"

    def _create_tasks(self) -> str:
        if not self.details:
            return "Template has no details, no tasks created"
        wo_id = self.work_order["id"]
        rows = [
            {
                "id": f"task-{wo_id}-{i}",
                "work_order_id": wo_id,
                "pm_template_detail_id": detail["id"],
                "step_number": detail.get("step_number", i + 1),
                "task_description": detail.get("task_description", f"Step {i + 1}"),
                "is_critical": bool(detail.get("is_critical", False)),
                "status": "pending",
            }
            for i, detail in enumerate(self.details)
        ]
        self.tasks = self._insert("work_order_tasks", rows)
        return f"Created {len(self.tasks)} work order tasks"

    def _update_task(self) -> str:
        if not self.tasks:
            return "No tasks to update"
        task_id = self.tasks[0]["id"]
        self.client.table("work_order_tasks").update({
            "status": "completed",
            "result_value": "OK",
            "result_status": "pass",
            "completed_at": _now(),
        }).eq("id", task_id).execute()

        rows = self.client.table("work_order_tasks").select("*").eq("id", task_id).execute().data
        if not rows or rows[0].get("result_status") != "pass":
            raise SmokeStepError(f"task {task_id} update was not persisted")
        self._check_touched("work_order_tasks", self.tasks[0], rows[0])
        return f"Task {task_id} updated and verified"

    def _complete_work_order(self) -> str:
        wo_id = self.work_order["id"]
        # Fails server-side when work_orders lacks the updated_at column its trigger writes
        self.client.table("work_orders").update({
            "status": "completed",
            "completed_at": _now(),
        }).eq("id", wo_id).execute()

        rows = self.client.table("work_orders").select("*").eq("id", wo_id).execute().data
        if not rows or rows[0].get("status") != "completed":
            raise SmokeStepError(f"work order {wo_id} status was not persisted")
        self._check_touched("work_orders", self.work_order, rows[0])
        return f"Work order {wo_id} completed and verified"

    def _check_touched(self, table: str, before: Dict[str, Any], after: Dict[str, Any]):
        """Fail when an update left updated_at alone (update_updated_at_column trigger missing)"""
        if "updated_at" not in after:
            return
        if after["updated_at"] == before.get("updated_at"):
            raise SmokeStepError(f"{table}.updated_at did not change on update; is its update trigger installed?")

    def _record_history(self) -> str:
        wo_id = self.work_order["id"]
        row = {
            "work_order_id": wo_id,
            "action_type": "status_changed",
            "field_name": "status",
            "old_value": "in_progress",
            "new_value": "completed",
            "user_id": self.profile["id"] if self.profile else None,
            "user_name": self.user_name,
            "notes": "Smoke test status change",
        }
        self._insert("work_order_history", row, key="work_order_id", key_value=wo_id)
        return "History entry recorded"

    def _add_comment(self) -> str:
        wo_id = self.work_order["id"]
        row = {
            "work_order_id": wo_id,
            "user_id": self.profile["id"] if self.profile else None,
            "user_name": self.user_name,
            "comment": "Smoke test comment",
        }
        self._insert("work_order_comments", row, key="work_order_id", key_value=wo_id)
        return "Comment added"

    def _cleanup(self):
        if not self._created:
            return
        print("\n🧹 Cleaning up test data...", file=self.out)
        done = set()
        for table, key, value in reversed(self._created):
            if (table, key, value) in done:
                continue
            done.add((table, key, value))
            name = f"Delete {table} {key}={value}"
            try:
                self.client.table(table).delete().eq(key, value).execute()
            except Exception as e:
                message = error_message(e)
                print(f"❌ {name}: {message}", file=self.out)
                self.report.cleanup.append(StepResult(name=name, ok=False, detail=message))
                continue
            self.report.cleanup.append(StepResult(name=name, ok=True))
        logger.info(f"Cleanup removed {sum(1 for s in self.report.cleanup if s.ok)} test row groups")
        if all(s.ok for s in self.report.cleanup):
            print("✅ Test data cleaned up", file=self.out)
