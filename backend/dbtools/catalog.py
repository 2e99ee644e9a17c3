"""
CMMS table catalogue: which tables the application uses and which columns
it reads or writes on each of them.
"""

from typing import Dict, List

PROFILE_TABLE = "user_profiles"
WORK_ORDER_TABLE = "work_orders"

# work_orders columns holding a user reference; they must hold user_profiles.id
PROFILE_REFERENCE_COLUMNS = ("requested_by_user_id", "assigned_to_user_id")

EXPECTED_COLUMNS: Dict[str, List[str]] = {
    "companies": ["id", "name", "code"],
    "locations": ["id", "name"],
    "systems": ["id", "name_th", "company_id", "location_id"],
    "equipment_types": ["id", "name_th"],
    "assets": ["id", "serial_number", "status", "system_id", "equipment_type_id"],
    "pm_templates": [
        "id", "name", "company_id", "system_id", "equipment_type_id", "estimated_minutes",
    ],
    "pm_template_details": [
        "id", "pm_template_id", "step_number", "task_description", "expected_input_type",
        "standard_text_expected", "standard_min_value", "standard_max_value", "is_critical",
    ],
    "work_orders": [
        "id", "work_type", "title", "status", "priority", "asset_id", "system_id",
        "pm_template_id", "requested_by_user_id", "assigned_to_user_id", "wo_number",
        "estimated_hours", "actual_hours", "created_at", "started_at", "completed_at",
        "updated_at",
    ],
    "work_order_tasks": [
        "id", "work_order_id", "pm_template_detail_id", "step_number", "task_description",
        "result_value", "result_status", "is_critical", "completed_at", "updated_at",
    ],
    "work_order_history": [
        "id", "work_order_id", "action_type", "field_name", "old_value", "new_value",
        "user_id", "user_name", "timestamp",
    ],
    "work_order_comments": ["id", "work_order_id", "user_id", "user_name", "comment", "created_at"],
    "work_order_attachments": [
        "id", "work_order_id", "file_name", "file_path", "file_size", "file_type",
        "uploaded_by_user_id", "uploaded_at",
    ],
    "user_profiles": ["id", "user_id", "email"],
}

# Probed in this order by the discovery and backup tools
KNOWN_TABLES: List[str] = list(EXPECTED_COLUMNS) + [
    "parts",
    "work_order_parts",
    "parts_requisitions",
    "tools",
    "tool_checkouts",
    "notifications",
]
