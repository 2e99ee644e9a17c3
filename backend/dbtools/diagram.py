"""Mermaid ER diagram from probed table columns."""

from typing import Any, Dict, List, Optional, Tuple

from .catalog import PROFILE_TABLE


def _value_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "numeric"
    if isinstance(value, (dict, list)):
        return "json"
    return "text"


def _target_candidates(column: str) -> List[str]:
    base = column[:-3]
    if base.endswith("user"):
        return [PROFILE_TABLE]
    candidates = [base, base + "s", base + "es"]
    if base.endswith("y"):
        candidates.append(base[:-1] + "ies")
    return candidates


def infer_relationships(tables: Dict[str, List[str]]) -> List[Tuple[str, str, str]]:
    """(parent_table, child_table, column) for every *_id column naming a known table"""
    relationships = []
    for table, columns in tables.items():
        for column in columns:
            if column == "id" or not column.endswith("_id"):
                continue
            # the auth identity, not a profile row
            if table == PROFILE_TABLE and column == "user_id":
                continue
            for target in _target_candidates(column):
                if target in tables:
                    relationships.append((target, table, column))
                    break
    return relationships


def build_mermaid(
    tables: Dict[str, List[str]],
    samples: Optional[Dict[str, Dict[str, Any]]] = None
) -> str:
    """
    Render an erDiagram

    Args:
        tables: Columns per table (an empty list when the table had no rows)
        samples: Optional sample row per table, used to guess attribute types

    Returns:
        Mermaid source text
    """
    samples = samples or {}
    lines = ["erDiagram"]
    for table, columns in tables.items():
        if not columns:
            continue
        sample = samples.get(table, {})
        lines.append(f"    {table} {{")
        for column in columns:
            lines.append(f"        {_value_type(sample.get(column))} {column}")
        lines.append("    }")

    for parent, child, column in infer_relationships(tables):
        lines.append(f'    {parent} ||--o{{ {child} : "{column}"')
    return "\n".join(lines) + "\n"


def render_markdown(diagram: str, title: str = "CMMS Database Diagram") -> str:
    return f"# {title}\n\n```mermaid\n{diagram}```\n"
