"""Project-level configuration and scaffolding."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml


CONFIG_FILENAME = "studioreport.yaml"

DEFAULT_CONFIG = {
    "timeline_fallback_width_pct": 30.0,
    "timeline_min_width_pct": 2.0,
    "timeline_default_span_days": 30,
    "budget_warning_pct": 75,
    "budget_critical_pct": 95,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}


DEMO_CONFIG = """\
# studioreport project configuration

# Gantt bars
timeline_fallback_width_pct: 30
timeline_min_width_pct: 2
timeline_default_span_days: 30

# Budget bar colour thresholds (percent of budget spent)
budget_warning_pct: 75
budget_critical_pct: 95

# Event log
# logging_fsync: true
"""


DEMO_ROWS: dict[str, Any] = {
    "project": {
        "id": "demo-apartment",
        "name": "Demo apartment renovation",
        "budget": 50000,
        "start_date": "2024-01-01",
        "end_date": "2024-03-31",
    },
    "phases": [
        {"id": "ph-design", "name": "Design", "status": "completed",
         "start_date": "2024-01-01", "end_date": "2024-01-31"},
        {"id": "ph-build", "name": "Construction", "status": "in_progress",
         "start_date": "2024-02-01", "end_date": "2024-03-15"},
        {"id": "ph-styling", "name": "Styling", "status": "pending",
         "start_date": None, "end_date": None},
    ],
    "tasks": [
        {"id": "t1", "title": "Floor plan", "status": "done", "phase_id": "ph-design"},
        {"id": "t2", "title": "Kitchen order", "status": "in_progress", "phase_id": "ph-build"},
        {"id": "t3", "title": "Lighting plan", "status": "todo", "phase_id": "ph-build"},
        {"id": "t4", "title": "Handover", "status": "todo", "phase_id": None},
    ],
    "purchase_orders": [
        {"total_amount": 30000, "status": "approved"},
        {"total_amount": 4000, "status": "cancelled"},
    ],
    "expenses": [
        {"amount": 12500},
    ],
    "invoices": [
        {"total": 20000, "status": "paid"},
        {"total": 15000, "status": "sent"},
    ],
    "client_report": {
        "general_notes": "Kitchen delivery confirmed for March.",
        "delivery_estimates": [
            {"id": "d1", "item": "Kitchen cabinets", "estimated_date": "2024-03-01",
             "status": "ordered", "notes": ""},
            {"id": "d2", "item": "Floor tiles", "estimated_date": "2024-02-01",
             "status": "delivered", "notes": ""},
        ],
        "unexpected_events": [
            {"id": "u1", "title": "Wall moisture", "description": "Found behind tiles.",
             "resolution": "Sealed and re-plastered.", "status": "handled",
             "date": "2024-02-10"},
        ],
    },
}


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``studioreport.yaml``, with defaults.

    Args:
        project_dir: Root of the studioreport project.

    Returns:
        Merged configuration dict.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping")
        config.update(user_config)
    return config


def timeline_options(config: dict[str, Any]) -> dict[str, Any]:
    """Keyword arguments for :func:`studioreport.timeline.compute_timeline`."""
    return {
        "fallback_width_pct": float(config["timeline_fallback_width_pct"]),
        "min_width_pct": float(config["timeline_min_width_pct"]),
        "default_span_days": int(config["timeline_default_span_days"]),
    }


def rollup_options(config: dict[str, Any]) -> dict[str, Any]:
    """Keyword arguments for :func:`studioreport.rollup.compute_financial_rollup`."""
    return {
        "warning_pct": float(config["budget_warning_pct"]),
        "critical_pct": float(config["budget_critical_pct"]),
    }


def scaffold_project(target_dir: Path) -> Path:
    """Create a project directory with a config file and sample rows.

    Args:
        target_dir: Directory to create (must not already contain a config).

    Returns:
        The project directory path.
    """
    target_dir = Path(target_dir)
    if (target_dir / CONFIG_FILENAME).exists():
        raise FileExistsError(f"{CONFIG_FILENAME} already exists in {target_dir}")
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / CONFIG_FILENAME).write_text(DEMO_CONFIG)
    (target_dir / "project.json").write_text(json.dumps(DEMO_ROWS, indent=2))
    (target_dir / "logs").mkdir(exist_ok=True)
    return target_dir
