"""Backfill planning: execution waves and their Airflow projection."""

from lineage_engine.planner.airflow import dag_id_from_url, map_plan_to_airflow
from lineage_engine.planner.wave_planner import compute_execution_waves, kahn_waves, plan_backfill

__all__ = [
    "compute_execution_waves",
    "dag_id_from_url",
    "kahn_waves",
    "map_plan_to_airflow",
    "plan_backfill",
]
