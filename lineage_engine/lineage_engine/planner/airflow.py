"""Projection of backfill plans onto Airflow DAGs.

Pipelines carry their Airflow location in ``links["airflow"]``, e.g.
``https://airflow.example.com/dags/order_processing/grid``.  The DAG id is
the path segment following ``/dags/``; when a URL has no such segment the
whole URL is used as the DAG id.
"""

from __future__ import annotations

import logging
import re

from lineage_engine.errors import MissingAirflowLinksError
from lineage_engine.models.config import PipelineConfig
from lineage_engine.models.results import AirflowDagRun, AirflowEdge, AirflowPlan, AirflowWave, ExecutionPlan

logger = logging.getLogger(__name__)

AIRFLOW_LINK_KEY = "airflow"

_DAG_ID_PATTERN = re.compile(r"/dags/([^/?#]+)")


def dag_id_from_url(url: str) -> str:
    """Extract the DAG id from an Airflow URL."""
    match = _DAG_ID_PATTERN.search(url)
    return match.group(1) if match else url


def map_plan_to_airflow(config: PipelineConfig, plan: ExecutionPlan) -> AirflowPlan:
    """Group every wave of *plan* by Airflow DAG.

    Parameters
    ----------
    config:
        The configuration the plan was computed from.
    plan:
        A backfill plan.

    Returns
    -------
    AirflowPlan
        Per-wave DAG runs and DAG-level dependency edges (deduplicated,
        without self edges).

    Raises
    ------
    MissingAirflowLinksError
        If any scheduled pipeline has no airflow link.
    """
    urls: dict[str, str] = {}
    missing: list[str] = []
    for wave in plan.waves:
        for name in wave:
            pipeline = config.get_pipeline(name)
            url = pipeline.links.get(AIRFLOW_LINK_KEY) if pipeline else None
            if url:
                urls[name] = url
            else:
                missing.append(name)
    if missing:
        raise MissingAirflowLinksError(missing)

    dag_of = {name: dag_id_from_url(url) for name, url in urls.items()}

    waves: list[AirflowWave] = []
    for index, wave in enumerate(plan.waves):
        runs: dict[str, AirflowDagRun] = {}
        for name in wave:
            dag = dag_of[name]
            run = runs.get(dag)
            if run is None:
                run = runs[dag] = AirflowDagRun(dag=dag, airflow_url=urls[name])
            run.pipelines.append(name)
        waves.append(AirflowWave(wave=index, parallel_count=len(runs), dags=list(runs.values())))

    edges: dict[tuple[str, str], None] = {}
    for edge in plan.edges:
        source_dag = dag_of.get(edge.source)
        target_dag = dag_of.get(edge.target)
        if source_dag and target_dag and source_dag != target_dag:
            edges[(source_dag, target_dag)] = None

    total_dags = len(set(dag_of.values()))
    logger.debug("Mapped %d pipeline(s) onto %d Airflow DAG(s)", len(dag_of), total_dags)
    return AirflowPlan(
        total_dags=total_dags,
        total_waves=len(waves),
        waves=waves,
        edges=[AirflowEdge(source_dag=s, target_dag=t) for s, t in edges],
    )
